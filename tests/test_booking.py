"""
Tests for the booking guard and status changes.
"""

from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from agenda.booking import (
    appointment_end_matches_services,
    cancel_appointment,
    create_appointment,
    get_appointment_services,
    is_forward_transition,
    update_status,
)
from agenda.errors import ConflictError, NotFoundError, UnavailableError, ValidationError
from agenda.models import Appointment, Client, Shop
from agenda.schemas import AppointmentStatus
from agenda.timeutils import from_storage

from conftest import MONDAY, local


def book(session, seeded, start, professional=None, **kwargs):
    professional = professional or seeded.professional
    return create_appointment(
        session, seeded.shop.id, seeded.client.id, professional.id, start, **kwargs
    )


def test_end_is_derived_from_services(session, seeded):
    appt = book(session, seeded, local(MONDAY, 10), service_ids=[seeded.haircut.id, seeded.beard.id])

    assert appt.status == AppointmentStatus.pending.value
    assert from_storage(appt.start_at) == local(MONDAY, 10)
    assert from_storage(appt.end_at) == local(MONDAY, 10, 45)

    snapshot = get_appointment_services(session, appt.id)
    assert [(s.service_id, s.duration_minutes, s.price) for s in snapshot] == [
        (seeded.haircut.id, 30, 40.0),
        (seeded.beard.id, 15, 25.0),
    ]
    assert appointment_end_matches_services(session, appt)


def test_default_duration_without_services(session, seeded):
    appt = book(session, seeded, local(MONDAY, 10))
    assert from_storage(appt.end_at) - from_storage(appt.start_at) == timedelta(minutes=30)
    assert get_appointment_services(session, appt.id) == []


def test_naive_start_is_shop_local_time(session, seeded):
    appt = book(session, seeded, datetime(2030, 1, 7, 10, 0))
    assert from_storage(appt.start_at) == local(MONDAY, 10)


def test_explicit_end_must_match_services(session, seeded):
    with pytest.raises(ValidationError):
        book(
            session, seeded, local(MONDAY, 10),
            end_at=local(MONDAY, 11), service_ids=[seeded.haircut.id],
        )

    appt = book(
        session, seeded, local(MONDAY, 10),
        end_at=local(MONDAY, 10, 30), service_ids=[seeded.haircut.id],
    )
    assert from_storage(appt.end_at) == local(MONDAY, 10, 30)


@pytest.mark.parametrize("end", [(10, 0), (9, 30)])
def test_empty_or_reversed_interval_rejected(session, seeded, end):
    with pytest.raises(ValidationError):
        book(session, seeded, local(MONDAY, 10), end_at=local(MONDAY, *end))


def test_overlap_raises_conflict(session, seeded):
    book(session, seeded, local(MONDAY, 10), end_at=local(MONDAY, 11))

    with pytest.raises(ConflictError) as exc_info:
        book(session, seeded, local(MONDAY, 10, 30), end_at=local(MONDAY, 11, 30))
    assert exc_info.value.status_code == 409

    with pytest.raises(ConflictError):
        book(session, seeded, local(MONDAY, 9, 30), end_at=local(MONDAY, 12))

    rows = session.exec(select(Appointment)).all()
    assert len(rows) == 1


def test_session_is_usable_after_conflict(session, seeded):
    book(session, seeded, local(MONDAY, 10))
    with pytest.raises(ConflictError):
        book(session, seeded, local(MONDAY, 10))

    appt = book(session, seeded, local(MONDAY, 11))
    assert appt.id is not None


def test_adjacent_bookings_are_allowed(session, seeded):
    book(session, seeded, local(MONDAY, 10))
    book(session, seeded, local(MONDAY, 10, 30))
    book(session, seeded, local(MONDAY, 9, 30))


def test_other_professional_same_time(session, seeded):
    book(session, seeded, local(MONDAY, 10))
    appt = book(session, seeded, local(MONDAY, 10), professional=seeded.other_professional)
    assert appt.professional_id == seeded.other_professional.id


def test_cancelled_frees_the_interval(session, seeded):
    first = book(session, seeded, local(MONDAY, 10))
    cancel_appointment(session, seeded.shop.id, first.id)

    second = book(session, seeded, local(MONDAY, 10))
    assert second.id != first.id


def test_reopening_over_a_new_booking_conflicts(session, seeded):
    first = book(session, seeded, local(MONDAY, 10))
    cancel_appointment(session, seeded.shop.id, first.id)
    book(session, seeded, local(MONDAY, 10))

    with pytest.raises(ConflictError):
        update_status(session, seeded.shop.id, first.id, AppointmentStatus.pending)

    session.refresh(first)
    assert first.status == AppointmentStatus.cancelled.value


def test_no_show_still_occupies_the_slot(session, seeded):
    first = book(session, seeded, local(MONDAY, 10))
    update_status(session, seeded.shop.id, first.id, AppointmentStatus.no_show)

    with pytest.raises(ConflictError):
        book(session, seeded, local(MONDAY, 10))


def test_price_snapshot_survives_catalog_changes(session, seeded):
    appt = book(session, seeded, local(MONDAY, 10), service_ids=[seeded.haircut.id])

    seeded.haircut.price = 55.0
    seeded.haircut.duration_minutes = 40
    session.add(seeded.haircut)
    session.commit()

    (line,) = get_appointment_services(session, appt.id)
    assert line.price == 40.0
    assert line.duration_minutes == 30
    assert appointment_end_matches_services(session, appt)


def test_inactive_professional_is_unavailable(session, seeded):
    seeded.professional.active = False
    session.add(seeded.professional)
    session.commit()

    with pytest.raises(UnavailableError) as exc_info:
        book(session, seeded, local(MONDAY, 10))
    assert exc_info.value.status_code == 422


def test_inactive_service_is_rejected(session, seeded):
    seeded.beard.active = False
    session.add(seeded.beard)
    session.commit()

    with pytest.raises(ValidationError):
        book(session, seeded, local(MONDAY, 10), service_ids=[seeded.beard.id])


def test_references_must_belong_to_the_shop(session, seeded):
    other = Shop(name="Elsewhere", slug="elsewhere", timezone="UTC")
    session.add(other)
    session.commit()
    stranger = Client(shop_id=other.id, name="Stranger")
    session.add(stranger)
    session.commit()

    with pytest.raises(NotFoundError):
        create_appointment(session, seeded.shop.id, stranger.id, seeded.professional.id, local(MONDAY, 10))
    with pytest.raises(NotFoundError):
        create_appointment(session, other.id, stranger.id, seeded.professional.id, local(MONDAY, 10))
    with pytest.raises(NotFoundError):
        book(session, seeded, local(MONDAY, 10), service_ids=[999])
    with pytest.raises(NotFoundError):
        create_appointment(session, 999, seeded.client.id, seeded.professional.id, local(MONDAY, 10))


def test_cancel_twice_is_rejected(session, seeded):
    appt = book(session, seeded, local(MONDAY, 10))
    cancel_appointment(session, seeded.shop.id, appt.id)

    with pytest.raises(ValidationError):
        cancel_appointment(session, seeded.shop.id, appt.id)


def test_appointment_lookup_is_scoped_to_shop(session, seeded):
    appt = book(session, seeded, local(MONDAY, 10))
    with pytest.raises(NotFoundError):
        update_status(session, seeded.shop.id + 1, appt.id, AppointmentStatus.confirmed)


def test_status_flow(session, seeded):
    appt = book(session, seeded, local(MONDAY, 10))
    for status in (AppointmentStatus.confirmed, AppointmentStatus.completed):
        appt = update_status(session, seeded.shop.id, appt.id, status)
    assert appt.status == AppointmentStatus.completed.value

    assert is_forward_transition(AppointmentStatus.pending, AppointmentStatus.confirmed)
    assert is_forward_transition(AppointmentStatus.confirmed, AppointmentStatus.no_show)
    assert not is_forward_transition(AppointmentStatus.completed, AppointmentStatus.pending)
    assert not is_forward_transition(AppointmentStatus.cancelled, AppointmentStatus.confirmed)
