"""
Concurrent bookings for the same interval: exactly one wins.
"""

import threading
from datetime import timedelta

from sqlmodel import Session, select

from agenda.booking import create_appointment
from agenda.errors import ConflictError
from agenda.models import Appointment
from agenda.schemas import AppointmentStatus

from conftest import MONDAY, local

TRIALS = 50


def race(engine, shop_id, client_id, professional_id, start):
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        with Session(engine) as session:
            barrier.wait()
            try:
                appt = create_appointment(session, shop_id, client_id, professional_id, start)
                result = ("ok", appt.id)
            except ConflictError as e:
                result = ("conflict", e.detail)
            except Exception as e:  # recorded so the assertion shows it
                result = ("error", repr(e))
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


def test_two_clients_same_slot(engine, seeded):
    shop_id = seeded.shop.id
    client_id = seeded.client.id
    professional_id = seeded.professional.id

    for trial in range(TRIALS):
        start = local(MONDAY, 9) + timedelta(minutes=30 * trial)
        outcomes = race(engine, shop_id, client_id, professional_id, start)

        kinds = sorted(kind for kind, _ in outcomes)
        assert kinds == ["conflict", "ok"], outcomes

    with Session(engine) as session:
        rows = session.exec(
            select(Appointment).where(Appointment.professional_id == professional_id)
        ).all()
    assert len(rows) == TRIALS
    assert {row.status for row in rows} == {AppointmentStatus.pending.value}


def test_overlapping_but_different_intervals(engine, seeded):
    """A 30 minute booking and one starting 15 minutes later cannot both land."""
    shop_id = seeded.shop.id
    client_id = seeded.client.id
    professional_id = seeded.professional.id

    barrier = threading.Barrier(2)
    outcomes = []

    def attempt(start):
        with Session(engine) as session:
            barrier.wait()
            try:
                create_appointment(session, shop_id, client_id, professional_id, start)
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

    threads = [
        threading.Thread(target=attempt, args=(local(MONDAY, 10),)),
        threading.Thread(target=attempt, args=(local(MONDAY, 10, 15),)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(outcomes) == ["conflict", "ok"]
