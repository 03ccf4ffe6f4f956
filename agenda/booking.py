"""
Appointment creation and status changes.

No two non-cancelled appointments of the same professional may overlap.
That rule lives in the database (constraint ``appointments_no_overlap``, see
``agenda.models``); this module writes in a single transaction and turns the
constraint violation into ``ConflictError``. Overlaps are not pre-checked here.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from agenda.config import settings
from agenda.errors import (
    BackendError,
    ConflictError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from agenda.models import (
    OVERLAP_CONSTRAINT,
    Appointment,
    AppointmentService,
    Client,
    Professional,
    Service,
    Shop,
)
from agenda.schemas import AppointmentStatus
from agenda.timeutils import from_storage, get_zone, to_storage, to_utc

logger = logging.getLogger(__name__)

# Nominal life cycle. Staff may still set any status; only the overlap
# constraint is enforced.
ALLOWED_TRANSITIONS: Dict[AppointmentStatus, Set[AppointmentStatus]] = {
    AppointmentStatus.pending: {
        AppointmentStatus.confirmed,
        AppointmentStatus.cancelled,
        AppointmentStatus.no_show,
    },
    AppointmentStatus.confirmed: {
        AppointmentStatus.completed,
        AppointmentStatus.cancelled,
        AppointmentStatus.no_show,
    },
    AppointmentStatus.completed: set(),
    AppointmentStatus.cancelled: set(),
    AppointmentStatus.no_show: set(),
}


def is_forward_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def _translate_integrity_error(exc: IntegrityError) -> Exception:
    if OVERLAP_CONSTRAINT in str(exc.orig):
        return ConflictError()
    return BackendError(f"Storage constraint failed: {exc.orig}")


def _commit(session: Session) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise _translate_integrity_error(e) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Storage failure: %s", e)
        raise BackendError("Storage is unavailable, try again later") from e


def get_shop(session: Session, shop_id: int) -> Shop:
    shop = session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return shop


def get_appointment(session: Session, shop_id: int, appointment_id: int) -> Appointment:
    appt = session.get(Appointment, appointment_id)
    if appt is None or appt.shop_id != shop_id:
        raise NotFoundError("Appointment not found")
    return appt


def get_appointment_services(session: Session, appointment_id: int) -> List[AppointmentService]:
    return session.exec(
        select(AppointmentService)
        .where(AppointmentService.appointment_id == appointment_id)
        .order_by(AppointmentService.id)
    ).all()


def _load_services(session: Session, shop_id: int, service_ids: Iterable[int]) -> List[Service]:
    services = []
    seen = set()
    for service_id in service_ids:
        if service_id in seen:
            continue
        seen.add(service_id)
        service = session.get(Service, service_id)
        if service is None or service.shop_id != shop_id:
            raise NotFoundError(f"Service {service_id} not found")
        if not service.active:
            raise ValidationError(f"Service {service_id} is not available")
        services.append(service)
    return services


def create_appointment(
    session: Session,
    shop_id: int,
    client_id: int,
    professional_id: int,
    start_at: datetime,
    end_at: Optional[datetime] = None,
    service_ids: Iterable[int] = (),
    notes: Optional[str] = None,
) -> Appointment:
    """
    Book an appointment atomically.

    ``end_at`` is derived from the services' total duration, or from the
    default duration when no services are given. Naive datetimes are read in
    the shop's timezone. The appointment always starts as ``pending``.

    Raises:
        NotFoundError: unknown shop, client, professional or service
        ValidationError: inconsistent or empty interval, inactive service
        UnavailableError: professional is inactive
        ConflictError: the professional already has an overlapping booking
        BackendError: any other storage failure
    """
    shop = get_shop(session, shop_id)
    tz = get_zone(shop.timezone)

    client = session.get(Client, client_id)
    if client is None or client.shop_id != shop_id:
        raise NotFoundError("Client not found")

    professional = session.get(Professional, professional_id)
    if professional is None or professional.shop_id != shop_id:
        raise NotFoundError("Professional not found")
    if not professional.active:
        raise UnavailableError("Professional is not taking bookings")

    services = _load_services(session, shop_id, service_ids)

    start_utc = to_utc(start_at, tz)
    if services:
        total_minutes = sum(s.duration_minutes for s in services)
        end_utc = start_utc + timedelta(minutes=total_minutes)
        if end_at is not None and to_utc(end_at, tz) != end_utc:
            raise ValidationError("end_at does not match the duration of the selected services")
    elif end_at is not None:
        end_utc = to_utc(end_at, tz)
    else:
        end_utc = start_utc + timedelta(minutes=settings.default_appointment_minutes)

    if end_utc <= start_utc:
        raise ValidationError("end_at must be after start_at")

    db_appt = Appointment(
        shop_id=shop_id,
        client_id=client_id,
        professional_id=professional_id,
        start_at=to_storage(start_utc),
        end_at=to_storage(end_utc),
        status=AppointmentStatus.pending.value,
        notes=notes,
    )

    # Appointment and service snapshots go in one transaction
    try:
        session.add(db_appt)
        session.flush()  # fills db_appt.id; the overlap constraint fires here
        for service in services:
            session.add(
                AppointmentService(
                    appointment_id=db_appt.id,
                    service_id=service.id,
                    duration_minutes=service.duration_minutes,
                    price=service.price,
                )
            )
    except IntegrityError as e:
        session.rollback()
        error = _translate_integrity_error(e)
        if isinstance(error, ConflictError):
            logger.info(
                "Booking conflict for professional %s at %s", professional_id, start_utc.isoformat()
            )
        raise error from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Storage failure while booking: %s", e)
        raise BackendError("Storage is unavailable, try again later") from e

    _commit(session)
    session.refresh(db_appt)

    logger.info(
        "Appointment %s booked: professional=%s %s-%s",
        db_appt.id, professional_id, start_utc.isoformat(), end_utc.isoformat(),
    )
    return db_appt


def update_status(
    session: Session,
    shop_id: int,
    appointment_id: int,
    status: AppointmentStatus,
) -> Appointment:
    """
    Set any status. Reopening a cancelled appointment goes through the
    overlap constraint again and may raise ConflictError.
    """
    target = get_appointment(session, shop_id, appointment_id)
    new_status = AppointmentStatus(status)
    current = AppointmentStatus(target.status)

    if current == new_status:
        return target
    if not is_forward_transition(current, new_status):
        logger.warning(
            "Appointment %s moved from %s to %s outside the usual flow",
            appointment_id, current.value, new_status.value,
        )

    target.status = new_status.value
    session.add(target)
    _commit(session)
    session.refresh(target)
    return target


def cancel_appointment(session: Session, shop_id: int, appointment_id: int) -> Appointment:
    target = get_appointment(session, shop_id, appointment_id)
    if target.status == AppointmentStatus.cancelled.value:
        raise ValidationError("Appointment already cancelled")

    target.status = AppointmentStatus.cancelled.value
    session.add(target)
    _commit(session)
    session.refresh(target)

    logger.info("Appointment %s cancelled", appointment_id)
    return target


def appointment_end_matches_services(session: Session, appt: Appointment) -> bool:
    services = get_appointment_services(session, appt.id)
    if not services:
        return True
    expected = from_storage(appt.start_at) + timedelta(minutes=sum(s.duration_minutes for s in services))
    return from_storage(appt.end_at) == expected
