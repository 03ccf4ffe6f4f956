# agenda/routers/appointments_routes.py

import logging
from datetime import datetime, date, timedelta, timezone
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from agenda.auth import get_current_user
from agenda.booking import (
    cancel_appointment,
    create_appointment,
    get_shop,
    update_status,
)
from agenda.busy import list_appointments
from agenda.config import settings
from agenda.core import Interval
from agenda.db import get_session
from agenda.deps import require_client, shop_capability
from agenda.errors import ValidationError
from agenda.models import Appointment, Client, Professional, Service, Shop
from agenda.permissions import Capability, require_capability
from agenda.routers.presenters import appointment_public, slot_public
from agenda.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
    AvailabilityResponse,
    ClientAppointmentCreate,
    StatusUpdate,
)
from agenda.slots import get_available_slots
from agenda.timeutils import day_window, get_zone, to_utc, to_storage, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["appointments"],
)


def _services_duration(session: Session, shop_id: int, service_ids: List[int]) -> int:
    total = 0
    for service_id in set(service_ids):
        service = session.get(Service, service_id)
        if service is None or service.shop_id != shop_id or not service.active:
            raise HTTPException(status_code=404, detail=f"Service {service_id} not found")
        total += service.duration_minutes
    return total


@router.get("/shops/{shop_id}/availability", response_model=AvailabilityResponse)
def availability(
    shop_id: int,
    professional_id: int,
    date: date,
    duration_minutes: Optional[int] = None,
    service_ids: List[int] = Query(default=[]),
    step_minutes: Optional[int] = None,
    session: Session = Depends(get_session),
):
    # Public and read-only; safe to retry
    if duration_minutes is None:
        duration_minutes = (
            _services_duration(session, shop_id, service_ids)
            if service_ids
            else settings.default_appointment_minutes
        )

    slots = get_available_slots(
        session,
        shop_id,
        professional_id,
        date,
        duration_minutes,
        step_minutes=step_minutes,
    )
    return {
        "shop_id": shop_id,
        "professional_id": professional_id,
        "date": date,
        "duration_minutes": duration_minutes,
        "slots": [slot_public(s) for s in slots],
    }


@router.post("/shops/{shop_id}/appointments", response_model=AppointmentPublic, status_code=201)
def staff_create_appointment(
    shop_id: int,
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.create_appointment)),
):
    db_appt = create_appointment(
        session,
        shop_id=shop_id,
        client_id=appt.client_id,
        professional_id=appt.professional_id,
        start_at=appt.start_at,
        end_at=appt.end_at,
        service_ids=appt.service_ids,
        notes=appt.notes,
    )
    return appointment_public(session, db_appt)


def _client_for_user(session: Session, shop: Shop, user: dict, name: Optional[str], phone: Optional[str]) -> Client:
    client = session.exec(
        select(Client)
        .where(Client.shop_id == shop.id)
        .where(Client.user_id == user["id"])
    ).first()
    if client is None:
        client = Client(
            shop_id=shop.id,
            user_id=user["id"],
            name=name or user["email"],
            phone=phone,
            email=user["email"],
        )
        session.add(client)
        session.commit()
        session.refresh(client)
    return client


@router.post("/book/{slug}/appointments", response_model=AppointmentPublic, status_code=201)
def client_create_appointment(
    slug: str,
    appt: ClientAppointmentCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_client(current_user)

    shop = session.exec(select(Shop).where(Shop.slug == slug)).first()
    if shop is None:
        raise HTTPException(status_code=404, detail="Shop not found")

    # No booking in the past
    tz = get_zone(shop.timezone)
    if to_utc(appt.start_at, tz) < utc_now():
        raise ValidationError("Cannot book an appointment in the past")

    client = _client_for_user(session, shop, current_user, appt.name, appt.phone)

    db_appt = create_appointment(
        session,
        shop_id=shop.id,
        client_id=client.id,
        professional_id=appt.professional_id,
        start_at=appt.start_at,
        end_at=appt.end_at,
        service_ids=appt.service_ids,
        notes=appt.notes,
    )
    return appointment_public(session, db_appt)


@router.get("/shops/{shop_id}/appointments", response_model=List[AppointmentPublic])
def list_shop_appointments(
    shop_id: int,
    on_date: Optional[date] = None,
    status: Optional[AppointmentStatus] = None,
    professional_id: Optional[int] = None,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_appointments)),
):
    shop = get_shop(session, shop_id)
    stmt = select(Appointment).where(Appointment.shop_id == shop_id)

    if on_date is not None:
        window = day_window(on_date, get_zone(shop.timezone))
        stmt = (
            stmt.where(Appointment.start_at >= to_storage(window.start))
            .where(Appointment.start_at < to_storage(window.end))
        )
    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)
    if professional_id is not None:
        stmt = stmt.where(Appointment.professional_id == professional_id)

    appts = session.exec(stmt.order_by(Appointment.start_at)).all()
    return [appointment_public(session, a) for a in appts]


@router.get(
    "/shops/{shop_id}/professionals/{professional_id}/appointments",
    response_model=List[AppointmentPublic],
)
def list_professional_appointments(
    shop_id: int,
    professional_id: int,
    start: datetime,
    end: datetime,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_appointments)),
):
    professional = session.get(Professional, professional_id)
    if professional is None or professional.shop_id != shop_id:
        raise HTTPException(status_code=404, detail="Professional not found")

    # Naive bounds are UTC
    window = Interval(to_utc(start, timezone.utc), to_utc(end, timezone.utc))
    if window.is_empty:
        raise ValidationError("start must be before end")
    if window.duration > timedelta(days=settings.booking_horizon_days):
        raise ValidationError("Date range is too large")

    appts = list_appointments(session, professional_id, window)
    return [appointment_public(session, a) for a in appts]


@router.patch("/shops/{shop_id}/appointments/{appt_id}/status", response_model=AppointmentPublic)
def change_status(
    shop_id: int,
    appt_id: int,
    change: StatusUpdate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.update_appointment_status)),
):
    target = update_status(session, shop_id, appt_id, change.status)
    return appointment_public(session, target)


@router.patch("/shops/{shop_id}/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def staff_cancel_appointment(
    shop_id: int,
    appt_id: int,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.update_appointment_status)),
):
    target = cancel_appointment(session, shop_id, appt_id)
    return appointment_public(session, target)


def _own_appointments_stmt(user_id: int):
    return (
        select(Appointment)
        .join(Client, Client.id == Appointment.client_id)
        .where(Client.user_id == user_id)
    )


@router.get("/clients/me/appointments", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[str] = "upcoming",
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_capability(current_user["role"], Capability.view_own_appointments)

    allowed = {"upcoming", "past", "all"} | {s.value for s in AppointmentStatus}
    if status not in allowed:
        raise HTTPException(status_code=422, detail=f"status must be one of {sorted(allowed)}")

    stmt = _own_appointments_stmt(current_user["id"])
    finished = [
        AppointmentStatus.cancelled.value,
        AppointmentStatus.completed.value,
        AppointmentStatus.no_show.value,
    ]
    now = to_storage(utc_now())

    if status == "upcoming":
        stmt = stmt.where(Appointment.start_at >= now).where(Appointment.status.not_in(finished))
    elif status == "past":
        stmt = stmt.where((Appointment.start_at < now) | Appointment.status.in_(finished))
    elif status != "all":
        stmt = stmt.where(Appointment.status == status)

    appts = session.exec(stmt.order_by(Appointment.start_at)).all()
    return [appointment_public(session, a) for a in appts]


@router.patch("/clients/me/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def client_cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_capability(current_user["role"], Capability.cancel_own_appointment)

    target = session.exec(
        _own_appointments_stmt(current_user["id"]).where(Appointment.id == appt_id)
    ).first()
    if target is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    if target.status not in (AppointmentStatus.pending.value, AppointmentStatus.confirmed.value):
        raise HTTPException(status_code=409, detail="Only pending or confirmed appointments can be cancelled")

    target = cancel_appointment(session, target.shop_id, target.id)
    return appointment_public(session, target)
