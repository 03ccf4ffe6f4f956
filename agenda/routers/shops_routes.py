# agenda/routers/shops_routes.py

import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from agenda.auth import find_user, get_current_user
from agenda.booking import get_shop
from agenda.config import settings
from agenda.core import Interval
from agenda.db import get_session
from agenda.errors import PermissionDeniedError
from agenda.hours import get_business_hours
from agenda.models import (
    Appointment,
    BusinessHours as BusinessHoursModel,
    Client,
    Professional,
    Service,
    Shop,
    ShopMember,
    User,
)
from agenda.permissions import Capability
from agenda.deps import shop_capability
from agenda.routers.presenters import appointment_public
from agenda.schemas import (
    AppointmentStatus,
    BusinessHoursEntry,
    DashboardStats,
    MemberPublic,
    MemberRole,
    MemberUpsert,
    ShopCreate,
    ShopPublic,
    ShopUpdate,
    UserRole,
)
from agenda.timeutils import day_window, get_zone, local_today, to_storage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/shops",
    tags=["shops"],
)


@router.post("", response_model=ShopPublic, status_code=201)
def create_shop(
    shop: ShopCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if current_user["role"] != UserRole.staff.value:
        raise PermissionDeniedError("Only staff accounts can create shops")

    tz_name = shop.timezone or settings.default_timezone
    get_zone(tz_name)  # 422 on unknown zone

    db_shop = Shop(
        name=shop.name,
        slug=shop.slug,
        timezone=tz_name,
        phone=shop.phone,
        address=shop.address,
    )
    session.add(db_shop)
    try:
        session.flush()
        # Creator administers the shop
        session.add(ShopMember(shop_id=db_shop.id, user_id=current_user["id"], role=MemberRole.admin.value))
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Booking code already in use")

    session.refresh(db_shop)
    logger.info("Shop %s created by user %s", db_shop.id, current_user["id"])
    return db_shop


@router.get("/by-slug/{slug}", response_model=ShopPublic)
def get_shop_by_slug(slug: str, session: Session = Depends(get_session)):
    # Public: the client booking flow starts from the booking code
    shop = session.exec(select(Shop).where(Shop.slug == slug)).first()
    if shop is None:
        raise HTTPException(status_code=404, detail="Shop not found")
    return shop


@router.get("/{shop_id}", response_model=ShopPublic)
def read_shop(
    shop_id: int,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_shop)),
):
    return get_shop(session, shop_id)


@router.patch("/{shop_id}", response_model=ShopPublic)
def update_shop(
    shop_id: int,
    changes: ShopUpdate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_shop)),
):
    shop = get_shop(session, shop_id)
    data = changes.model_dump(exclude_unset=True)
    if data.get("timezone"):
        get_zone(data["timezone"])
    for key, value in data.items():
        if value is not None:
            setattr(shop, key, value)

    session.add(shop)
    session.commit()
    session.refresh(shop)
    return shop


# Business hours

@router.get("/{shop_id}/hours", response_model=List[BusinessHoursEntry])
def read_business_hours(
    shop_id: int,
    session: Session = Depends(get_session),
):
    get_shop(session, shop_id)
    return get_business_hours(session, shop_id)


@router.put("/{shop_id}/hours", response_model=List[BusinessHoursEntry])
def set_business_hours(
    shop_id: int,
    entries: List[BusinessHoursEntry],
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_hours)),
):
    weekdays = [e.weekday for e in entries]
    if len(weekdays) != len(set(weekdays)):
        raise HTTPException(status_code=422, detail="weekday cannot contain duplicates")

    for entry in entries:
        if entry.closed:
            continue
        if entry.start_time is None or entry.end_time is None:
            raise HTTPException(status_code=422, detail="start_time and end_time are required on open days")
        if entry.start_time >= entry.end_time:
            raise HTTPException(status_code=422, detail="start_time must be before end_time")

    existing = {h.weekday: h for h in get_business_hours(session, shop_id)}

    # Upsert: one row per (shop, weekday)
    for entry in entries:
        row = existing.get(entry.weekday)
        if row is None:
            row = BusinessHoursModel(shop_id=shop_id, weekday=entry.weekday)
        row.closed = entry.closed
        row.start_time = None if entry.closed else entry.start_time
        row.end_time = None if entry.closed else entry.end_time
        session.add(row)

    session.commit()
    return get_business_hours(session, shop_id)


# Members

def _member_public(member: ShopMember, user: User) -> dict:
    return {"id": member.id, "user_id": user.id, "email": user.email, "role": member.role}


@router.get("/{shop_id}/members", response_model=List[MemberPublic])
def list_members(
    shop_id: int,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_members)),
):
    rows = session.exec(
        select(ShopMember, User)
        .where(ShopMember.user_id == User.id)
        .where(ShopMember.shop_id == shop_id)
        .order_by(User.email)
    ).all()
    return [_member_public(m, u) for m, u in rows]


@router.put("/{shop_id}/members", response_model=MemberPublic)
def upsert_member(
    shop_id: int,
    member: MemberUpsert,
    session: Session = Depends(get_session),
    current: dict = Depends(shop_capability(Capability.manage_members)),
):
    user = find_user(session, member.email)
    if user is None or user.role != UserRole.staff.value:
        raise HTTPException(status_code=404, detail="Staff user not found")
    if user.id == current["id"] and member.role != MemberRole.admin:
        raise HTTPException(status_code=409, detail="Admins cannot demote themselves")

    db_member = session.exec(
        select(ShopMember)
        .where(ShopMember.shop_id == shop_id)
        .where(ShopMember.user_id == user.id)
    ).first()
    if db_member is None:
        db_member = ShopMember(shop_id=shop_id, user_id=user.id, role=member.role.value)
    else:
        db_member.role = member.role.value

    session.add(db_member)
    session.commit()
    session.refresh(db_member)
    return _member_public(db_member, user)


@router.delete("/{shop_id}/members/{member_id}", status_code=204)
def remove_member(
    shop_id: int,
    member_id: int,
    session: Session = Depends(get_session),
    current: dict = Depends(shop_capability(Capability.manage_members)),
):
    db_member = session.get(ShopMember, member_id)
    if db_member is None or db_member.shop_id != shop_id:
        raise HTTPException(status_code=404, detail="Member not found")
    if db_member.user_id == current["id"]:
        raise HTTPException(status_code=409, detail="Admins cannot remove themselves")

    session.delete(db_member)
    session.commit()
    logger.info("Member %s removed from shop %s", member_id, shop_id)


# Dashboard

def _count(session: Session, stmt) -> int:
    return session.exec(stmt).one()


@router.get("/{shop_id}/dashboard", response_model=DashboardStats)
def dashboard(
    shop_id: int,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_dashboard)),
):
    shop = get_shop(session, shop_id)
    tz = get_zone(shop.timezone)
    today = local_today(tz)
    today_window = day_window(today, tz)
    month_start = today.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)
    month_window = Interval(day_window(month_start, tz).start, day_window(next_month, tz).start)

    inactive = [AppointmentStatus.cancelled.value, AppointmentStatus.no_show.value]

    def active_between(window: Interval):
        return (
            select(func.count(Appointment.id))
            .where(Appointment.shop_id == shop_id)
            .where(Appointment.start_at >= to_storage(window.start))
            .where(Appointment.start_at < to_storage(window.end))
            .where(Appointment.status.not_in(inactive))
        )

    # Read-only: degrade to zeros instead of failing the page
    try:
        upcoming = session.exec(
            select(Appointment)
            .where(Appointment.shop_id == shop_id)
            .where(Appointment.start_at >= to_storage(today_window.start))
            .where(Appointment.start_at < to_storage(today_window.end))
            .order_by(Appointment.start_at)
            .limit(10)
        ).all()
        return DashboardStats(
            today_appointments=_count(session, active_between(today_window)),
            month_appointments=_count(session, active_between(month_window)),
            pending_appointments=_count(
                session,
                select(func.count(Appointment.id))
                .where(Appointment.shop_id == shop_id)
                .where(Appointment.status == AppointmentStatus.pending.value),
            ),
            total_clients=_count(session, select(func.count(Client.id)).where(Client.shop_id == shop_id)),
            active_services=_count(
                session,
                select(func.count(Service.id)).where(Service.shop_id == shop_id).where(Service.active == True),  # noqa: E712
            ),
            active_professionals=_count(
                session,
                select(func.count(Professional.id))
                .where(Professional.shop_id == shop_id)
                .where(Professional.active == True),  # noqa: E712
            ),
            upcoming=[appointment_public(session, a) for a in upcoming],
        )
    except SQLAlchemyError as e:
        logger.error("Dashboard query failed for shop %s: %s", shop_id, e)
        return DashboardStats()
