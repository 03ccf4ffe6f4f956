# agenda/busy.py

from datetime import date
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import or_
from sqlmodel import Session, select

from agenda.config import settings
from agenda.core import Interval
from agenda.models import Appointment, TimeOff
from agenda.schemas import AppointmentStatus
from agenda.timeutils import day_window, from_storage, to_storage


def non_blocking_statuses(no_show_blocks: Optional[bool] = None) -> List[str]:
    if no_show_blocks is None:
        no_show_blocks = settings.no_show_blocks_slot
    statuses = [AppointmentStatus.cancelled.value]
    if not no_show_blocks:
        statuses.append(AppointmentStatus.no_show.value)
    return statuses


def list_appointments(
    session: Session,
    professional_id: int,
    window: Interval,
    exclude_statuses: Optional[List[str]] = None,
) -> List[Appointment]:
    """Appointments of a professional that overlap ``window`` (aware UTC)."""
    stmt = (
        select(Appointment)
        .where(Appointment.professional_id == professional_id)
        .where(Appointment.start_at < to_storage(window.end))
        .where(Appointment.end_at > to_storage(window.start))
    )
    if exclude_statuses:
        stmt = stmt.where(Appointment.status.not_in(exclude_statuses))
    return session.exec(stmt.order_by(Appointment.start_at)).all()


def list_time_off(
    session: Session,
    shop_id: int,
    professional_id: Optional[int] = None,
    window: Optional[Interval] = None,
) -> List[TimeOff]:
    """
    Time-off rows of a shop.

    With ``professional_id`` only that professional's rows plus shop-wide
    rows (no professional) are returned.
    """
    stmt = select(TimeOff).where(TimeOff.shop_id == shop_id)
    if professional_id is not None:
        stmt = stmt.where(
            or_(TimeOff.professional_id == professional_id, TimeOff.professional_id.is_(None))
        )
    if window is not None:
        stmt = (
            stmt.where(TimeOff.start_at < to_storage(window.end))
            .where(TimeOff.end_at > to_storage(window.start))
        )
    return session.exec(stmt.order_by(TimeOff.start_at)).all()


def collect_busy(
    session: Session,
    shop_id: int,
    professional_id: int,
    day: date,
    tz: ZoneInfo,
    no_show_blocks: Optional[bool] = None,
) -> List[Interval]:
    """
    Busy intervals of a professional on ``day``.

    Existing non-cancelled appointments and matching time-off, clipped to
    the local day and sorted by start. Overlaps are left unmerged.
    """
    window = day_window(day, tz)
    busy: List[Interval] = []

    appointments = list_appointments(
        session, professional_id, window, exclude_statuses=non_blocking_statuses(no_show_blocks)
    )
    for appt in appointments:
        busy.append(Interval(from_storage(appt.start_at), from_storage(appt.end_at)))

    for block in list_time_off(session, shop_id, professional_id, window):
        busy.append(Interval(from_storage(block.start_at), from_storage(block.end_at)))

    clipped = [b.intersection(window) for b in busy]
    return sorted(b for b in clipped if b is not None)
