"""
Slot generation.

Free time = open business hours minus busy intervals; each free stretch is
cut into candidate slots of the requested duration, starting every
``step`` minutes (the duration itself unless configured otherwise).

Listing is best-effort: a slot returned here may be taken before the client
submits. The booking guard in ``agenda.booking`` is the source of truth.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from sqlmodel import Session

from agenda.config import settings
from agenda.core import Interval, subtract
from agenda.busy import collect_busy
from agenda.errors import NotFoundError, ValidationError
from agenda.hours import get_business_hours, resolve
from agenda.models import Professional, Shop
from agenda.timeutils import get_zone, local_today, to_utc, utc_now

logger = logging.getLogger(__name__)

# Longest slot or step accepted, in minutes
MAX_SLOT_MINUTES = 24 * 60


def _check_minutes(name: str, value: Optional[int]) -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    if value > MAX_SLOT_MINUTES:
        raise ValidationError(f"{name} must be at most {MAX_SLOT_MINUTES}")


def generate_slots(
    open_interval: Optional[Interval],
    busy: Iterable[Interval],
    duration_minutes: int,
    step_minutes: Optional[int] = None,
    not_before: Optional[datetime] = None,
) -> List[Interval]:
    _check_minutes("duration_minutes", duration_minutes)
    if step_minutes is None:
        step_minutes = duration_minutes
    _check_minutes("step_minutes", step_minutes)

    if open_interval is None:
        return []

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    slots = []
    for free in subtract(open_interval, busy):
        current = free.start
        while current + duration <= free.end:
            if not_before is None or current >= not_before:
                slots.append(Interval(current, current + duration))
            current += step
    return slots


def get_available_slots(
    session: Session,
    shop_id: int,
    professional_id: int,
    day: date,
    duration_minutes: int,
    step_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Interval]:
    """
    Bookable slots for a professional on a local calendar date.

    Args:
        session: database session
        shop_id: shop whose hours and timezone apply
        professional_id: professional to book
        day: date in the shop's timezone
        duration_minutes: length of each slot
        step_minutes: distance between slot starts (defaults to the configured
            step, then to the duration)
        now: current instant, for tests

    Returns:
        Slots as aware UTC intervals, ascending. Empty when the shop is closed,
        the professional is inactive, the date has passed or everything is busy.

    Raises:
        NotFoundError: unknown shop or professional
        ValidationError: duration or step outside 1..1440 minutes, or a date
            beyond the horizon
    """
    _check_minutes("duration_minutes", duration_minutes)
    if step_minutes is None:
        step_minutes = settings.slot_step_minutes
    if step_minutes is not None:
        _check_minutes("step_minutes", step_minutes)

    shop = session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")

    professional = session.get(Professional, professional_id)
    if professional is None or professional.shop_id != shop_id:
        raise NotFoundError("Professional not found")

    tz = get_zone(shop.timezone)
    now = to_utc(now, tz) if now is not None else utc_now()
    today = local_today(tz, now)

    if day < today:
        return []
    if day > today + timedelta(days=settings.booking_horizon_days):
        raise ValidationError("Date is too far in the future")

    if not professional.active:
        logger.debug("Professional %s is inactive, no slots", professional_id)
        return []

    open_interval = resolve(get_business_hours(session, shop_id), day, tz)
    if open_interval is None:
        return []

    busy = collect_busy(session, shop_id, professional_id, day, tz)
    not_before = now if day == today else None

    return generate_slots(open_interval, busy, duration_minutes, step_minutes, not_before)
