# agenda/hours.py

from datetime import date
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlmodel import Session, select

from agenda.core import Interval
from agenda.models import BusinessHours
from agenda.timeutils import local_datetime, sunday_weekday


def get_business_hours(session: Session, shop_id: int) -> List[BusinessHours]:
    return session.exec(
        select(BusinessHours)
        .where(BusinessHours.shop_id == shop_id)
        .order_by(BusinessHours.weekday)
    ).all()


def resolve(hours: Iterable[BusinessHours], day: date, tz: ZoneInfo) -> Optional[Interval]:
    """
    Open interval of the shop on ``day``, or None when closed.

    A missing row, ``closed``, a missing start/end time or an empty range all
    mean closed. Only one interval per day is supported.
    """
    weekday = sunday_weekday(day)
    row = next((h for h in hours if h.weekday == weekday), None)

    if row is None or row.closed:
        return None
    if row.start_time is None or row.end_time is None:
        return None
    if row.start_time >= row.end_time:
        return None

    return Interval(
        local_datetime(day, row.start_time, tz),
        local_datetime(day, row.end_time, tz),
    )
