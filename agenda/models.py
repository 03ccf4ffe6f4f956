# agenda/models.py

from typing import Optional
from datetime import datetime, time

from sqlalchemy import CheckConstraint, Column, DDL, DateTime, UniqueConstraint, event
from sqlmodel import SQLModel, Field

from agenda.timeutils import utc_now_naive

# Datetimes are stored as naive UTC. Wall-clock times (business hours) are
# naive and interpreted in the shop's timezone.

OVERLAP_CONSTRAINT = "appointments_no_overlap"


def utc_column(**kwargs) -> Column:
    # Explicitly naive: values are UTC, converted by agenda.timeutils
    return Column(DateTime(timezone=False), nullable=False, **kwargs)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # staff or client


class Shop(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(index=True, unique=True)  # public booking code
    timezone: str
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now_naive, sa_column=utc_column())


class ShopMember(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("shop_id", "user_id", name="uq_shop_member"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    role: str  # admin, professional or reception


class BusinessHours(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("shop_id", "weekday", name="uq_shop_weekday"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_business_hours_weekday"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    weekday: int  # 0=Sun, 1=Mon....
    closed: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class Professional(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    name: str
    phone: Optional[str] = None
    active: bool = True


class Service(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_service_duration"),
        CheckConstraint("price >= 0", name="ck_service_price"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    name: str
    duration_minutes: int
    price: float
    active: bool = True


class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class TimeOff(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_time_off_interval"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    professional_id: Optional[int] = Field(default=None, foreign_key="professional.id", index=True)  # None => whole shop
    start_at: datetime = Field(sa_column=utc_column(index=True))
    end_at: datetime = Field(sa_column=utc_column())
    reason: Optional[str] = None


class Appointment(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_appointment_interval"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    shop_id: int = Field(foreign_key="shop.id", index=True)
    client_id: int = Field(foreign_key="client.id", index=True)
    professional_id: int = Field(foreign_key="professional.id", index=True)

    start_at: datetime = Field(sa_column=utc_column(index=True))
    end_at: datetime = Field(sa_column=utc_column())
    status: str = "pending"
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now_naive, sa_column=utc_column())


class AppointmentService(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(foreign_key="appointment.id", index=True)
    service_id: int = Field(foreign_key="service.id")

    # snapshot at booking time
    duration_minutes: int
    price: float


# Overlap invariant, enforced by the database itself.
# SQLite: triggers run inside the writing transaction, and SQLite allows a
# single writer at a time, so check and insert cannot interleave.
_sqlite_overlap_check = """
    SELECT RAISE(ABORT, '{name}')
    WHERE EXISTS (
        SELECT 1 FROM appointment
        WHERE professional_id = NEW.professional_id
          AND status <> 'cancelled'
          AND start_at < NEW.end_at
          AND NEW.start_at < end_at
          {extra}
    );
"""

event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        f"""
        CREATE TRIGGER {OVERLAP_CONSTRAINT}_insert
        BEFORE INSERT ON appointment
        WHEN NEW.status <> 'cancelled'
        BEGIN
        {_sqlite_overlap_check.format(name=OVERLAP_CONSTRAINT, extra='')}
        END
        """
    ).execute_if(dialect="sqlite"),
)

event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        f"""
        CREATE TRIGGER {OVERLAP_CONSTRAINT}_update
        BEFORE UPDATE OF professional_id, start_at, end_at, status ON appointment
        WHEN NEW.status <> 'cancelled'
        BEGIN
        {_sqlite_overlap_check.format(name=OVERLAP_CONSTRAINT, extra='AND id <> NEW.id')}
        END
        """
    ).execute_if(dialect="sqlite"),
)

# PostgreSQL: exclusion constraint over (professional, [start, end)).
event.listen(
    Appointment.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)

event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        f"""
        ALTER TABLE appointment ADD CONSTRAINT {OVERLAP_CONSTRAINT}
        EXCLUDE USING gist (
            professional_id WITH =,
            tsrange(start_at, end_at) WITH &&
        ) WHERE (status <> 'cancelled')
        """
    ).execute_if(dialect="postgresql"),
)
