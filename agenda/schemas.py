# agenda/schemas.py

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime, date, time
from typing import List, Optional


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    staff = "staff"
    client = "client"


class MemberRole(str, Enum):
    admin = "admin"
    professional = "professional"
    reception = "reception"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole


# Shops

class ShopCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=3, max_length=64, pattern=r"^[a-z0-9-]+$")
    timezone: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ShopUpdate(BaseModel):
    name: Optional[str] = None
    timezone: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ShopPublic(BaseModel):
    id: int
    name: str
    slug: str
    timezone: str
    phone: Optional[str] = None
    address: Optional[str] = None


class MemberPublic(BaseModel):
    id: int
    user_id: int
    email: str
    role: MemberRole


class MembershipPublic(BaseModel):
    shop_id: int
    name: str
    slug: str
    role: MemberRole


class MemberUpsert(BaseModel):
    email: str
    role: MemberRole


class BusinessHoursEntry(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0=Sun, 1=Mon....
    closed: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None


# Catalog

class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0, le=1440)
    price: float = Field(ge=0)
    active: bool = True


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=1440)
    price: Optional[float] = Field(default=None, ge=0)
    active: Optional[bool] = None


class ServicePublic(BaseModel):
    id: int
    name: str
    duration_minutes: int
    price: float
    active: bool


class ProfessionalCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    user_email: Optional[str] = None
    active: bool = True


class ProfessionalUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


class ProfessionalPublic(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    active: bool


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None


class ClientPublic(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class TimeOffCreate(BaseModel):
    start_at: datetime
    end_at: datetime
    professional_id: Optional[int] = None  # None => whole shop
    reason: Optional[str] = None


class TimeOffPublic(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    professional_id: Optional[int] = None
    reason: Optional[str] = None


# Appointments

class AppointmentCreate(BaseModel):
    client_id: int
    professional_id: int
    start_at: datetime
    end_at: Optional[datetime] = None
    service_ids: List[int] = []
    notes: Optional[str] = None


class ClientAppointmentCreate(BaseModel):
    professional_id: int
    start_at: datetime
    end_at: Optional[datetime] = None
    service_ids: List[int] = []
    notes: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentServicePublic(BaseModel):
    service_id: int
    duration_minutes: int
    price: float


class AppointmentPublic(BaseModel):
    id: int
    shop_id: int
    client_id: int
    professional_id: int
    start_at: datetime
    end_at: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    services: List[AppointmentServicePublic] = []


class SlotPublic(BaseModel):
    slot_start: datetime
    slot_end: datetime


class AvailabilityResponse(BaseModel):
    shop_id: int
    professional_id: int
    date: date
    duration_minutes: int
    slots: List[SlotPublic]


class DashboardStats(BaseModel):
    today_appointments: int = 0
    month_appointments: int = 0
    pending_appointments: int = 0
    total_clients: int = 0
    active_services: int = 0
    active_professionals: int = 0
    upcoming: List[AppointmentPublic] = []
