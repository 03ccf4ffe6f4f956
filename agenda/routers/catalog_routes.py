# agenda/routers/catalog_routes.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from agenda.auth import find_user
from agenda.booking import get_shop
from agenda.busy import list_time_off
from agenda.db import get_session
from agenda.deps import shop_capability
from agenda.models import Appointment, Client, Professional, Service, TimeOff
from agenda.permissions import Capability
from agenda.routers.presenters import appointment_public, time_off_public
from agenda.schemas import (
    AppointmentPublic,
    ClientCreate,
    ClientPublic,
    ClientUpdate,
    ProfessionalCreate,
    ProfessionalPublic,
    ProfessionalUpdate,
    ServiceCreate,
    ServicePublic,
    ServiceUpdate,
    TimeOffCreate,
    TimeOffPublic,
)
from agenda.timeutils import get_zone, to_storage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/shops/{shop_id}",
    tags=["catalog"],
)


def _owned(row, shop_id: int, label: str):
    if row is None or row.shop_id != shop_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def _apply(row, changes) -> None:
    for key, value in changes.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(row, key, value)


# Services

@router.get("/services", response_model=List[ServicePublic])
def list_services(
    shop_id: int,
    active_only: bool = False,
    session: Session = Depends(get_session),
):
    # Public: clients pick services before logging in
    get_shop(session, shop_id)
    stmt = select(Service).where(Service.shop_id == shop_id)
    if active_only:
        stmt = stmt.where(Service.active == True)  # noqa: E712
    return session.exec(stmt.order_by(Service.name)).all()


@router.post("/services", response_model=ServicePublic, status_code=201)
def create_service(
    shop_id: int,
    service: ServiceCreate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_services)),
):
    db_service = Service(shop_id=shop_id, **service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.patch("/services/{service_id}", response_model=ServicePublic)
def update_service(
    shop_id: int,
    service_id: int,
    changes: ServiceUpdate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_services)),
):
    # Booked appointments keep their own duration/price snapshot
    db_service = _owned(session.get(Service, service_id), shop_id, "Service")
    _apply(db_service, changes)
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


# Professionals

@router.get("/professionals", response_model=List[ProfessionalPublic])
def list_professionals(
    shop_id: int,
    active_only: bool = False,
    session: Session = Depends(get_session),
):
    get_shop(session, shop_id)
    stmt = select(Professional).where(Professional.shop_id == shop_id)
    if active_only:
        stmt = stmt.where(Professional.active == True)  # noqa: E712
    return session.exec(stmt.order_by(Professional.name)).all()


@router.post("/professionals", response_model=ProfessionalPublic, status_code=201)
def create_professional(
    shop_id: int,
    professional: ProfessionalCreate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_professionals)),
):
    user_id = None
    if professional.user_email:
        user = find_user(session, professional.user_email)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        user_id = user.id

    db_prof = Professional(
        shop_id=shop_id,
        user_id=user_id,
        name=professional.name,
        phone=professional.phone,
        active=professional.active,
    )
    session.add(db_prof)
    session.commit()
    session.refresh(db_prof)
    return db_prof


@router.patch("/professionals/{professional_id}", response_model=ProfessionalPublic)
def update_professional(
    shop_id: int,
    professional_id: int,
    changes: ProfessionalUpdate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_professionals)),
):
    # Deactivating keeps historical appointments linked
    db_prof = _owned(session.get(Professional, professional_id), shop_id, "Professional")
    _apply(db_prof, changes)
    session.add(db_prof)
    session.commit()
    session.refresh(db_prof)
    return db_prof


# Clients

@router.get("/clients", response_model=List[ClientPublic])
def list_clients(
    shop_id: int,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_appointments)),
):
    return session.exec(
        select(Client).where(Client.shop_id == shop_id).order_by(Client.name)
    ).all()


@router.post("/clients", response_model=ClientPublic, status_code=201)
def create_client(
    shop_id: int,
    client: ClientCreate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_clients)),
):
    db_client = Client(shop_id=shop_id, **client.model_dump())
    session.add(db_client)
    session.commit()
    session.refresh(db_client)
    return db_client


@router.patch("/clients/{client_id}", response_model=ClientPublic)
def update_client(
    shop_id: int,
    client_id: int,
    changes: ClientUpdate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_clients)),
):
    db_client = _owned(session.get(Client, client_id), shop_id, "Client")
    _apply(db_client, changes)
    session.add(db_client)
    session.commit()
    session.refresh(db_client)
    return db_client


@router.get("/clients/{client_id}/appointments", response_model=List[AppointmentPublic])
def client_history(
    shop_id: int,
    client_id: int,
    limit: int = Query(default=20, ge=1, le=100),
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_appointments)),
):
    # Newest first, every status
    _owned(session.get(Client, client_id), shop_id, "Client")
    appts = session.exec(
        select(Appointment)
        .where(Appointment.shop_id == shop_id)
        .where(Appointment.client_id == client_id)
        .order_by(Appointment.start_at.desc(), Appointment.id.desc())
        .limit(limit)
    ).all()
    return [appointment_public(session, a) for a in appts]


# Time off

@router.get("/time-off", response_model=List[TimeOffPublic])
def read_time_off(
    shop_id: int,
    professional_id: Optional[int] = None,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.view_appointments)),
):
    return [time_off_public(b) for b in list_time_off(session, shop_id, professional_id)]


@router.post("/time-off", response_model=TimeOffPublic, status_code=201)
def create_time_off(
    shop_id: int,
    block: TimeOffCreate,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_time_off)),
):
    shop = get_shop(session, shop_id)
    tz = get_zone(shop.timezone)

    if block.professional_id is not None:
        _owned(session.get(Professional, block.professional_id), shop_id, "Professional")

    start_at = to_storage(block.start_at, tz)
    end_at = to_storage(block.end_at, tz)
    if start_at >= end_at:
        raise HTTPException(status_code=422, detail="start_at must be before end_at")

    # Time off is additive; overlapping blocks are allowed
    db_block = TimeOff(
        shop_id=shop_id,
        professional_id=block.professional_id,
        start_at=start_at,
        end_at=end_at,
        reason=block.reason,
    )
    session.add(db_block)
    session.commit()
    session.refresh(db_block)

    logger.info("Time off %s added to shop %s", db_block.id, shop_id)
    return time_off_public(db_block)


@router.delete("/time-off/{time_off_id}", status_code=204)
def delete_time_off(
    shop_id: int,
    time_off_id: int,
    session: Session = Depends(get_session),
    _member: dict = Depends(shop_capability(Capability.manage_time_off)),
):
    db_block = _owned(session.get(TimeOff, time_off_id), shop_id, "Time off")
    session.delete(db_block)
    session.commit()
