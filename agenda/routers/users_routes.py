# agenda/routers/users_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from agenda.auth import find_user, get_current_user, hash_password, normalize_email
from agenda.db import get_session
from agenda.models import Shop, ShopMember, User
from agenda.schemas import MembershipPublic, UserCreate, UserPublic

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.get("/me/shops", response_model=List[MembershipPublic])
def my_shops(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # The caller picks a shop and passes its id explicitly on every request
    rows = session.exec(
        select(ShopMember, Shop)
        .where(ShopMember.shop_id == Shop.id)
        .where(ShopMember.user_id == current_user["id"])
        .order_by(Shop.name)
    ).all()
    return [
        {"shop_id": shop.id, "name": shop.name, "slug": shop.slug, "role": member.role}
        for member, shop in rows
    ]


@router.post("/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    email = normalize_email(user.email)
    if find_user(session, email) is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    db_user = User(
        email=email,
        password_hash=hash_password(user.password),
        role=user.role.value,
    )
    session.add(db_user)
    try:
        session.commit()
    except IntegrityError:
        # Concurrent sign-up with the same email
        session.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    session.refresh(db_user)
    return db_user
