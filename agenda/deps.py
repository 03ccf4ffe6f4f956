# agenda/deps.py

from typing import Optional

from fastapi import Depends
from sqlmodel import Session, select

from agenda.auth import get_current_user
from agenda.db import get_session
from agenda.errors import PermissionDeniedError
from agenda.models import ShopMember
from agenda.permissions import Capability, require_capability


def get_member_role(session: Session, shop_id: int, user_id: int) -> Optional[str]:
    member = session.exec(
        select(ShopMember)
        .where(ShopMember.shop_id == shop_id)
        .where(ShopMember.user_id == user_id)
    ).first()
    return member.role if member else None


def require_client(user: dict) -> None:
    require_capability(user["role"], Capability.book_self)


def shop_capability(capability: Capability):
    """Dependency: current user must hold ``capability`` in the path's shop."""

    def checker(
        shop_id: int,
        session: Session = Depends(get_session),
        current_user: dict = Depends(get_current_user),
    ) -> dict:
        role = get_member_role(session, shop_id, current_user["id"])
        if role is None:
            raise PermissionDeniedError("Not a member of this shop")
        require_capability(role, capability)
        return {**current_user, "shop_role": role}

    return checker
