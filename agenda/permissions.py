# agenda/permissions.py

from enum import Enum
from typing import Dict, FrozenSet

from agenda.errors import PermissionDeniedError


class Capability(str, Enum):
    manage_shop = "manage_shop"
    manage_hours = "manage_hours"
    manage_services = "manage_services"
    manage_professionals = "manage_professionals"
    manage_clients = "manage_clients"
    manage_time_off = "manage_time_off"
    manage_members = "manage_members"
    view_shop = "view_shop"
    view_appointments = "view_appointments"
    create_appointment = "create_appointment"
    update_appointment_status = "update_appointment_status"
    view_dashboard = "view_dashboard"
    book_self = "book_self"
    view_own_appointments = "view_own_appointments"
    cancel_own_appointment = "cancel_own_appointment"


_STAFF_COMMON = frozenset({
    Capability.view_shop,
    Capability.view_appointments,
    Capability.create_appointment,
    Capability.update_appointment_status,
    Capability.view_dashboard,
})

_CLIENT = frozenset({
    Capability.book_self,
    Capability.view_own_appointments,
    Capability.cancel_own_appointment,
})

# role -> capabilities; consulted once per operation
CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    "admin": frozenset(Capability) - _CLIENT,
    "reception": _STAFF_COMMON | {Capability.manage_clients},
    "professional": _STAFF_COMMON,
    "client": _CLIENT,
}


def can(role: str, capability: Capability) -> bool:
    return capability in CAPABILITIES.get(role, frozenset())


def require_capability(role: str, capability: Capability) -> None:
    if not can(role, capability):
        raise PermissionDeniedError("Forbidden")
