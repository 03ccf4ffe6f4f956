# agenda/routers/presenters.py

from sqlmodel import Session

from agenda.booking import get_appointment_services
from agenda.core import Interval
from agenda.models import Appointment, TimeOff
from agenda.timeutils import from_storage


def appointment_public(session: Session, appt: Appointment) -> dict:
    # Stored naive UTC -> aware UTC on the wire
    return {
        "id": appt.id,
        "shop_id": appt.shop_id,
        "client_id": appt.client_id,
        "professional_id": appt.professional_id,
        "start_at": from_storage(appt.start_at),
        "end_at": from_storage(appt.end_at),
        "status": appt.status,
        "notes": appt.notes,
        "services": [
            {
                "service_id": s.service_id,
                "duration_minutes": s.duration_minutes,
                "price": s.price,
            }
            for s in get_appointment_services(session, appt.id)
        ],
    }


def time_off_public(block: TimeOff) -> dict:
    return {
        "id": block.id,
        "start_at": from_storage(block.start_at),
        "end_at": from_storage(block.end_at),
        "professional_id": block.professional_id,
        "reason": block.reason,
    }


def slot_public(slot: Interval) -> dict:
    return {"slot_start": slot.start, "slot_end": slot.end}
