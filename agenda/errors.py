"""
Domain exceptions raised by the scheduling core.
Routers never build HTTP errors for these; main.py maps them.
"""


class AgendaError(Exception):
    """Base exception for the agenda core."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(AgendaError):
    """Malformed request: fix the input and try again."""

    status_code = 422


class NotFoundError(ValidationError):
    """Unknown shop, professional, client, service or appointment."""

    status_code = 404


class ConflictError(AgendaError):
    """The professional already holds an active appointment in that interval."""

    status_code = 409

    def __init__(self, detail: str = "This time slot was just taken, pick another"):
        super().__init__(detail)


class UnavailableError(AgendaError):
    """No open business hours for the date, or the professional is inactive."""

    status_code = 422


class PermissionDeniedError(AgendaError):
    """The caller's role lacks the capability for the operation."""

    status_code = 403


class BackendError(AgendaError):
    """Storage failure other than the overlap constraint."""

    status_code = 503
