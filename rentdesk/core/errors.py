"""Domain errors raised by the booking and payment services.

Each error carries the HTTP status the API answers with and a short machine
code; ``rentdesk.main`` renders them uniformly.
"""


class RentalError(Exception):
    status_code = 400
    code = "rental_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(RentalError):
    status_code = 400
    code = "validation_error"


class InvalidStateTransition(ValidationError):
    status_code = 409
    code = "invalid_state_transition"

    def __init__(self, current: str, requested: str, message: str | None = None):
        super().__init__(message or f"cannot move booking from {current} to {requested}")
        self.current = current
        self.requested = requested

    def to_dict(self) -> dict:
        return {**super().to_dict(), "current": self.current, "requested": self.requested}


class NotFoundError(RentalError):
    status_code = 404
    code = "not_found"


class ConcurrencyConflict(RentalError):
    status_code = 409
    code = "concurrency_conflict"


class ExternalDispatchError(RentalError):
    status_code = 502
    code = "external_dispatch_error"


class ConfigurationError(RentalError):
    status_code = 500
    code = "configuration_error"
