"""Domain errors raised by the scheduling core and their JSON rendering."""
from __future__ import annotations

from flask import Flask, jsonify


class SchedulingError(Exception):
    """Base class for errors the calling layer turns into user feedback."""

    status_code = 400
    code = "invalid_request"
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict[str, object]:
        return {"error": self.code, "message": self.message}


class NotFound(SchedulingError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class Unauthorized(SchedulingError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required"


class Forbidden(SchedulingError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to perform this action"


class InvalidTransition(SchedulingError):
    code = "invalid_transition"
    default_message = "Status change not allowed"

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class StaleStatus(SchedulingError):
    status_code = 409
    code = "stale_status"
    default_message = "Appointment status changed since it was last read"


class InvalidInput(SchedulingError):
    code = "invalid_input"


class InvalidService(SchedulingError):
    code = "invalid_service"
    default_message = "This service no longer exists or is not available"


class InvalidProfessional(SchedulingError):
    code = "invalid_professional"
    default_message = "This professional is not available at this salon"


class MissingTime(SchedulingError):
    code = "missing_time"
    default_message = "Choose a time slot or enter a custom time"


class InvalidTime(SchedulingError):
    code = "invalid_time"
    default_message = "Time must be HH:MM"


class PastDate(SchedulingError):
    code = "past_date"
    default_message = "Appointments cannot be booked in the past"


class SlotConflict(SchedulingError):
    status_code = 409
    code = "conflict"
    default_message = "This time slot overlaps an existing appointment"


class InvalidReview(SchedulingError):
    code = "invalid_review"
    default_message = "Reviews are only accepted after a completed appointment"


class ReferentialConflict(SchedulingError):
    status_code = 409
    code = "referential_conflict"

    def __init__(self, blocking_count: int, entity_type: str = "entity") -> None:
        super().__init__(
            f"Cannot delete: this {entity_type} has {blocking_count} appointment(s). "
            f"Deactivate it instead so clients no longer see it."
        )
        self.blocking_count = blocking_count

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["blocking_count"] = self.blocking_count
        return payload


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SchedulingError)
    def handle_scheduling_error(exc: SchedulingError):
        if isinstance(exc, Forbidden):
            app.logger.warning("Forbidden: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code
