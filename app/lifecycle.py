"""Appointment lifecycle state machine.

pending -> confirmed            salon owner
pending -> cancelled            client or salon owner
confirmed -> cancelled          client or salon owner
confirmed -> completed          salon owner

``cancelled`` and ``completed`` are terminal. Status writes are
compare-and-set against the persisted status so two concurrent requests on
the same appointment cannot both succeed.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from .actors import Actor, is_appointment_client, is_party_to, owns_salon
from .errors import Forbidden, InvalidInput, InvalidTransition, NotFound, StaleStatus
from .events import publish_event, record_event
from .extensions import db
from .models import APPOINTMENT_STATUSES, Appointment, utc_now

CLIENT = "client"
OWNER = "owner"

TRANSITIONS: dict[tuple[str, str], frozenset[str]] = {
    ("pending", "confirmed"): frozenset({OWNER}),
    ("pending", "cancelled"): frozenset({CLIENT, OWNER}),
    ("confirmed", "cancelled"): frozenset({CLIENT, OWNER}),
    ("confirmed", "completed"): frozenset({OWNER}),
}


def allowed_targets(status: str) -> list[str]:
    return [target for (source, target) in TRANSITIONS if source == status]


def evaluate_transition(actor: Actor, appointment: Appointment, requested_status: str) -> str:
    """Decide whether ``actor`` may move ``appointment`` to ``requested_status``.

    Pure: reads the appointment as given and returns the new status, or
    raises ``Forbidden`` / ``InvalidTransition``. An actor that is neither the
    appointment's client nor its salon's owner is refused before the
    transition table is consulted.
    """
    if not is_party_to(actor, appointment):
        raise Forbidden("You may not modify another client's appointment")

    if requested_status not in APPOINTMENT_STATUSES:
        raise InvalidInput(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")

    roles = TRANSITIONS.get((appointment.status, requested_status))
    if roles is None:
        raise InvalidTransition(appointment.status, requested_status)

    if OWNER in roles and owns_salon(actor, appointment.salon_id):
        return requested_status
    if CLIENT in roles and is_appointment_client(actor, appointment):
        return requested_status

    raise Forbidden(f"Only the salon can mark an appointment as {requested_status}")


def transition_appointment(
    actor: Actor,
    appointment_id: int,
    requested_status: str,
    expected_status: str | None = None,
) -> Appointment:
    """Apply a status change and emit exactly one ``status_changed`` event.

    ``expected_status`` is the status the caller last saw; when given it must
    match the persisted one.
    """
    appointment = db.session.get(Appointment, appointment_id, populate_existing=True)
    if appointment is None:
        raise NotFound("Appointment not found")

    current_status = appointment.status
    new_status = evaluate_transition(actor, appointment, requested_status)

    if expected_status is not None and expected_status != current_status:
        current_app.logger.warning(
            "Stale status change on appointment %s: expected %s, found %s",
            appointment_id,
            expected_status,
            current_status,
        )
        raise StaleStatus(
            f"Appointment is now '{current_status}', not '{expected_status}'. Reload and try again."
        )

    result = db.session.execute(
        update(Appointment)
        .where(
            Appointment.appointment_id == appointment_id,
            Appointment.status == current_status,
        )
        .values(status=new_status, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        current_app.logger.warning("Lost status race on appointment %s", appointment_id)
        raise StaleStatus()

    db.session.expire(appointment)
    event = record_event(appointment, "status_changed", old_status=current_status)
    db.session.commit()

    current_app.logger.info(
        "Appointment %s: %s -> %s by %s",
        appointment_id,
        current_status,
        new_status,
        type(actor).__name__,
    )
    publish_event(event)
    return appointment
