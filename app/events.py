"""Appointment events: outbox rows published on the app's event bus.

Creation and status changes write an ``AppointmentEvent`` row in the same
transaction as the change itself. After the commit the row is published to
the subscribers of the running app and marked delivered. A row that fails to
publish stays undelivered and is picked up again by ``redeliver_pending``, so
subscribers must tolerate seeing the same event more than once.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, event_bus
from .models import Appointment, AppointmentEvent, utc_now


def record_event(appointment: Appointment, kind: str, old_status: str | None) -> AppointmentEvent:
    """Stage an outbox row for ``appointment``; the caller commits it."""
    event = AppointmentEvent(
        kind=kind,
        appointment_id=appointment.appointment_id,
        old_status=old_status,
        new_status=appointment.status,
        salon_id=appointment.salon_id,
        client_id=appointment.client_id,
    )
    db.session.add(event)
    return event


def publish_event(event: AppointmentEvent) -> bool:
    """Publish a committed outbox row and mark it delivered.

    Returns ``False`` when a subscriber or the commit fails; the row is left
    undelivered for ``redeliver_pending``.
    """
    try:
        event_bus.publish(event.to_payload())
        event.delivered_at = utc_now()
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to deliver appointment event %s", event.event_id, exc_info=exc
        )
        return False
    return True


def redeliver_pending(limit: int = 500) -> int:
    """Publish outbox rows that were never marked delivered. Returns how many succeeded."""
    pending = (
        AppointmentEvent.query.filter(AppointmentEvent.delivered_at.is_(None))
        .order_by(AppointmentEvent.event_id.asc())
        .limit(limit)
        .all()
    )
    delivered = 0
    for event in pending:
        if publish_event(event):
            delivered += 1
    if pending:
        current_app.logger.info("Redelivered %s of %s pending appointment events", delivered, len(pending))
    return delivered
