"""Notification component: turns appointment events into inbox alerts.

Every alert goes through the idempotency ledger keyed by
(appointment, kind, recipient), so a redelivered event or a reminder pass
that runs twice never produces a second alert.
"""
from __future__ import annotations

from datetime import datetime, timedelta

from flask import Flask, current_app
from sqlalchemy import delete, select

from .actors import Actor
from .errors import Forbidden, NotFound
from .extensions import db, event_bus
from .models import (TERMINAL_STATUSES, Appointment, Notification, NotificationLedger,
                     Salon, utc_now)

REMINDER_WINDOW_MINUTES = 30


def _when(appointment: Appointment) -> str:
    return appointment.starts_at.strftime("%B %d, %Y at %H:%M")


def _service_name(appointment: Appointment) -> str:
    return appointment.service.name if appointment.service else "your service"


def _recipients(appointment: Appointment) -> dict[str, int]:
    salon = appointment.salon or db.session.get(Salon, appointment.salon_id)
    recipients = {"client": appointment.client_id}
    if salon is not None:
        recipients["owner"] = salon.owner_id
    return recipients


def notify_once(
    appointment: Appointment,
    kind: str,
    recipient_id: int,
    title: str,
    message: str,
    notification_type: str,
) -> Notification | None:
    """Stage an alert unless the ledger already has (appointment, kind, recipient)."""
    already_sent = NotificationLedger.query.filter_by(
        appointment_id=appointment.appointment_id,
        kind=kind,
        recipient_id=recipient_id,
    ).first()
    if already_sent is not None:
        current_app.logger.debug(
            "Skipping duplicate %s alert for appointment %s", kind, appointment.appointment_id
        )
        return None

    db.session.add(
        NotificationLedger(
            appointment_id=appointment.appointment_id,
            kind=kind,
            recipient_id=recipient_id,
        )
    )
    notification = Notification(
        profile_id=recipient_id,
        appointment_id=appointment.appointment_id,
        title=title,
        message=message,
        notification_type=notification_type,
    )
    db.session.add(notification)
    return notification


def handle_appointment_created(payload: dict) -> None:
    appointment = db.session.get(Appointment, payload["appointment_id"])
    if appointment is None:
        return

    recipients = _recipients(appointment)
    kind = f"created:{payload['new_status']}"
    service = _service_name(appointment)

    if payload["new_status"] == "pending":
        notify_once(
            appointment, kind, recipients["client"],
            "Booking Requested",
            f"Your request for {service} on {_when(appointment)} was sent to the salon.",
            "appointment_requested",
        )
        if "owner" in recipients:
            client_name = appointment.client.full_name if appointment.client else "A client"
            notify_once(
                appointment, kind, recipients["owner"],
                "New Pending Appointment",
                f"{client_name} requested {service} on {_when(appointment)}.",
                "appointment_requested",
            )
    else:
        for recipient_id in recipients.values():
            notify_once(
                appointment, kind, recipient_id,
                "Appointment Booked",
                f"{service} is booked for {_when(appointment)}.",
                "appointment_confirmed",
            )


STATUS_ALERTS = {
    "confirmed": ("Appointment Confirmed", "has been confirmed", "appointment_confirmed"),
    "cancelled": ("Appointment Cancelled", "has been cancelled", "appointment_cancelled"),
    "completed": ("Appointment Completed", "has been completed", "appointment_completed"),
}


def handle_status_changed(payload: dict) -> None:
    alert = STATUS_ALERTS.get(payload["new_status"])
    appointment = db.session.get(Appointment, payload["appointment_id"])
    if alert is None or appointment is None:
        return

    title, verb, notification_type = alert
    kind = f"status:{payload['new_status']}"
    message = f"The appointment for {_service_name(appointment)} on {_when(appointment)} {verb}."
    for recipient_id in _recipients(appointment).values():
        notify_once(appointment, kind, recipient_id, title, message, notification_type)


def register_notification_handlers(app: Flask) -> None:
    event_bus.subscribe("appointment_created", handle_appointment_created, app=app)
    event_bus.subscribe("status_changed", handle_status_changed, app=app)


def send_due_reminders(now: datetime | None = None) -> int:
    """Send day-of and 30-minute reminders for upcoming confirmed appointments."""
    now = now or datetime.now()
    end_of_day = datetime.combine(now.date(), datetime.max.time())
    horizon = max(end_of_day, now + timedelta(minutes=REMINDER_WINDOW_MINUTES))

    upcoming = (
        Appointment.query.filter(
            Appointment.status == "confirmed",
            Appointment.starts_at > now,
            Appointment.starts_at <= horizon,
        )
        .order_by(Appointment.starts_at.asc())
        .all()
    )

    sent = 0
    for appointment in upcoming:
        service = _service_name(appointment)
        minutes_left = (appointment.starts_at - now).total_seconds() / 60
        for recipient_id in _recipients(appointment).values():
            if appointment.starts_at.date() == now.date() and notify_once(
                appointment, "reminder:day", recipient_id,
                "Appointment Reminder",
                f"You have {service} today at {appointment.starts_at.strftime('%H:%M')}.",
                "appointment_reminder",
            ):
                sent += 1
            if minutes_left <= REMINDER_WINDOW_MINUTES and notify_once(
                appointment, "reminder:30min", recipient_id,
                "Appointment Soon",
                f"{service} starts in {REMINDER_WINDOW_MINUTES} minutes or less.",
                "appointment_reminder",
            ):
                sent += 1

    db.session.commit()
    if sent:
        current_app.logger.info("Sent %s appointment reminders", sent)
    return sent


def evict_ledger(now: datetime | None = None, retention_days: int | None = None) -> int:
    """Drop ledger entries of finished appointments older than the retention window."""
    if retention_days is None:
        retention_days = current_app.config.get("NOTIFICATION_LEDGER_RETENTION_DAYS", 30)
    cutoff = (now or utc_now()) - timedelta(days=retention_days)

    finished = select(Appointment.appointment_id).where(Appointment.status.in_(TERMINAL_STATUSES))
    result = db.session.execute(
        delete(NotificationLedger).where(
            NotificationLedger.created_at < cutoff,
            NotificationLedger.appointment_id.in_(finished),
        ),
        execution_options={"synchronize_session": False},
    )
    db.session.commit()
    current_app.logger.info("Evicted %s notification ledger entries", result.rowcount)
    return result.rowcount


def _require_self(actor: Actor, profile_id: int) -> None:
    if actor.profile_id != profile_id:
        raise Forbidden("You can only read your own notifications")


def list_notifications(
    actor: Actor, profile_id: int, page: int = 1, limit: int = 20, unread_only: bool = False
) -> tuple[list[Notification], int, int]:
    """Return (page of notifications, total, unread count), newest first."""
    _require_self(actor, profile_id)

    query = Notification.query.filter(Notification.profile_id == profile_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    total = query.count()
    notifications = (
        query.order_by(Notification.created_at.desc(), Notification.notification_id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )
    unread_count = Notification.query.filter(
        Notification.profile_id == profile_id,
        Notification.is_read.is_(False),
    ).count()
    return notifications, total, unread_count


def mark_notification_read(actor: Actor, notification_id: int) -> Notification:
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    _require_self(actor, notification.profile_id)

    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(actor: Actor, profile_id: int) -> int:
    _require_self(actor, profile_id)
    updated = Notification.query.filter(
        Notification.profile_id == profile_id,
        Notification.is_read.is_(False),
    ).update({"is_read": True}, synchronize_session=False)
    db.session.commit()
    return updated
