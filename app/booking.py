"""Slot proposal: turn a (service, date, time, duration) choice into an appointment."""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from flask import current_app

from .actors import Actor, Client, SalonOwner, owns_salon
from .catalog import parse_minutes
from .errors import (Forbidden, InvalidInput, InvalidProfessional, InvalidService,
                     InvalidTime, MissingTime, NotFound, PastDate, SlotConflict)
from .events import publish_event, record_event
from .extensions import db
from .models import Appointment, Professional, Profile, Salon, Service

# Slots offered by the booking screen; any other time goes through custom_time.
FIXED_SLOTS = ("09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00", "17:00", "18:00")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time(value: str) -> time:
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidTime(f"'{value}' is not a valid time, use HH:MM")
    hours, minutes, seconds = match.groups()
    try:
        return time(int(hours), int(minutes), int(seconds or 0))
    except ValueError:
        raise InvalidTime(f"'{value}' is not a valid time, use HH:MM")


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInput("date must be YYYY-MM-DD")


def resolve_start_time(booking_date, slot: str | None = None, custom_time: str | None = None) -> datetime:
    """Combine the calendar day with the chosen time.

    A custom time wins over a fixed slot. No timezone conversion happens:
    the result is a naive local wall-clock datetime.
    """
    day = parse_date(booking_date)
    if custom_time is not None and str(custom_time).strip():
        chosen = parse_time(custom_time)
    elif slot is not None and str(slot).strip():
        if str(slot).strip() not in FIXED_SLOTS:
            raise InvalidTime(f"'{slot}' is not an offered slot; use a custom time instead")
        chosen = parse_time(str(slot))
    else:
        raise MissingTime()
    return datetime.combine(day, chosen)


def resolve_duration(service: Service, duration_override=None) -> tuple[int, int | None]:
    """Return (duration used for the booking, override to store or None)."""
    if duration_override is None or duration_override == "":
        return service.duration_minutes, None

    minutes = parse_minutes(duration_override)
    if minutes is None or minutes <= 0:
        raise InvalidInput("duration_override must be a positive number of minutes")
    if minutes == service.duration_minutes:
        return minutes, None
    return minutes, minutes


def find_conflict(
    salon_id: int,
    professional_id: int | None,
    starts_at: datetime,
    ends_at: datetime,
) -> Appointment | None:
    """First non-cancelled appointment whose interval overlaps [starts_at, ends_at).

    Appointments with a professional compete for that professional's time;
    appointments without one compete with the salon's other unassigned ones.
    """
    query = Appointment.query.filter(
        Appointment.salon_id == salon_id,
        Appointment.status != "cancelled",
        Appointment.starts_at < ends_at,
        Appointment.ends_at > starts_at,
    )
    if professional_id is None:
        query = query.filter(Appointment.professional_id.is_(None))
    else:
        query = query.filter(Appointment.professional_id == professional_id)
    return query.order_by(Appointment.starts_at.asc()).first()


def _bookable_service(service_id) -> Service:
    service = db.session.get(Service, service_id) if service_id is not None else None
    if service is None or not service.is_active or not (service.salon and service.salon.is_active):
        raise InvalidService()
    return service


def _bookable_professional(professional_id, salon_id: int) -> Professional:
    professional = db.session.get(Professional, professional_id)
    if professional is None or professional.salon_id != salon_id or not professional.is_active:
        raise InvalidProfessional()
    return professional


def propose_appointment(
    actor: Actor,
    service_id: int,
    booking_date,
    slot: str | None = None,
    custom_time: str | None = None,
    duration_override=None,
    professional_id: int | None = None,
    client_id: int | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Book a slot.

    Clients get a ``pending`` appointment for themselves. Salon owners book on
    behalf of a client, optionally with a professional, and the appointment
    starts ``confirmed``.
    """
    service = _bookable_service(service_id)

    if isinstance(actor, Client):
        if client_id is not None and client_id != actor.profile_id:
            raise Forbidden("Clients can only book for themselves")
        if professional_id is not None:
            raise Forbidden("Professionals are assigned by the salon")
        client_id = actor.profile_id
        status = "pending"
    elif isinstance(actor, SalonOwner):
        if not owns_salon(actor, service.salon_id):
            raise Forbidden("You can only book services of your own salon")
        if client_id is None:
            raise InvalidInput("client_id is required")
        client = db.session.get(Profile, client_id)
        if client is None or client.role != "client":
            raise NotFound("Client not found")
        if professional_id is not None:
            _bookable_professional(professional_id, service.salon_id)
        status = "confirmed"
    else:
        raise Forbidden("Platform administrators do not book appointments")

    starts_at = resolve_start_time(booking_date, slot, custom_time)
    if starts_at < (now or datetime.now()):
        raise PastDate()

    duration, override = resolve_duration(service, duration_override)
    ends_at = starts_at + timedelta(minutes=duration)

    # Serialize bookings per salon so the overlap check and insert do not interleave.
    db.session.query(Salon).filter(Salon.salon_id == service.salon_id).with_for_update().one()

    conflicting = find_conflict(service.salon_id, professional_id, starts_at, ends_at)
    if conflicting is not None:
        db.session.rollback()
        current_app.logger.info(
            "Rejected booking at %s for salon %s: overlaps appointment %s",
            starts_at.isoformat(),
            service.salon_id,
            conflicting.appointment_id,
        )
        raise SlotConflict(
            f"This time overlaps an existing appointment from "
            f"{conflicting.starts_at.strftime('%H:%M')} to {conflicting.ends_at.strftime('%H:%M')}"
        )

    appointment = Appointment(
        client_id=client_id,
        salon_id=service.salon_id,
        service_id=service.service_id,
        professional_id=professional_id,
        starts_at=starts_at,
        ends_at=ends_at,
        duration_minutes=duration,
        duration_override_minutes=override,
        status=status,
        notes=(notes or "").strip() or None,
    )
    db.session.add(appointment)
    db.session.flush()  # Flush to get the ID for the event row

    event = record_event(appointment, "appointment_created", old_status=None)
    db.session.commit()

    current_app.logger.info(
        "Appointment %s created (%s) for client %s at %s",
        appointment.appointment_id,
        status,
        client_id,
        starts_at.isoformat(),
    )
    publish_event(event)
    return appointment
