"""Database models for the salon booking backend."""
from __future__ import annotations

from datetime import datetime, timezone

from .extensions import db

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed")
TERMINAL_STATUSES = ("cancelled", "completed")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Profile(db.Model):
    __tablename__ = "profiles"

    profile_id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(150), nullable=False)
    role = db.Column(
        db.Enum(
            "client",
            "admin",
            "super_admin",
            name="profile_role",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="client",
    )
    avatar_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    salon = db.relationship("Salon", back_populates="owner", uselist=False)

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.profile_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "avatar_url": self.avatar_url,
        }


class Salon(db.Model):
    __tablename__ = "salons"

    salon_id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(
        db.Integer, db.ForeignKey("profiles.profile_id"), nullable=False, unique=True
    )
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    address = db.Column(db.String(255))
    phone = db.Column(db.String(30))
    image_url = db.Column(db.String(500))
    # Day name -> free-text range, e.g. {"monday": "09:00 - 19:00"}
    opening_hours = db.Column(db.JSON, nullable=True, default=dict)
    differentiators = db.Column(db.JSON, nullable=True, default=list)
    detailed_history = db.Column(db.Text)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    owner = db.relationship("Profile", back_populates="salon")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.salon_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "image_url": self.image_url,
            "opening_hours": self.opening_hours or {},
            "differentiators": self.differentiators or [],
            "detailed_history": self.detailed_history,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Service(db.Model):
    """Priced, timed offering in a salon's catalog."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    category = db.Column(db.String(100))
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    salon = db.relationship("Salon")

    __table_args__ = (
        db.CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "salon_id": self.salon_id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price) if self.price is not None else None,
            "duration_minutes": self.duration_minutes,
            "is_active": bool(self.is_active),
            "category": self.category,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Professional(db.Model):
    """Staff member optionally assigned to appointments."""

    __tablename__ = "professionals"

    professional_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    specialty = db.Column(db.String(150))
    avatar_url = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    salon = db.relationship("Salon")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.professional_id,
            "salon_id": self.salon_id,
            "name": self.name,
            "specialty": self.specialty,
            "avatar_url": self.avatar_url,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Appointment(db.Model):
    """A client's booking of a service at a salon."""

    __tablename__ = "appointments"

    appointment_id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("profiles.profile_id"), nullable=False)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    professional_id = db.Column(
        db.Integer, db.ForeignKey("professionals.professional_id"), nullable=True
    )
    # Local wall-clock time, stored without an offset.
    starts_at = db.Column(db.DateTime, nullable=False)
    ends_at = db.Column(db.DateTime, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)
    duration_override_minutes = db.Column(db.Integer, nullable=True)
    status = db.Column(
        db.Enum(
            *APPOINTMENT_STATUSES,
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    salon = db.relationship("Salon")
    service = db.relationship("Service")
    professional = db.relationship("Professional")
    client = db.relationship("Profile")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "client_id": self.client_id,
            "client": {
                "id": self.client.profile_id,
                "full_name": self.client.full_name,
                "email": self.client.email,
            } if self.client else None,
            "salon_id": self.salon_id,
            "salon_name": self.salon.name if self.salon else None,
            "service_id": self.service_id,
            # Price is read from the live catalog, not frozen at booking time.
            "service": {
                "id": self.service.service_id,
                "name": self.service.name,
                "price": float(self.service.price),
                "duration_minutes": self.service.duration_minutes,
            } if self.service else None,
            "professional_id": self.professional_id,
            "professional": {
                "id": self.professional.professional_id,
                "name": self.professional.name,
            } if self.professional else None,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "ends_at": self.ends_at.isoformat() if self.ends_at else None,
            "duration_minutes": self.duration_minutes,
            "duration_override_minutes": self.duration_override_minutes,
            "status": self.status,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Review(db.Model):
    """Client rating of a salon after a completed appointment."""

    __tablename__ = "reviews"

    review_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    client_id = db.Column(db.Integer, db.ForeignKey("profiles.profile_id"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)  # 1-5 stars
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    salon = db.relationship("Salon")
    client = db.relationship("Profile")

    __table_args__ = (
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.review_id,
            "salon_id": self.salon_id,
            "client_id": self.client_id,
            "client_name": self.client.full_name if self.client else "Anonymous",
            "rating": self.rating,
            "comment": self.comment,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class AppointmentEvent(db.Model):
    """Outbox row written in the same transaction as the change it describes."""

    __tablename__ = "appointment_events"

    event_id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(
        db.Enum(
            "appointment_created",
            "status_changed",
            name="appointment_event_kind",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False
    )
    old_status = db.Column(db.String(20), nullable=True)
    new_status = db.Column(db.String(20), nullable=False)
    salon_id = db.Column(db.Integer, nullable=False)
    client_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    delivered_at = db.Column(db.DateTime, nullable=True)

    def to_payload(self) -> dict[str, object]:
        return {
            "event_id": self.event_id,
            "kind": self.kind,
            "appointment_id": self.appointment_id,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "salon_id": self.salon_id,
            "client_id": self.client_id,
        }


class Notification(db.Model):
    __tablename__ = "notifications"

    notification_id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.profile_id"), nullable=False)
    appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=True
    )
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(
        db.Enum(
            "appointment_requested",
            "appointment_confirmed",
            "appointment_cancelled",
            "appointment_completed",
            "appointment_reminder",
            name="notification_type",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    profile = db.relationship("Profile")
    appointment = db.relationship("Appointment")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.notification_id,
            "profile_id": self.profile_id,
            "appointment_id": self.appointment_id,
            "title": self.title,
            "message": self.message,
            "notification_type": self.notification_type,
            "is_read": bool(self.is_read),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class NotificationLedger(db.Model):
    """Record of alerts already sent, keyed by appointment, kind and recipient."""

    __tablename__ = "notification_ledger"

    ledger_id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False
    )
    # e.g. "created:pending", "status:confirmed", "reminder:30min"
    kind = db.Column(db.String(50), nullable=False)
    recipient_id = db.Column(db.Integer, db.ForeignKey("profiles.profile_id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        db.UniqueConstraint(
            "appointment_id", "kind", "recipient_id", name="uq_notification_ledger_key"
        ),
    )
