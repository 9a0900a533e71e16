"""HTTP routes for the salon booking backend."""
from __future__ import annotations

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import analytics, booking, catalog, deletion_guard, lifecycle, notifications, reviews
from .actors import Client, SalonOwner, SuperAdmin
from .auth import current_actor
from .errors import Forbidden, InvalidInput
from .extensions import db
from .models import APPOINTMENT_STATUSES, Appointment

bp = Blueprint("api", __name__)


def register_routes(app: Flask) -> None:
    app.register_blueprint(bp)


def _database_error(message: str, exc: SQLAlchemyError):
    db.session.rollback()
    current_app.logger.exception(message, exc_info=exc)
    return jsonify({"error": "database_error"}), 500


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object")
    return payload


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# ============================================================================
# Salons and catalog
# ============================================================================

@bp.get("/salons")
def list_salons() -> tuple[dict[str, object], int]:
    """Return active salons for discovery, with their rating summary.
    ---
    tags:
      - Salons
    parameters:
      - name: q
        in: query
        type: string
        required: false
        description: Match against salon name or address
    responses:
      200:
        description: List of active salons
      500:
        description: Database error
    """
    try:
        payload = []
        for salon in catalog.list_active_salons(request.args.get("q")):
            salon_data = salon.to_dict()
            salon_data.update(reviews.rating_summary(salon.salon_id))
            payload.append(salon_data)
        return jsonify({"salons": payload}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch salons", exc)


@bp.get("/salons/<int:salon_id>")
def get_salon_details(salon_id: int) -> tuple[dict[str, object], int]:
    """Get salon details with its active services and professionals.
    ---
    tags:
      - Salons
    parameters:
      - name: salon_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: Salon details with services and professionals
      404:
        description: Salon not found
    """
    try:
        salon = catalog.get_salon(salon_id=salon_id)
        salon_data = salon.to_dict()
        salon_data["services"] = [
            service.to_dict() for service in catalog.list_active_services(salon_id, newest_first=False)
        ]
        salon_data["professionals"] = [
            professional.to_dict() for professional in catalog.list_active_professionals(salon_id)
        ]
        salon_data.update(reviews.rating_summary(salon_id))
        return jsonify({"salon": salon_data}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch salon details", exc)


@bp.get("/me/salon")
def get_my_salon() -> tuple[dict[str, object], int]:
    """Salon owned by the caller. 404 means onboarding is not finished."""
    try:
        actor = current_actor()
        salon = catalog.get_salon(owner_id=actor.profile_id)
        return jsonify({"salon": salon.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch owner salon", exc)


@bp.post("/salons")
def create_salon() -> tuple[dict[str, object], int]:
    """Register the caller's salon during onboarding.
    ---
    tags:
      - Salons
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            description:
              type: string
            address:
              type: string
            phone:
              type: string
            opening_hours:
              type: object
            differentiators:
              type: array
              items:
                type: string
          required:
            - name
    responses:
      201:
        description: Salon created
      400:
        description: Invalid payload or salon already registered
      403:
        description: Caller is not an admin profile
    """
    try:
        salon = catalog.create_salon(current_actor(), _json_body())
        return jsonify({"salon": salon.to_dict()}), 201
    except SQLAlchemyError as exc:
        return _database_error("Failed to create salon", exc)


@bp.put("/salons/<int:salon_id>")
def update_salon_details(salon_id: int) -> tuple[dict[str, object], int]:
    """Update salon details, opening hours and differentiators.
    ---
    tags:
      - Salons
    parameters:
      - name: salon_id
        in: path
        type: integer
        required: true
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            address:
              type: string
            phone:
              type: string
            opening_hours:
              type: object
            differentiators:
              type: array
              items:
                type: string
            detailed_history:
              type: string
    responses:
      200:
        description: Salon updated
      400:
        description: Invalid payload
      403:
        description: Not the salon owner
      404:
        description: Salon not found
    """
    try:
        salon = catalog.update_salon(current_actor(), salon_id, _json_body())
        return jsonify({"salon": salon.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to update salon", exc)


@bp.put("/salons/<int:salon_id>/active")
def set_salon_active(salon_id: int) -> tuple[dict[str, object], int]:
    """Activate or deactivate a salon (owner or platform admin)."""
    try:
        payload = _json_body()
        if not isinstance(payload.get("is_active"), bool):
            raise InvalidInput("is_active must be true or false")
        salon = catalog.set_salon_active(current_actor(), salon_id, payload["is_active"])
        return jsonify({"salon": salon.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to update salon status", exc)


@bp.get("/salons/<int:salon_id>/services")
def list_services(salon_id: int) -> tuple[dict[str, list[dict[str, object]]], int]:
    """List a salon's services.

    Clients see active services; the owner passes ``include_inactive=true``
    to manage the whole catalog.
    """
    try:
        catalog.get_salon(salon_id=salon_id)
        if request.args.get("include_inactive", "false").lower() == "true":
            actor = current_actor()
            if not isinstance(actor, SalonOwner) or actor.salon_id != salon_id:
                raise Forbidden("Only the salon owner can see inactive services")
            services = catalog.list_services(salon_id)
        else:
            services = catalog.list_active_services(salon_id)
        return jsonify({"services": [service.to_dict() for service in services]}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch services", exc)


@bp.post("/salons/<int:salon_id>/services")
def create_service(salon_id: int) -> tuple[dict[str, object], int]:
    """Create a service (salon owner only).
    ---
    tags:
      - Services
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            price:
              type: number
            duration_minutes:
              type: integer
            category:
              type: string
          required:
            - name
            - price
            - duration_minutes
    responses:
      201:
        description: Service created
      400:
        description: Invalid payload
      403:
        description: Not the salon owner
    """
    try:
        service = catalog.create_service(current_actor(), salon_id, _json_body())
        return jsonify({"service": service.to_dict()}), 201
    except SQLAlchemyError as exc:
        return _database_error("Failed to create service", exc)


@bp.put("/services/<int:service_id>")
def update_service(service_id: int) -> tuple[dict[str, object], int]:
    try:
        service = catalog.update_service(current_actor(), service_id, _json_body())
        return jsonify({"service": service.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to update service", exc)


@bp.get("/services/<int:service_id>/deletion-check")
def check_service_deletion(service_id: int) -> tuple[dict[str, object], int]:
    """Report whether a service can be deleted and how many appointments block it."""
    try:
        check = deletion_guard.check_deletion(current_actor(), "service", service_id)
        return jsonify(check.to_dict()), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to check service references", exc)


@bp.delete("/services/<int:service_id>")
def delete_service(service_id: int) -> tuple[dict[str, str], int]:
    """Delete a service that no appointment references.
    ---
    tags:
      - Services
    parameters:
      - in: path
        name: service_id
        required: true
        schema:
          type: integer
    responses:
      200:
        description: Service deleted
      403:
        description: Not the salon owner
      404:
        description: Service not found
      409:
        description: Appointments reference this service; deactivate it instead
    """
    try:
        deletion_guard.delete_entity(current_actor(), "service", service_id)
        return jsonify({"message": "Service deleted successfully"}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to delete service", exc)


@bp.put("/services/<int:service_id>/deactivate")
def deactivate_service(service_id: int) -> tuple[dict[str, object], int]:
    try:
        service = deletion_guard.deactivate_entity(current_actor(), "service", service_id)
        return jsonify({"service": service.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to deactivate service", exc)


@bp.get("/salons/<int:salon_id>/professionals")
def list_professionals(salon_id: int) -> tuple[dict[str, list[dict[str, object]]], int]:
    try:
        catalog.get_salon(salon_id=salon_id)
        professionals = catalog.list_active_professionals(salon_id)
        return jsonify({"professionals": [p.to_dict() for p in professionals]}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch professionals", exc)


@bp.post("/salons/<int:salon_id>/professionals")
def create_professional(salon_id: int) -> tuple[dict[str, object], int]:
    try:
        professional = catalog.create_professional(current_actor(), salon_id, _json_body())
        return jsonify({"professional": professional.to_dict()}), 201
    except SQLAlchemyError as exc:
        return _database_error("Failed to create professional", exc)


@bp.put("/professionals/<int:professional_id>")
def update_professional(professional_id: int) -> tuple[dict[str, object], int]:
    try:
        professional = catalog.update_professional(current_actor(), professional_id, _json_body())
        return jsonify({"professional": professional.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to update professional", exc)


@bp.get("/professionals/<int:professional_id>/deletion-check")
def check_professional_deletion(professional_id: int) -> tuple[dict[str, object], int]:
    try:
        check = deletion_guard.check_deletion(current_actor(), "professional", professional_id)
        return jsonify(check.to_dict()), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to check professional references", exc)


@bp.delete("/professionals/<int:professional_id>")
def delete_professional(professional_id: int) -> tuple[dict[str, str], int]:
    """Delete a professional that no appointment references (409 otherwise)."""
    try:
        deletion_guard.delete_entity(current_actor(), "professional", professional_id)
        return jsonify({"message": "Professional deleted successfully"}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to delete professional", exc)


@bp.put("/professionals/<int:professional_id>/deactivate")
def deactivate_professional(professional_id: int) -> tuple[dict[str, object], int]:
    try:
        professional = deletion_guard.deactivate_entity(current_actor(), "professional", professional_id)
        return jsonify({"professional": professional.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to deactivate professional", exc)


@bp.put("/profiles/<int:profile_id>")
def update_profile(profile_id: int) -> tuple[dict[str, object], int]:
    """Update the caller's own name or avatar."""
    try:
        profile = catalog.update_profile(current_actor(), profile_id, _json_body())
        return jsonify({"profile": profile.to_dict_basic()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to update profile", exc)


@bp.get("/clients")
def list_clients() -> tuple[dict[str, object], int]:
    """Client profiles a salon owner can book for."""
    try:
        clients = catalog.list_clients(current_actor())
        return jsonify({"clients": [c.to_dict_basic() for c in clients]}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch clients", exc)


# ============================================================================
# Appointments
# ============================================================================

@bp.get("/appointments")
def list_appointments() -> tuple[dict[str, list[dict[str, object]]], int]:
    """Appointments visible to the caller.
    ---
    tags:
      - Appointments
    parameters:
      - name: status
        in: query
        type: string
        enum: [pending, confirmed, cancelled, completed]
      - name: salon_id
        in: query
        type: integer
        description: Required for platform administrators
    responses:
      200:
        description: Clients get their own appointments (newest first);
          salon owners get their salon's agenda (earliest first).
    """
    try:
        actor = current_actor()
        status = request.args.get("status")
        if status is not None and status not in APPOINTMENT_STATUSES:
            raise InvalidInput(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")

        if isinstance(actor, Client):
            query = Appointment.query.filter(Appointment.client_id == actor.profile_id)
            order_by = Appointment.starts_at.desc()
        elif isinstance(actor, SalonOwner):
            if actor.salon_id is None:
                return jsonify({"appointments": []}), 200
            query = Appointment.query.filter(Appointment.salon_id == actor.salon_id)
            order_by = Appointment.starts_at.asc()
        else:
            salon_id = request.args.get("salon_id", type=int)
            if salon_id is None:
                raise InvalidInput("salon_id is required")
            query = Appointment.query.filter(Appointment.salon_id == salon_id)
            order_by = Appointment.starts_at.desc()

        if status:
            query = query.filter(Appointment.status == status)

        appointments = query.order_by(order_by).all()
        return jsonify({"appointments": [appt.to_dict() for appt in appointments]}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch appointments", exc)


@bp.get("/appointments/<int:appointment_id>")
def get_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    try:
        actor = current_actor()
        appointment = db.session.get(Appointment, appointment_id)
        if appointment is None:
            return jsonify({"error": "not_found", "message": "Appointment not found"}), 404

        visible = (
            isinstance(actor, SuperAdmin)
            or (isinstance(actor, Client) and actor.profile_id == appointment.client_id)
            or (isinstance(actor, SalonOwner) and actor.salon_id == appointment.salon_id)
        )
        if not visible:
            raise Forbidden("You may not view another client's appointment")

        payload = appointment.to_dict()
        payload["allowed_statuses"] = lifecycle.allowed_targets(appointment.status)
        return jsonify({"appointment": payload}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch appointment", exc)


@bp.post("/appointments")
def create_appointment() -> tuple[dict[str, object], int]:
    """Book an appointment.

    Clients get a pending request; salon owners booking for a client get a
    confirmed appointment.
    ---
    tags:
      - Appointments
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            service_id:
              type: integer
            date:
              type: string
              format: date
            time:
              type: string
              enum: ["09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00", "17:00", "18:00"]
            custom_time:
              type: string
              example: "14:30"
            duration_override:
              type: integer
            professional_id:
              type: integer
              description: Salon owners only
            client_id:
              type: integer
              description: Salon owners only
            notes:
              type: string
          required:
            - service_id
            - date
    responses:
      201:
        description: Appointment created
      400:
        description: Invalid service, missing/invalid time or date in the past
      403:
        description: Caller may not book this
      409:
        description: Slot overlaps an existing appointment
    """
    try:
        actor = current_actor()
        payload = _json_body()

        appointment = booking.propose_appointment(
            actor,
            service_id=payload.get("service_id"),
            booking_date=payload.get("date"),
            slot=payload.get("time"),
            custom_time=payload.get("custom_time"),
            duration_override=payload.get("duration_override"),
            professional_id=payload.get("professional_id"),
            client_id=payload.get("client_id"),
            notes=payload.get("notes"),
        )
        return jsonify({"message": "Appointment created successfully", "appointment": appointment.to_dict()}), 201
    except SQLAlchemyError as exc:
        return _database_error("Failed to create appointment", exc)


@bp.put("/appointments/<int:appointment_id>/status")
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Move an appointment through its lifecycle.
    ---
    tags:
      - Appointments
    parameters:
      - in: path
        name: appointment_id
        required: true
        schema:
          type: integer
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [confirmed, cancelled, completed]
            expected_status:
              type: string
              description: Status the caller last saw; rejected with 409 if it changed
    responses:
      200:
        description: Appointment status updated
      400:
        description: Transition not allowed
      403:
        description: Caller is not allowed to make this change
      404:
        description: Appointment not found
      409:
        description: Status changed concurrently
    """
    try:
        payload = _json_body()
        if "status" not in payload:
            return jsonify({"error": "invalid_input", "message": "status is required"}), 400

        appointment = lifecycle.transition_appointment(
            current_actor(),
            appointment_id,
            payload["status"],
            expected_status=payload.get("expected_status"),
        )
        return jsonify({"appointment": appointment.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to update appointment status", exc)


# ============================================================================
# Reviews
# ============================================================================

@bp.get("/salons/<int:salon_id>/reviews")
def get_salon_reviews(salon_id: int) -> tuple[dict[str, object], int]:
    try:
        salon_reviews = reviews.list_reviews(salon_id)
        payload = {"reviews": [review.to_dict() for review in salon_reviews]}
        payload.update(reviews.rating_summary(salon_id))
        return jsonify(payload), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch reviews", exc)


@bp.post("/salons/<int:salon_id>/reviews")
def create_review(salon_id: int) -> tuple[dict[str, object], int]:
    """Review a salon after a completed appointment.
    ---
    tags:
      - Reviews
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            rating:
              type: integer
              minimum: 1
              maximum: 5
            comment:
              type: string
    responses:
      201:
        description: Review created
      400:
        description: Invalid rating or no completed appointment
    """
    try:
        payload = _json_body()
        review = reviews.create_review(
            current_actor(), salon_id, payload.get("rating"), payload.get("comment")
        )
        return jsonify({"review": review.to_dict()}), 201
    except SQLAlchemyError as exc:
        return _database_error("Failed to create review", exc)


# ============================================================================
# Analytics
# ============================================================================

@bp.get("/salons/<int:salon_id>/analytics")
def get_salon_analytics(salon_id: int) -> tuple[dict[str, object], int]:
    try:
        return jsonify(analytics.salon_summary(current_actor(), salon_id)), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to compute salon analytics", exc)


@bp.get("/admin/platform-stats")
def get_platform_stats() -> tuple[dict[str, object], int]:
    try:
        return jsonify(analytics.platform_summary(current_actor())), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to compute platform stats", exc)


# ============================================================================
# Notifications
# ============================================================================

@bp.get("/profiles/<int:profile_id>/notifications")
def get_notifications(profile_id: int) -> tuple[dict[str, object], int]:
    """Get the caller's notifications with pagination.
    ---
    tags:
      - Notifications
    parameters:
      - name: profile_id
        in: path
        type: integer
        required: true
      - name: page
        in: query
        type: integer
        default: 1
      - name: limit
        in: query
        type: integer
        default: 20
        maximum: 50
      - name: unread_only
        in: query
        type: boolean
        default: false
    responses:
      200:
        description: List of notifications with pagination
      400:
        description: Invalid parameters
    """
    try:
        page = max(1, int(request.args.get("page", 1)))
        limit = min(50, max(1, int(request.args.get("limit", 20))))
    except (ValueError, TypeError) as exc:
        current_app.logger.warning(f"Invalid pagination parameters: {exc}")
        return jsonify({"error": "invalid_parameters"}), 400

    try:
        unread_only = request.args.get("unread_only", "false").lower() == "true"
        items, total, unread_count = notifications.list_notifications(
            current_actor(), profile_id, page=page, limit=limit, unread_only=unread_only
        )
        return (
            jsonify({
                "notifications": [n.to_dict() for n in items],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "pages": (total + limit - 1) // limit,
                },
                "unread_count": unread_count,
            }),
            200,
        )
    except SQLAlchemyError as exc:
        return _database_error("Failed to fetch notifications", exc)


@bp.put("/notifications/<int:notification_id>/read")
def mark_notification_as_read(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        notification = notifications.mark_notification_read(current_actor(), notification_id)
        return jsonify({"notification": notification.to_dict()}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to mark notification as read", exc)


@bp.put("/profiles/<int:profile_id>/notifications/read-all")
def mark_all_notifications_as_read(profile_id: int) -> tuple[dict[str, object], int]:
    try:
        updated = notifications.mark_all_read(current_actor(), profile_id)
        return jsonify({"message": "All notifications marked as read", "updated": updated}), 200
    except SQLAlchemyError as exc:
        return _database_error("Failed to mark notifications as read", exc)
