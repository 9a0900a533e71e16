"""Salon and platform summaries built from appointments and the live catalog."""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from .actors import Actor, SuperAdmin, owns_salon
from .catalog import get_salon
from .errors import Forbidden
from .extensions import db
from .models import APPOINTMENT_STATUSES, Appointment, Salon, Service


def _money(value) -> float:
    return float(Decimal(value or 0).quantize(Decimal("0.01")))


def salon_summary(actor: Actor, salon_id: int) -> dict[str, object]:
    get_salon(salon_id=salon_id)
    if not (owns_salon(actor, salon_id) or isinstance(actor, SuperAdmin)):
        raise Forbidden("Only the salon owner can see its analytics")

    rows = (
        db.session.query(Appointment.status, Service.service_id, Service.name, Service.price)
        .join(Service, Appointment.service_id == Service.service_id)
        .filter(Appointment.salon_id == salon_id)
        .all()
    )

    by_status = {status: 0 for status in APPOINTMENT_STATUSES}
    revenue = Decimal("0")
    expected_revenue = Decimal("0")
    by_service: dict[int, dict[str, object]] = {}

    for status, service_id, service_name, price in rows:
        by_status[status] += 1
        if status == "cancelled":
            continue
        expected_revenue += price
        entry = by_service.setdefault(
            service_id, {"service_id": service_id, "name": service_name, "revenue": Decimal("0"), "count": 0}
        )
        entry["revenue"] += price
        entry["count"] += 1
        if status == "completed":
            revenue += price

    non_cancelled = len(rows) - by_status["cancelled"]
    top_services = sorted(by_service.values(), key=lambda e: e["revenue"], reverse=True)[:5]

    return {
        "salon_id": salon_id,
        "total_appointments": len(rows),
        "by_status": by_status,
        "revenue": _money(revenue),
        "expected_revenue": _money(expected_revenue),
        "average_ticket": _money(expected_revenue / non_cancelled) if non_cancelled else 0.0,
        "top_services": [
            {**entry, "revenue": _money(entry["revenue"])} for entry in top_services
        ],
    }


def platform_summary(actor: Actor) -> dict[str, object]:
    if not isinstance(actor, SuperAdmin):
        raise Forbidden("Only the platform administrator can see platform stats")

    total_tenants = Salon.query.count()
    active_tenants = Salon.query.filter(Salon.is_active.is_(True)).count()
    completed_count, total_revenue = (
        db.session.query(func.count(Appointment.appointment_id), func.sum(Service.price))
        .join(Service, Appointment.service_id == Service.service_id)
        .filter(Appointment.status == "completed")
        .one()
    )

    return {
        "total_tenants": total_tenants,
        "active_tenants": active_tenants,
        "completed_appointments": completed_count,
        "total_revenue": _money(total_revenue),
    }
