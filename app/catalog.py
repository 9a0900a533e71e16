"""Catalog model: salons, services and professionals a client can book."""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import or_

from .actors import Actor, SalonOwner, SuperAdmin, owns_salon
from .errors import Forbidden, InvalidInput, NotFound
from .extensions import db
from .models import Professional, Profile, Salon, Service

SERVICE_FIELDS = ("name", "description", "price", "duration_minutes", "category", "image_url", "is_active")
PROFESSIONAL_FIELDS = ("name", "specialty", "avatar_url", "is_active")
SALON_FIELDS = (
    "name",
    "description",
    "address",
    "phone",
    "image_url",
    "opening_hours",
    "differentiators",
    "detailed_history",
)


def list_active_services(salon_id: int, newest_first: bool = True) -> list[Service]:
    """Return the salon's active services.

    Management views list the newest first; discovery passes
    ``newest_first=False`` and gets them in storage order.
    """
    query = Service.query.filter(Service.salon_id == salon_id, Service.is_active.is_(True))
    if newest_first:
        query = query.order_by(Service.created_at.desc(), Service.service_id.desc())
    return query.all()


def list_services(salon_id: int) -> list[Service]:
    """Every service of the salon, active or not, newest first (owner view)."""
    return (
        Service.query.filter(Service.salon_id == salon_id)
        .order_by(Service.created_at.desc(), Service.service_id.desc())
        .all()
    )


def list_active_professionals(salon_id: int) -> list[Professional]:
    return (
        Professional.query.filter(
            Professional.salon_id == salon_id,
            Professional.is_active.is_(True),
        )
        .order_by(Professional.name.asc())
        .all()
    )


def list_active_salons(search: str | None = None) -> list[Salon]:
    """Active salons by name, optionally matching ``search`` in name or address."""
    query = Salon.query.filter(Salon.is_active.is_(True))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Salon.name.ilike(pattern), Salon.address.ilike(pattern)))
    return query.order_by(Salon.name.asc()).all()


def get_salon(salon_id: int | None = None, owner_id: int | None = None) -> Salon:
    """Look a salon up by id or by owner.

    Raises ``NotFound`` when nothing matches. Looked up by owner, that means
    the owner has not finished onboarding yet.
    """
    if (salon_id is None) == (owner_id is None):
        raise ValueError("Pass exactly one of salon_id or owner_id")

    if salon_id is not None:
        salon = db.session.get(Salon, salon_id)
    else:
        salon = Salon.query.filter_by(owner_id=owner_id).first()

    if salon is None:
        raise NotFound("Salon not found")
    return salon


def get_service(service_id: int) -> Service:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFound("Service not found")
    return service


def get_professional(professional_id: int) -> Professional:
    professional = db.session.get(Professional, professional_id)
    if professional is None:
        raise NotFound("Professional not found")
    return professional


def _require_owner(actor: Actor, salon_id: int) -> None:
    if not owns_salon(actor, salon_id):
        raise Forbidden("Only the salon owner can manage its catalog")


def _clean_name(value) -> str:
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise InvalidInput("name is required")
    return name


def _parse_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput("price must be a number")
    if not price.is_finite() or price < 0:
        raise InvalidInput("price must be zero or greater")
    return price.quantize(Decimal("0.01"))


def parse_minutes(value) -> int | None:
    """Whole number of minutes from an int or numeric string, else ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip(), re.ASCII):
        return int(value.strip())
    return None


def _parse_duration(value) -> int:
    duration = parse_minutes(value)
    if duration is None:
        raise InvalidInput("duration_minutes must be an integer")
    if duration <= 0:
        raise InvalidInput("duration_minutes must be greater than zero")
    return duration


def _salon_value(field: str, value):
    if field == "name":
        return _clean_name(value)
    if field == "opening_hours":
        if value is None:
            return {}
        if not isinstance(value, dict) or not all(
            isinstance(day, str) and isinstance(hours, str) for day, hours in value.items()
        ):
            raise InvalidInput("opening_hours must map each day to a text range")
        return value
    if field == "differentiators":
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise InvalidInput("differentiators must be a list of strings")
        return [item.strip() for item in value if item.strip()]
    if value is not None and not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string")
    return value


def create_salon(actor: Actor, data: dict) -> Salon:
    """Onboard the owner's salon. Each admin profile owns at most one."""
    if not isinstance(actor, SalonOwner):
        raise Forbidden("Only admin profiles can register a salon")
    if actor.salon_id is not None or Salon.query.filter_by(owner_id=actor.profile_id).first():
        raise InvalidInput("This profile already owns a salon")

    salon = Salon(owner_id=actor.profile_id, name=_clean_name(data.get("name")))
    for field in SALON_FIELDS[1:]:
        if field in data:
            setattr(salon, field, _salon_value(field, data[field]))
    db.session.add(salon)
    db.session.commit()
    current_app.logger.info("Salon %s created by profile %s", salon.salon_id, actor.profile_id)
    return salon


def update_salon(actor: Actor, salon_id: int, data: dict) -> Salon:
    """Edit the salon's details, hours and differentiators (owner only)."""
    salon = get_salon(salon_id=salon_id)
    if not owns_salon(actor, salon_id):
        raise Forbidden("Only the salon owner can edit its details")

    changes = {field: _salon_value(field, data[field]) for field in SALON_FIELDS if field in data}
    for field, value in changes.items():
        setattr(salon, field, value)

    db.session.commit()
    current_app.logger.info("Salon %s updated by profile %s", salon_id, actor.profile_id)
    return salon


def set_salon_active(actor: Actor, salon_id: int, is_active: bool) -> Salon:
    """Activate or deactivate a salon. Salons are never hard-deleted."""
    salon = get_salon(salon_id=salon_id)
    if not (isinstance(actor, SuperAdmin) or owns_salon(actor, salon_id)):
        raise Forbidden("Only the platform admin or the salon owner can change its status")

    salon.is_active = bool(is_active)
    db.session.commit()
    current_app.logger.info("Salon %s is_active=%s", salon_id, salon.is_active)
    return salon


def create_service(actor: Actor, salon_id: int, data: dict) -> Service:
    get_salon(salon_id=salon_id)
    _require_owner(actor, salon_id)

    service = Service(
        salon_id=salon_id,
        name=_clean_name(data.get("name")),
        description=data.get("description"),
        price=_parse_price(data.get("price")),
        duration_minutes=_parse_duration(data.get("duration_minutes")),
        category=data.get("category"),
        image_url=data.get("image_url"),
        is_active=bool(data.get("is_active", True)),
    )
    db.session.add(service)
    db.session.commit()
    return service


def update_service(actor: Actor, service_id: int, data: dict) -> Service:
    service = get_service(service_id)
    _require_owner(actor, service.salon_id)

    for field in SERVICE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "name":
            value = _clean_name(value)
        elif field == "price":
            value = _parse_price(value)
        elif field == "duration_minutes":
            value = _parse_duration(value)
        elif field == "is_active":
            value = bool(value)
        setattr(service, field, value)

    db.session.commit()
    return service


def create_professional(actor: Actor, salon_id: int, data: dict) -> Professional:
    get_salon(salon_id=salon_id)
    _require_owner(actor, salon_id)

    professional = Professional(
        salon_id=salon_id,
        name=_clean_name(data.get("name")),
        specialty=data.get("specialty"),
        avatar_url=data.get("avatar_url"),
        is_active=bool(data.get("is_active", True)),
    )
    db.session.add(professional)
    db.session.commit()
    return professional


def update_professional(actor: Actor, professional_id: int, data: dict) -> Professional:
    professional = get_professional(professional_id)
    _require_owner(actor, professional.salon_id)

    for field in PROFESSIONAL_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "name":
            value = _clean_name(value)
        elif field == "is_active":
            value = bool(value)
        setattr(professional, field, value)

    db.session.commit()
    return professional


def update_profile(actor: Actor, profile_id: int, data: dict) -> Profile:
    """Let a user change their own name and avatar. Role and email are fixed."""
    if actor.profile_id != profile_id:
        raise Forbidden("You may only edit your own profile")
    profile = db.session.get(Profile, profile_id)
    if profile is None:
        raise NotFound("Profile not found")

    if "full_name" in data:
        profile.full_name = _clean_name(data["full_name"])
    if "avatar_url" in data:
        avatar_url = data["avatar_url"]
        if avatar_url is not None and not isinstance(avatar_url, str):
            raise InvalidInput("avatar_url must be a string")
        profile.avatar_url = avatar_url or None

    db.session.commit()
    return profile


def list_clients(actor: Actor) -> list[Profile]:
    """Client profiles an owner can book on behalf of."""
    if not isinstance(actor, (SalonOwner, SuperAdmin)):
        raise Forbidden("Only salon owners can list clients")
    return Profile.query.filter_by(role="client").order_by(Profile.full_name.asc()).all()
