"""Deletion guard for catalog entities referenced by appointments.

Services and professionals with any appointment (whatever its status) cannot
be deleted, so booking history stays queryable. Deactivation is always
available instead.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import delete, func, select

from .actors import Actor, owns_salon
from .errors import Forbidden, InvalidInput, NotFound, ReferentialConflict
from .extensions import db
from .models import Appointment, Professional, Service

GUARDED_ENTITIES = {
    "service": (Service, Service.service_id, Appointment.service_id),
    "professional": (Professional, Professional.professional_id, Appointment.professional_id),
}


@dataclass(frozen=True)
class DeletionCheck:
    allowed: bool
    blocking_count: int

    def to_dict(self) -> dict[str, object]:
        return {"allowed": self.allowed, "blocking_count": self.blocking_count}


def _resolve(entity_type: str):
    try:
        return GUARDED_ENTITIES[entity_type]
    except KeyError:
        raise InvalidInput(f"entity_type must be one of: {', '.join(GUARDED_ENTITIES)}")


def _load(entity_type: str, entity_id: int):
    model, _, _ = _resolve(entity_type)
    entity = db.session.get(model, entity_id)
    if entity is None:
        raise NotFound(f"{entity_type.capitalize()} not found")
    return entity


def count_references(entity_type: str, entity_id: int) -> int:
    _, _, reference = _resolve(entity_type)
    return db.session.scalar(
        select(func.count(Appointment.appointment_id)).where(reference == entity_id)
    ) or 0


def can_delete(entity_type: str, entity_id: int) -> DeletionCheck:
    _load(entity_type, entity_id)
    blocking = count_references(entity_type, entity_id)
    return DeletionCheck(allowed=blocking == 0, blocking_count=blocking)


def check_deletion(actor: Actor, entity_type: str, entity_id: int) -> DeletionCheck:
    """``can_delete`` for the owner of the entity's salon only."""
    entity = _load(entity_type, entity_id)
    if not owns_salon(actor, entity.salon_id):
        raise Forbidden("Only the salon owner can inspect its catalog references")
    return can_delete(entity_type, entity_id)


def delete_entity(actor: Actor, entity_type: str, entity_id: int) -> None:
    """Delete a service or professional that no appointment references.

    The reference check and the delete run as one conditional statement, so
    an appointment created in between cannot be orphaned.
    """
    entity = _load(entity_type, entity_id)
    if not owns_salon(actor, entity.salon_id):
        raise Forbidden("Only the salon owner can delete its catalog entries")

    model, primary_key, reference = _resolve(entity_type)
    referenced = select(Appointment.appointment_id).where(reference == entity_id).exists()
    result = db.session.execute(
        delete(model).where(primary_key == entity_id, ~referenced),
        execution_options={"synchronize_session": False},
    )

    if result.rowcount == 0:
        blocking = count_references(entity_type, entity_id)
        db.session.rollback()
        if blocking == 0:
            raise NotFound(f"{entity_type.capitalize()} not found")
        current_app.logger.warning(
            "Refused to delete %s %s: %s appointment(s) reference it",
            entity_type,
            entity_id,
            blocking,
        )
        raise ReferentialConflict(blocking, entity_type)

    db.session.expunge(entity)
    db.session.commit()
    current_app.logger.info("Deleted %s %s", entity_type, entity_id)


def deactivate_entity(actor: Actor, entity_type: str, entity_id: int):
    """Hide a service or professional from booking; appointments are untouched."""
    entity = _load(entity_type, entity_id)
    if not owns_salon(actor, entity.salon_id):
        raise Forbidden("Only the salon owner can deactivate its catalog entries")

    entity.is_active = False
    db.session.commit()
    current_app.logger.info("Deactivated %s %s", entity_type, entity_id)
    return entity
