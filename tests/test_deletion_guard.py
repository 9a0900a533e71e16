"""Tests for the catalog deletion guard."""
from __future__ import annotations

import pytest

from app.deletion_guard import can_delete, check_deletion, deactivate_entity, delete_entity
from app.errors import Forbidden, InvalidInput, NotFound, ReferentialConflict
from app.extensions import db
from app.models import Appointment, Professional, Service


@pytest.mark.parametrize("status", ["pending", "confirmed", "cancelled", "completed"])
def test_scenario_c_referenced_service_cannot_be_deleted(app, seed, make_appointment, status) -> None:
    appointment_id = make_appointment(status=status)

    with pytest.raises(ReferentialConflict) as excinfo:
        delete_entity(seed.owner, "service", seed.service_id)

    assert excinfo.value.blocking_count == 1
    assert db.session.get(Service, seed.service_id) is not None

    service = deactivate_entity(seed.owner, "service", seed.service_id)
    assert service.is_active is False
    appointment = db.session.get(Appointment, appointment_id)
    assert appointment.status == status
    assert appointment.service_id == seed.service_id


def test_can_delete_reports_blocking_count(app, seed, make_appointment) -> None:
    make_appointment(professional_id=seed.professional_id)
    make_appointment(professional_id=seed.professional_id, status="cancelled")

    check = can_delete("professional", seed.professional_id)
    assert check.allowed is False
    assert check.blocking_count == 2
    assert check.to_dict() == {"allowed": False, "blocking_count": 2}


def test_unreferenced_service_is_deleted(app, seed) -> None:
    assert can_delete("service", seed.service_id).allowed is True

    delete_entity(seed.owner, "service", seed.service_id)

    assert db.session.get(Service, seed.service_id) is None


def test_unreferenced_professional_is_deleted(app, seed) -> None:
    delete_entity(seed.owner, "professional", seed.professional_id)
    assert db.session.get(Professional, seed.professional_id) is None


def test_referenced_professional_conflict(app, seed, make_appointment) -> None:
    make_appointment(professional_id=seed.professional_id, status="completed")

    with pytest.raises(ReferentialConflict) as excinfo:
        delete_entity(seed.owner, "professional", seed.professional_id)

    assert excinfo.value.blocking_count == 1
    professional = deactivate_entity(seed.owner, "professional", seed.professional_id)
    assert professional.is_active is False


def test_only_salon_owner_can_delete_or_deactivate(app, seed) -> None:
    for actor in (seed.other_owner, seed.client, seed.super_admin):
        with pytest.raises(Forbidden):
            delete_entity(actor, "service", seed.service_id)
        with pytest.raises(Forbidden):
            deactivate_entity(actor, "service", seed.service_id)

    assert db.session.get(Service, seed.service_id).is_active is True


def test_unknown_entity(app, seed) -> None:
    with pytest.raises(NotFound):
        can_delete("service", 999)
    with pytest.raises(InvalidInput):
        can_delete("salon", seed.salon_id)


def test_deletion_check_is_for_the_owner_only(app, seed, make_appointment) -> None:
    make_appointment()

    assert check_deletion(seed.owner, "service", seed.service_id).blocking_count == 1
    for actor in (seed.other_owner, seed.client, seed.super_admin):
        with pytest.raises(Forbidden):
            check_deletion(actor, "service", seed.service_id)
