"""Tests for slot proposal and overlap rejection."""
from __future__ import annotations

from datetime import date, datetime, time

import pytest

from app.booking import FIXED_SLOTS, find_conflict, propose_appointment, resolve_start_time
from app.errors import (Forbidden, InvalidInput, InvalidProfessional, InvalidService,
                        InvalidTime, MissingTime, NotFound, PastDate, SlotConflict)
from app.extensions import db
from app.models import AppointmentEvent, Salon, Service

NOW = datetime(2024, 6, 1, 8, 0)
DAY = date(2024, 6, 10)


def test_scenario_a_client_books_fixed_slot(app, seed) -> None:
    appointment = propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)

    assert appointment.status == "pending"
    assert appointment.starts_at == datetime(2024, 6, 10, 14, 0)
    assert appointment.duration_minutes == 30
    assert appointment.ends_at == datetime(2024, 6, 10, 14, 30)
    assert appointment.duration_override_minutes is None
    assert appointment.client_id == seed.client_id
    assert appointment.salon_id == seed.salon_id


def test_creation_emits_event(app, seed) -> None:
    appointment = propose_appointment(seed.client, seed.service_id, DAY, slot="09:00", now=NOW)

    event = AppointmentEvent.query.filter_by(appointment_id=appointment.appointment_id).one()
    assert event.kind == "appointment_created"
    assert event.old_status is None
    assert event.new_status == "pending"
    assert event.delivered_at is not None


def test_owner_booking_is_confirmed_with_professional(app, seed) -> None:
    appointment = propose_appointment(
        seed.owner,
        seed.service_id,
        "2024-06-10",
        slot="10:00",
        client_id=seed.client_id,
        professional_id=seed.professional_id,
        now=NOW,
    )

    assert appointment.status == "confirmed"
    assert appointment.client_id == seed.client_id
    assert appointment.professional_id == seed.professional_id


def test_custom_time_wins_over_slot(app, seed) -> None:
    appointment = propose_appointment(
        seed.client, seed.service_id, DAY, slot="09:00", custom_time="15:45", now=NOW
    )
    assert appointment.starts_at == datetime(2024, 6, 10, 15, 45)


def test_duration_override_is_stored_when_different(app, seed) -> None:
    appointment = propose_appointment(
        seed.client, seed.service_id, DAY, slot="11:00", duration_override=45, now=NOW
    )

    assert appointment.duration_minutes == 45
    assert appointment.duration_override_minutes == 45
    assert appointment.ends_at == datetime(2024, 6, 10, 11, 45)


def test_duration_override_equal_to_service_is_not_an_override(app, seed) -> None:
    appointment = propose_appointment(
        seed.client, seed.service_id, DAY, slot="11:00", duration_override="30", now=NOW
    )
    assert appointment.duration_override_minutes is None


@pytest.mark.parametrize("override", [0, -15, "abc", 12.5, "--5", "²", "٣٠"])
def test_bad_duration_override_rejected(app, seed, override) -> None:
    with pytest.raises(InvalidInput):
        propose_appointment(
            seed.client, seed.service_id, DAY, slot="11:00", duration_override=override, now=NOW
        )


def test_missing_time(app, seed) -> None:
    with pytest.raises(MissingTime):
        propose_appointment(seed.client, seed.service_id, DAY, now=NOW)


@pytest.mark.parametrize("slot", ["12:00", "9am"])
def test_slot_outside_fixed_set_rejected(app, seed, slot) -> None:
    with pytest.raises(InvalidTime):
        propose_appointment(seed.client, seed.service_id, DAY, slot=slot, now=NOW)


@pytest.mark.parametrize("custom_time", ["25:00", "14:75", "half past two"])
def test_malformed_custom_time_rejected(app, seed, custom_time) -> None:
    with pytest.raises(InvalidTime):
        propose_appointment(seed.client, seed.service_id, DAY, custom_time=custom_time, now=NOW)


def test_past_date_rejected(app, seed) -> None:
    with pytest.raises(PastDate):
        propose_appointment(seed.client, seed.service_id, date(2024, 5, 31), slot="14:00", now=NOW)


def test_earlier_today_rejected(app, seed) -> None:
    with pytest.raises(PastDate):
        propose_appointment(
            seed.client, seed.service_id, NOW.date(), custom_time="07:30", now=NOW
        )


def test_unknown_service_rejected(app, seed) -> None:
    with pytest.raises(InvalidService):
        propose_appointment(seed.client, 999, DAY, slot="14:00", now=NOW)


def test_inactive_service_rejected(app, seed) -> None:
    db.session.get(Service, seed.service_id).is_active = False
    db.session.commit()

    with pytest.raises(InvalidService):
        propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)


def test_inactive_salon_rejected(app, seed) -> None:
    db.session.get(Salon, seed.salon_id).is_active = False
    db.session.commit()

    with pytest.raises(InvalidService):
        propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)


def test_client_cannot_pick_professional(app, seed) -> None:
    with pytest.raises(Forbidden):
        propose_appointment(
            seed.client, seed.service_id, DAY, slot="14:00",
            professional_id=seed.professional_id, now=NOW,
        )


def test_client_cannot_book_for_someone_else(app, seed) -> None:
    with pytest.raises(Forbidden):
        propose_appointment(
            seed.client, seed.service_id, DAY, slot="14:00",
            client_id=seed.other_client_id, now=NOW,
        )


def test_owner_cannot_book_other_salon_service(app, seed) -> None:
    with pytest.raises(Forbidden):
        propose_appointment(
            seed.other_owner, seed.service_id, DAY, slot="14:00",
            client_id=seed.client_id, now=NOW,
        )


def test_super_admin_cannot_book(app, seed) -> None:
    with pytest.raises(Forbidden):
        propose_appointment(seed.super_admin, seed.service_id, DAY, slot="14:00", now=NOW)


def test_owner_booking_requires_existing_client(app, seed) -> None:
    with pytest.raises(InvalidInput):
        propose_appointment(seed.owner, seed.service_id, DAY, slot="14:00", now=NOW)
    with pytest.raises(NotFound):
        propose_appointment(
            seed.owner, seed.service_id, DAY, slot="14:00", client_id=seed.other_owner_id, now=NOW
        )


def test_owner_booking_rejects_foreign_professional(app, seed) -> None:
    with pytest.raises(InvalidProfessional):
        propose_appointment(
            seed.owner, seed.service_id, DAY, slot="14:00",
            client_id=seed.client_id, professional_id=999, now=NOW,
        )


def test_overlapping_unassigned_booking_rejected(app, seed) -> None:
    propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)

    with pytest.raises(SlotConflict):
        propose_appointment(seed.other_client, seed.service_id, DAY, custom_time="14:15", now=NOW)


def test_back_to_back_bookings_allowed(app, seed) -> None:
    propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)
    second = propose_appointment(
        seed.other_client, seed.service_id, DAY, custom_time="14:30", now=NOW
    )
    assert second.starts_at == datetime(2024, 6, 10, 14, 30)


def test_cancelled_appointment_frees_the_slot(app, seed, make_appointment) -> None:
    make_appointment(status="cancelled", starts_at=datetime(2024, 6, 10, 14, 0))

    appointment = propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)
    assert appointment.status == "pending"


def test_professional_bookings_do_not_block_unassigned(app, seed, make_appointment) -> None:
    make_appointment(
        status="confirmed",
        professional_id=seed.professional_id,
        starts_at=datetime(2024, 6, 10, 14, 0),
    )

    assert find_conflict(
        seed.salon_id, None, datetime(2024, 6, 10, 14, 0), datetime(2024, 6, 10, 14, 30)
    ) is None
    with pytest.raises(SlotConflict):
        propose_appointment(
            seed.owner, seed.service_id, DAY, slot="14:00",
            client_id=seed.client_id, professional_id=seed.professional_id, now=NOW,
        )


def test_other_salons_do_not_conflict(app, seed) -> None:
    propose_appointment(seed.client, seed.service_id, DAY, slot="14:00", now=NOW)
    other = propose_appointment(seed.client, seed.rival_service_id, DAY, slot="14:00", now=NOW)
    assert other.salon_id == seed.rival_salon_id


def test_resolve_start_time_is_wall_clock() -> None:
    assert resolve_start_time("2024-06-10", slot="09:00") == datetime(2024, 6, 10, 9, 0)
    assert resolve_start_time(DAY, custom_time="7:05") == datetime.combine(DAY, time(7, 5))
    assert resolve_start_time(DAY, custom_time="07:05:30").tzinfo is None
    assert len(FIXED_SLOTS) == 9


def test_resolve_start_time_bad_date() -> None:
    with pytest.raises(InvalidInput):
        resolve_start_time("10/06/2024", slot="09:00")
