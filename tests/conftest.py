"""pytest configuration: app, database and seed fixtures."""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app  # noqa: E402
from app.actors import Client, SalonOwner, SuperAdmin  # noqa: E402
from app.auth import build_token  # noqa: E402
from app.extensions import db  # noqa: E402
from app.models import Appointment, Professional, Profile, Salon, Service  # noqa: E402


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth(app):
    """Return a function building the Authorization header for a profile id."""
    def _headers(profile_id: int) -> dict[str, str]:
        return {"Authorization": f"Bearer {build_token(profile_id)}"}
    return _headers


@pytest.fixture
def seed(app):
    """Salon X owned by Olivia with service S (30 min, 50.00) and one professional."""
    owner = Profile(profile_id=1, email="owner@example.com", full_name="Olivia Owner", role="admin")
    client_user = Profile(profile_id=2, email="client@example.com", full_name="Carla Client", role="client")
    other_client = Profile(profile_id=3, email="other@example.com", full_name="Otto Other", role="client")
    other_owner = Profile(profile_id=4, email="rival@example.com", full_name="Rita Rival", role="admin")
    super_admin = Profile(profile_id=5, email="root@example.com", full_name="Sam Super", role="super_admin")
    db.session.add_all([owner, client_user, other_client, other_owner, super_admin])
    db.session.flush()

    salon = Salon(salon_id=1, owner_id=1, name="Salon X", address="1 Main St", phone="555-0100")
    rival_salon = Salon(salon_id=2, owner_id=4, name="Salon Y", address="2 Side St")
    db.session.add_all([salon, rival_salon])
    db.session.flush()

    service = Service(
        service_id=1,
        salon_id=1,
        name="Haircut",
        price=Decimal("50.00"),
        duration_minutes=30,
        category="Hair",
    )
    rival_service = Service(
        service_id=2,
        salon_id=2,
        name="Shave",
        price=Decimal("20.00"),
        duration_minutes=20,
    )
    professional = Professional(professional_id=1, salon_id=1, name="Paula Pro", specialty="Color")
    db.session.add_all([service, rival_service, professional])
    db.session.commit()

    return SimpleNamespace(
        owner=SalonOwner(1, 1),
        client=Client(2),
        other_client=Client(3),
        other_owner=SalonOwner(4, 2),
        super_admin=SuperAdmin(5),
        owner_id=1,
        client_id=2,
        other_client_id=3,
        other_owner_id=4,
        super_admin_id=5,
        salon_id=1,
        rival_salon_id=2,
        service_id=1,
        rival_service_id=2,
        professional_id=1,
    )


@pytest.fixture
def make_appointment(seed):
    """Insert an appointment row directly, bypassing the booking rules."""
    def _make(
        status: str = "pending",
        client_id: int = 2,
        salon_id: int = 1,
        service_id: int = 1,
        professional_id: int | None = None,
        starts_at: datetime = datetime(2030, 6, 10, 14, 0),
        duration_minutes: int = 30,
    ) -> int:
        appointment = Appointment(
            client_id=client_id,
            salon_id=salon_id,
            service_id=service_id,
            professional_id=professional_id,
            starts_at=starts_at,
            ends_at=starts_at + timedelta(minutes=duration_minutes),
            duration_minutes=duration_minutes,
            status=status,
        )
        db.session.add(appointment)
        db.session.commit()
        return appointment.appointment_id
    return _make
