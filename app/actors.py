"""Capability-tagged actors acting on the scheduling core.

A request is always performed by exactly one of:

* ``Client`` - a client profile acting on its own appointments;
* ``SalonOwner`` - an admin profile acting on its salon (``salon_id`` is
  ``None`` until onboarding creates the salon);
* ``SuperAdmin`` - the platform operator overseeing every tenant.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .models import Appointment, Profile, Salon


@dataclass(frozen=True)
class Client:
    profile_id: int


@dataclass(frozen=True)
class SalonOwner:
    profile_id: int
    salon_id: Optional[int]


@dataclass(frozen=True)
class SuperAdmin:
    profile_id: int


Actor = Union[Client, SalonOwner, SuperAdmin]


def actor_for_profile(profile: Profile) -> Actor:
    """Map a stored profile onto its capability-tagged actor."""
    if profile.role == "super_admin":
        return SuperAdmin(profile.profile_id)
    if profile.role == "admin":
        salon = Salon.query.filter_by(owner_id=profile.profile_id).first()
        return SalonOwner(profile.profile_id, salon.salon_id if salon else None)
    return Client(profile.profile_id)


def owns_salon(actor: Actor, salon_id: int) -> bool:
    return isinstance(actor, SalonOwner) and actor.salon_id is not None and actor.salon_id == salon_id


def is_appointment_client(actor: Actor, appointment: Appointment) -> bool:
    return isinstance(actor, Client) and actor.profile_id == appointment.client_id


def is_party_to(actor: Actor, appointment: Appointment) -> bool:
    """True when the actor is the appointment's client or its salon's owner."""
    return is_appointment_client(actor, appointment) or owns_salon(actor, appointment.salon_id)
