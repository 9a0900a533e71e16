"""Bearer-token identity for the HTTP layer.

Sign-up and sign-in live outside this service; it only verifies tokens
signed with the shared ``SECRET_KEY`` and maps them to an actor.
"""
from __future__ import annotations

from flask import current_app, request
from itsdangerous import BadSignature, URLSafeTimedSerializer

from .actors import Actor, actor_for_profile
from .errors import Unauthorized
from .extensions import db
from .models import Profile

TOKEN_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_token(profile_id: int) -> str:
    return _serializer().dumps({"profile_id": profile_id})


def get_token_identity() -> int | None:
    """Extract the profile id from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None

    token = auth_header[7:]  # Remove "Bearer " prefix
    try:
        payload = _serializer().loads(token, max_age=current_app.config["AUTH_TOKEN_MAX_AGE"])
    except BadSignature:
        # Covers expired tokens too (SignatureExpired is a subclass).
        return None
    return payload.get("profile_id") if isinstance(payload, dict) else None


def current_profile() -> Profile:
    profile_id = get_token_identity()
    profile = db.session.get(Profile, profile_id) if profile_id is not None else None
    if profile is None:
        raise Unauthorized()
    return profile


def current_actor() -> Actor:
    return actor_for_profile(current_profile())
