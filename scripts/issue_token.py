"""Create or update a profile and print a bearer token for local development."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the project root is on sys.path so ``app`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from app.auth import build_token
from app.extensions import db
from app.models import Profile

VALID_ROLES = ["client", "admin", "super_admin"]


def issue_token(email: str, role: str = "client", full_name: str | None = None) -> str | None:
    if role not in VALID_ROLES:
        print(f"Error: Invalid role '{role}'. Valid roles are: {', '.join(VALID_ROLES)}")
        return None

    app = create_app()
    with app.app_context():
        profile = Profile.query.filter_by(email=email).first()
        if profile is None:
            profile = Profile(email=email, full_name=full_name or email.split("@")[0], role=role)
            db.session.add(profile)
            print(f"Created new {role} profile: {email}")
        elif profile.role != role:
            print(f"Updating profile role from '{profile.role}' to '{role}'")
            profile.role = role
        db.session.commit()

        token = build_token(profile.profile_id)
        print(f"Bearer token for '{email}':\n{token}")
        return token


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email", help="Profile email address")
    parser.add_argument("--role", default="client", choices=VALID_ROLES)
    parser.add_argument("--name", dest="full_name", help="Full name for a new profile")
    args = parser.parse_args()

    issue_token(args.email, args.role, args.full_name)


if __name__ == "__main__":
    main()
