"""Create or promote the super admin account.

Reads ``SUPER_ADMIN_EMAIL`` and ``SUPER_ADMIN_PASSWORD`` from the environment.
Run with ``python -m scripts.seed_super_admin``.
"""

import os
import sys

from app import create_app
from models import db
from models.user import User
from services.auth_service import get_user_by_email
from utils.rbac import Role
from utils.validation import is_valid_email, normalize_email, validate_password


def seed_super_admin(email: str, password: str, name: str | None = None) -> tuple[User, str]:
    """Return the verified, active super admin for ``email`` and what was done."""

    email = normalize_email(email)
    admin = get_user_by_email(email)
    if admin is None:
        admin = User(email=email, name=name or "Super Admin", created_by=None)
        db.session.add(admin)
        action = "created"
    else:
        action = "updated"

    admin.role = Role.SUPER_ADMIN
    admin.is_active = True
    admin.mark_verified()
    admin.set_password(password)
    db.session.commit()
    return admin, action


def main() -> int:
    email = os.getenv("SUPER_ADMIN_EMAIL", "")
    password = os.getenv("SUPER_ADMIN_PASSWORD", "")
    if not is_valid_email(email):
        print("SUPER_ADMIN_EMAIL must be set to a valid email address.", file=sys.stderr)
        return 1
    problems = validate_password(password)
    if problems:
        print("SUPER_ADMIN_PASSWORD is invalid: " + "; ".join(problems), file=sys.stderr)
        return 1

    app = create_app()
    with app.app_context():
        admin, action = seed_super_admin(email, password, os.getenv("SUPER_ADMIN_NAME"))
        print(f"Super admin {action}: {admin.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
