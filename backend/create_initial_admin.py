# backend/create_initial_admin.py
"""
Seed the default roles and a first admin member.

    ADMIN_EMAIL=... ADMIN_PASSWORD=... python create_initial_admin.py
"""

import os
from typing import Tuple

from sardb.apps.accounts import services as account_services
from sardb.apps.accounts.models import ADMIN_ROLE
from sardb.apps.members import models as member_models
from sardb.database import SessionLocal
from sardb.security import get_password_hash


def ensure_admin(db, *, email: str, password: str) -> Tuple[member_models.Member, bool]:
    """Return (admin, created). An existing member with the email is left untouched."""
    email = email.strip().lower()
    account_services.ensure_default_roles(db)

    existing = db.query(member_models.Member).filter(member_models.Member.email == email).first()
    if existing:
        return existing, False

    admin = member_models.Member(
        first_name="Unit",
        last_name="Admin",
        email=email,
        role=ADMIN_ROLE,
        status=member_models.MemberStatus.ACTIVE,
        hashed_password=get_password_hash(password),
    )
    db.add(admin)
    db.flush()
    return admin, True


def main() -> None:
    db = SessionLocal()
    try:
        password = os.getenv("ADMIN_PASSWORD", "ChangeMe123!")
        admin, created = ensure_admin(
            db,
            email=os.getenv("ADMIN_EMAIL", "admin@sar.local"),
            password=password,
        )
        db.commit()

        if not created:
            print(f"[INFO] Member already exists: id={admin.id}, email={admin.email}, role={admin.role}")
            return

        print("[OK] Created admin member:")
        print(f"  id:      {admin.id}")
        print(f"  email:   {admin.email}")
        print(f"  role:    {admin.role}")
        print(f"  login password: {password}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
