# backend/sardb/apps/accounts/services.py

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from sardb.apps.members import models as member_models
from sardb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    verify_password,
)

from . import models, schemas

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when login credentials are invalid or the account cannot sign in."""


# Roles created on a fresh database. Admin holds every key implicitly.
DEFAULT_ROLE_PERMISSIONS = {
    models.ADMIN_ROLE: (),
    "training_officer": (
        models.Permission.READ_ALL,
        models.Permission.MANAGE_TRAINING,
        models.Permission.MANAGE_ACTIVITIES,
    ),
    "qualification_officer": (
        models.Permission.READ_ALL,
        models.Permission.MANAGE_POSITIONS,
        models.Permission.APPROVE_POSITIONS,
    ),
    models.DEFAULT_ROLE: (models.Permission.READ_ALL,),
}


def _normalise_email(value: str) -> str:
    return value.strip().lower()


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate_member(
    db: Session,
    *,
    login_req: schemas.LoginRequest,
) -> member_models.Member:
    """
    Password login by email.

    Raises AuthenticationError for unknown email, wrong password, a member
    without a password, or a member that is not active.
    """
    email = _normalise_email(login_req.email)
    member = (
        db.query(member_models.Member)
        .filter(member_models.Member.email == email)
        .first()
    )

    if member is None or not member.hashed_password:
        logger.info("Login failed: unknown account", extra={"email": email})
        raise AuthenticationError("Incorrect email or password.")

    if not verify_password(login_req.password, member.hashed_password):
        logger.info("Login failed: bad password", extra={"member_id": member.id})
        raise AuthenticationError("Incorrect email or password.")

    if member.status != member_models.MemberStatus.ACTIVE:
        logger.info("Login refused: inactive member", extra={"member_id": member.id})
        raise AuthenticationError("Member account is not active.")

    return member


def issue_access_token_for_member(member: member_models.Member) -> Tuple[str, int]:
    """
    Create a JWT access token for the member.

    Returns (token_string, expires_in_seconds).
    """
    expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(member.id),
        "role": member.role,
    }
    access_token = create_access_token(data=payload, expires_delta=expires_delta)
    return access_token, int(ACCESS_TOKEN_EXPIRE_MINUTES * 60)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


def list_roles(db: Session) -> List[models.Role]:
    return db.query(models.Role).order_by(models.Role.name.asc()).all()


def get_role_by_name(db: Session, name: str) -> Optional[models.Role]:
    return db.query(models.Role).filter(models.Role.name == name.strip()).first()


def set_role_permissions(
    db: Session,
    *,
    role: models.Role,
    permissions: Iterable[models.Permission],
    description: Optional[str] = None,
) -> models.Role:
    """Replace the role's permission keys with exactly `permissions`."""
    wanted = {models.Permission(p).value for p in permissions}
    current = {rp.permission_key: rp for rp in role.permissions}

    for key, row in current.items():
        if key not in wanted:
            role.permissions.remove(row)
    for key in sorted(wanted - set(current)):
        role.permissions.append(models.RolePermission(permission_key=key))

    if description is not None:
        role.description = description

    db.add(role)
    db.flush()
    return role


def ensure_default_roles(db: Session) -> List[models.Role]:
    """Create any missing default role with its default keys. Existing roles are left alone."""
    created: List[models.Role] = []
    for name, keys in DEFAULT_ROLE_PERMISSIONS.items():
        if get_role_by_name(db, name) is not None:
            continue
        role = models.Role(name=name)
        role.permissions = [models.RolePermission(permission_key=k.value) for k in keys]
        db.add(role)
        created.append(role)
    if created:
        db.flush()
        logger.info("Created default roles", extra={"roles": [r.name for r in created]})
    return created
