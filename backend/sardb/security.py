# backend/sardb/security.py

"""
Security helpers for sardb.

Responsibilities:
- Password hashing and verification
- JWT access token creation and decoding
- FastAPI dependencies for the current member
- Permission-key gate used by routers (`require_permission`)

The qualification engine never checks permissions itself; routers put
`require_permission(...)` in front of it.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from typing import Callable, Optional, Set, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHash
import bcrypt

from .database import get_db
from sardb.apps.accounts import models as account_models
from sardb.apps.accounts.models import ADMIN_ROLE, Permission
from sardb.apps.members import models as member_models

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 60

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------

_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB (64MB)
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
    hash_len=int(os.getenv("ARGON2_HASH_LEN", "32")),
    salt_len=int(os.getenv("ARGON2_SALT_LEN", "16")),
)


def _is_argon2_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith("$argon2")


def _is_bcrypt_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith(("$2a$", "$2b$", "$2y$"))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    if not plain_password or not hashed_password:
        return False

    if _is_argon2_hash(hashed_password):
        try:
            return _pwd_hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False

    # Accounts imported from the old roster system carry bcrypt hashes
    if _is_bcrypt_hash(hashed_password):
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            return False

    return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database (Argon2id)."""
    return _pwd_hasher.hash(password)


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    The `data` dict should already include the subject, e.g.:
        {"sub": member.id, "role": member.role}
    """
    to_encode = data.copy()

    expire = datetime.utcnow() + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# MEMBER LOOKUP HELPERS
# ---------------------------------------------------------------------------


def get_member_by_id(
    db: Session,
    member_id: Union[str, int],
) -> Optional[member_models.Member]:
    if member_id is None:
        return None

    return (
        db.query(member_models.Member)
        .filter(member_models.Member.id == str(member_id).strip())
        .first()
    )


def permissions_for_role(db: Session, role_name: Optional[str]) -> Set[str]:
    """
    Permission keys granted to a role name.

    The admin role holds every key without needing role_permissions rows.
    """
    if not role_name:
        return set()
    if role_name == ADMIN_ROLE:
        return {p.value for p in Permission}

    role = (
        db.query(account_models.Role)
        .filter(account_models.Role.name == role_name)
        .first()
    )
    if role is None:
        return set()
    return set(role.permission_keys)


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_member(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> member_models.Member:
    """
    Decode the JWT access token and return the corresponding Member.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
        member_id: Optional[str] = payload.get("sub")
        if member_id is None:
            raise _credentials_exception()
    except JWTError:
        raise _credentials_exception()

    member = get_member_by_id(db, member_id)
    if member is None:
        raise _credentials_exception()

    return member


def get_current_active_member(
    current_member: member_models.Member = Depends(get_current_member),
) -> member_models.Member:
    """
    Inactive members keep their roster history but cannot sign in.
    """
    if current_member.status != member_models.MemberStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive member account",
        )
    return current_member


def require_permission(
    *keys: Union[Permission, str],
) -> Callable[..., member_models.Member]:
    """
    Dependency factory: the current member's role must grant every key.

    Usage:
        @router.get(...)
        def endpoint(
            current_member: Member = Depends(
                require_permission(Permission.APPROVE_POSITIONS)
            )
        ):
            ...
    """
    required: Set[str] = set()
    for key in keys:
        if isinstance(key, Permission):
            required.add(key.value)
        else:
            try:
                required.add(Permission(key).value)
            except ValueError:
                raise ValueError(f"Unknown permission {key!r} passed to require_permission()")

    def dependency(
        current_member: member_models.Member = Depends(get_current_active_member),
        db: Session = Depends(get_db),
    ) -> member_models.Member:
        granted = permissions_for_role(db, current_member.role)
        missing = sorted(required - granted)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: requires '{missing[0]}'",
            )
        return current_member

    return dependency
