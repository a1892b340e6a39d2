# backend/sardb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from sardb.database import Base
from sardb.utils.identifiers import generate_uuid7


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class Permission(str, enum.Enum):
    """Permission keys checked by router dependencies."""

    READ_ALL = "read_all"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_TRAINING = "manage_training"
    MANAGE_POSITIONS = "manage_positions"
    APPROVE_POSITIONS = "approve_positions"
    MANAGE_ACTIVITIES = "manage_activities"


# Role name that implicitly holds every permission.
ADMIN_ROLE = "admin"
DEFAULT_ROLE = "member"


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


class Role(Base):
    """
    Named role (admin, training_officer, member, ...).

    Members reference roles by name; the permission keys a role grants
    live in role_permissions.
    """

    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    name = Column(String(64), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def permission_keys(self) -> list[str]:
        return sorted(p.permission_key for p in self.permissions)

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_key", name="uq_role_permissions_role_key"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    role_id = Column(
        String(36),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_key = Column(String(64), nullable=False, index=True)

    role = relationship("Role", back_populates="permissions")

    def __repr__(self) -> str:
        return f"<RolePermission {self.permission_key} role={self.role_id}>"
