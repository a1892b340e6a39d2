# backend/sardb/apps/accounts/router_public.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from sardb.apps.audit import services as audit_services
from sardb.apps.members import models as member_models
from sardb.apps.members import schemas as member_schemas
from sardb.database import get_db
from sardb.security import (
    get_current_active_member,
    permissions_for_role,
    require_permission,
)

from . import models, schemas, services

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=schemas.Token,
    summary="Login with email and password",
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    try:
        member = services.authenticate_member(db, login_req=payload)
    except services.AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc) or "Incorrect email or password.",
        )

    token, expires_in = services.issue_access_token_for_member(member)
    return schemas.Token(
        access_token=token,
        expires_in=expires_in,
        member=member_schemas.MemberRead.model_validate(member),
    )


@router.get(
    "/me",
    response_model=schemas.MeRead,
    summary="Current member with the permission keys their role grants",
)
def read_current_member(
    current_member: member_models.Member = Depends(get_current_active_member),
    db: Session = Depends(get_db),
):
    me = schemas.MeRead.model_validate(current_member)
    me.permissions = sorted(permissions_for_role(db, current_member.role))
    return me


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


@router.get("/roles", response_model=List[schemas.RoleRead])
def list_roles(
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(
        require_permission(models.Permission.READ_ALL)
    ),
):
    return services.list_roles(db)


@router.put("/roles/{role_name}/permissions", response_model=schemas.RoleRead)
def update_role_permissions(
    role_name: str,
    payload: schemas.RolePermissionsUpdate,
    db: Session = Depends(get_db),
    current_member: member_models.Member = Depends(get_current_active_member),
):
    # Only admins edit role permissions; the admin role itself is fixed.
    if current_member.role != models.ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can change role permissions.",
        )
    if role_name == models.ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The admin role always holds every permission.",
        )

    role = services.get_role_by_name(db, role_name)
    if role is None:
        role = models.Role(name=role_name.strip())
        db.add(role)
        db.flush()

    before = {"permissions": role.permission_keys}
    services.set_role_permissions(
        db,
        role=role,
        permissions=payload.permissions,
        description=payload.description,
    )
    audit_services.log_event(
        db,
        actor_member_id=current_member.id,
        entity_type="role",
        entity_id=role.id,
        action="update_permissions",
        before=before,
        after={"permissions": role.permission_keys},
    )
    db.commit()
    db.refresh(role)
    return role
