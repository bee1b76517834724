from __future__ import annotations

import logging
from collections.abc import Mapping

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubportal.core.errors import (
    DuplicateRoleName,
    NotFound,
    PermissionDenied,
    RoleInUse,
    SystemRoleProtected,
    ValidationError,
)
from clubportal.db.session import transaction
from clubportal.schemas.roles import NavEntryOut, RoleOut, RolePreviewOut
from clubportal.services.audit import audit
from clubportal.services.identity import Caller
from clubportal.services.permissions import (
    MEMBER_ROLE,
    Permission,
    full_permission_map,
    is_active_member,
    load_role_permissions,
    parse_permission_map,
    patch_role_permissions,
    require_permission,
    write_role_permissions,
)

logger = logging.getLogger(__name__)

# Navigation sections in display order; None means always visible.
NAVIGATION_SECTIONS: tuple[tuple[str, Permission | None], ...] = (
    ("Dashboard", None),
    ("Announcements", Permission.VIEW_ANNOUNCEMENTS),
    ("Events", Permission.VIEW_EVENTS),
    ("Members", Permission.VIEW_MEMBERS),
    ("Sign-In", None),
    ("Attendance", Permission.VIEW_ATTENDANCE),
    ("Chat", Permission.ACCESS_CHAT),
    ("Personal Settings", None),
    ("Club Settings", Permission.MODIFY_CLUB_SETTINGS),
)

FEATURE_LABELS: tuple[tuple[Permission, str], ...] = (
    (Permission.CREATE_ANNOUNCEMENTS, "Can create announcements"),
    (Permission.EDIT_ANNOUNCEMENTS, "Can edit announcements"),
    (Permission.DELETE_ANNOUNCEMENTS, "Can delete announcements"),
    (Permission.CREATE_EVENTS, "Can create events"),
    (Permission.EDIT_EVENTS, "Can edit events"),
    (Permission.DELETE_EVENTS, "Can delete events"),
    (Permission.MANAGE_MEMBERS, "Can approve/manage members"),
    (Permission.REMOVE_MEMBERS, "Can remove members"),
    (Permission.EXPORT_ATTENDANCE, "Can export attendance data"),
    (Permission.VIEW_STATS, "Can view club statistics"),
    (Permission.CREATE_ROLES, "Can create new roles"),
    (Permission.ASSIGN_ROLES, "Can assign roles to members"),
    (Permission.MANAGE_ROLES, "Can edit/delete roles"),
)


def role_preview(permissions: Mapping[Permission, bool]) -> RolePreviewOut:
    """What a holder of ``permissions`` would see and be able to do."""
    navigation = [
        NavEntryOut(name=name, visible=True)
        for name, gate in NAVIGATION_SECTIONS
        if gate is None or permissions.get(gate, False)
    ]
    features = [label for perm, label in FEATURE_LABELS if permissions.get(perm, False)]
    return RolePreviewOut(navigation=navigation, features=features)


def _normalize_role_name(raw: str | None) -> str:
    name = (raw or "").strip()
    if not name:
        raise ValidationError("Role name required")
    return name


def _get_role(db: Session, role_id: int) -> dict:
    row = db.execute(sa.text("""
        SELECT id, club_id, role_name, role_description, is_system_role
        FROM club_roles
        WHERE id=:r
    """), {"r": role_id}).mappings().first()
    if not row:
        raise NotFound("Role not found")
    return dict(row)


def _assert_name_available(db: Session, club_id: int, role_name: str, exclude_role_id: int | None = None):
    rows = db.execute(sa.text("""
        SELECT id
        FROM club_roles
        WHERE club_id=:c
          AND lower(role_name) = lower(:n)
    """), {"c": club_id, "n": role_name}).scalars().all()
    if any(rid != exclude_role_id for rid in rows):
        raise DuplicateRoleName()


def list_roles(db: Session, caller: Caller, club_id: int) -> list[RoleOut]:
    if not caller.is_superuser and not is_active_member(db, club_id, caller.user_id):
        raise PermissionDenied()

    rows = db.execute(sa.text("""
        SELECT
            r.id,
            r.club_id,
            r.role_name,
            r.role_description,
            r.is_system_role,
            (
                SELECT count(*)
                FROM club_members cm
                WHERE cm.role_id = r.id AND cm.status = 'active'
            ) AS member_count
        FROM club_roles r
        WHERE r.club_id=:c
        ORDER BY r.is_system_role DESC, r.role_name ASC
    """), {"c": club_id}).mappings().all()

    out = []
    for r in rows:
        perms = load_role_permissions(db, r["id"])
        out.append(RoleOut(**r, permissions={p.value: v for p, v in perms.items()}))
    return out


def create_role(
    db: Session,
    caller: Caller,
    *,
    club_id: int,
    role_name: str,
    role_description: str = "",
    permissions: Mapping[str, object] | None = None,
) -> int:
    require_permission(db, caller, club_id, Permission.CREATE_ROLES)
    name = _normalize_role_name(role_name)
    requested = parse_permission_map(permissions)
    _assert_name_available(db, club_id, name)

    with transaction(db):
        try:
            role_id = db.execute(sa.text("""
                INSERT INTO club_roles (club_id, role_name, role_description, is_system_role)
                VALUES (:c, :n, :d, :system)
                RETURNING id
            """), {"c": club_id, "n": name, "d": (role_description or "").strip(), "system": False}).scalar_one()
        except IntegrityError:
            raise DuplicateRoleName()
        write_role_permissions(db, role_id, full_permission_map(requested))
        audit(db, caller.user_id, "club_role", role_id, "created", {
            "club_id": club_id,
            "role_name": name,
            "granted": sorted(p.value for p, v in requested.items() if v),
        })

    logger.info("Role %s created in club %s by user %s", role_id, club_id, caller.user_id)
    return role_id


def update_role(
    db: Session,
    caller: Caller,
    *,
    role_id: int,
    role_name: str | None = None,
    role_description: str | None = None,
    permissions: Mapping[str, object] | None = None,
) -> None:
    role = _get_role(db, role_id)
    require_permission(db, caller, role["club_id"], Permission.MANAGE_ROLES)

    patch = parse_permission_map(permissions)
    updates: dict[str, str] = {}
    if role_name is not None:
        name = _normalize_role_name(role_name)
        if name != role["role_name"]:
            if role["is_system_role"]:
                raise SystemRoleProtected("Cannot rename system roles")
            _assert_name_available(db, role["club_id"], name, exclude_role_id=role_id)
            updates["role_name"] = name
    if role_description is not None:
        updates["role_description"] = role_description.strip()

    with transaction(db):
        if updates:
            # Column names come from the fixed keys above, values are bound.
            assignments = ", ".join(f"{col}=:{col}" for col in updates)
            try:
                db.execute(
                    sa.text(f"UPDATE club_roles SET {assignments} WHERE id=:r"),
                    {**updates, "r": role_id},
                )
            except IntegrityError:
                raise DuplicateRoleName()
        if patch:
            patch_role_permissions(db, role_id, patch)
        audit(db, caller.user_id, "club_role", role_id, "updated", {
            "fields": sorted(updates),
            "permissions": {p.value: v for p, v in patch.items()},
        })


def delete_role(db: Session, caller: Caller, *, role_id: int) -> None:
    role = _get_role(db, role_id)
    if role["is_system_role"]:
        raise SystemRoleProtected()
    require_permission(db, caller, role["club_id"], Permission.MANAGE_ROLES)

    active = db.execute(sa.text("""
        SELECT count(*)
        FROM club_members
        WHERE role_id=:r AND status='active'
    """), {"r": role_id}).scalar_one()
    if int(active) > 0:
        raise RoleInUse()

    with transaction(db):
        # Removed memberships still need a role; park them on the club's Member role.
        db.execute(sa.text("""
            UPDATE club_members
            SET role_id = (
                SELECT id FROM club_roles
                WHERE club_id=:c AND role_name=:member AND is_system_role=:system
            )
            WHERE role_id=:r AND status='removed'
        """), {"c": role["club_id"], "member": MEMBER_ROLE, "system": True, "r": role_id})
        db.execute(sa.text("UPDATE club_join_requests SET assigned_role_id=NULL WHERE assigned_role_id=:r"), {"r": role_id})
        db.execute(sa.text("DELETE FROM role_permissions WHERE role_id=:r"), {"r": role_id})
        db.execute(sa.text("DELETE FROM club_roles WHERE id=:r"), {"r": role_id})
        audit(db, caller.user_id, "club_role", role_id, "deleted", {
            "club_id": role["club_id"],
            "role_name": role["role_name"],
        })

    logger.info("Role %s deleted from club %s by user %s", role_id, role["club_id"], caller.user_id)


def preview_stored_role(db: Session, caller: Caller, *, role_id: int) -> RolePreviewOut:
    role = _get_role(db, role_id)
    if not caller.is_superuser and not is_active_member(db, role["club_id"], caller.user_id):
        raise PermissionDenied()
    return role_preview(load_role_permissions(db, role_id))


def preview_permissions(permissions: Mapping[str, object] | None) -> RolePreviewOut:
    return role_preview(full_permission_map(parse_permission_map(permissions)))
