"""
Permission store and authorization gate.

Every club role carries exactly one boolean row per ``Permission`` in
``role_permissions``. ``check_permission`` is the single predicate the rest of
the application consults before touching club data; it is closed-world, so a
missing membership, role row or key reads as "denied".
"""
from __future__ import annotations

import enum
from collections.abc import Mapping

import sqlalchemy as sa
from sqlalchemy.orm import Session

from clubportal.core.errors import PermissionDenied, ValidationError
from clubportal.services.identity import Caller


class Permission(str, enum.Enum):
    VIEW_ANNOUNCEMENTS = "view_announcements"
    CREATE_ANNOUNCEMENTS = "create_announcements"
    EDIT_ANNOUNCEMENTS = "edit_announcements"
    DELETE_ANNOUNCEMENTS = "delete_announcements"
    VIEW_EVENTS = "view_events"
    CREATE_EVENTS = "create_events"
    EDIT_EVENTS = "edit_events"
    DELETE_EVENTS = "delete_events"
    VIEW_MEMBERS = "view_members"
    MANAGE_MEMBERS = "manage_members"
    REMOVE_MEMBERS = "remove_members"
    VIEW_ATTENDANCE = "view_attendance"
    EXPORT_ATTENDANCE = "export_attendance"
    VIEW_STATS = "view_stats"
    MODIFY_CLUB_SETTINGS = "modify_club_settings"
    CREATE_ROLES = "create_roles"
    ASSIGN_ROLES = "assign_roles"
    MANAGE_ROLES = "manage_roles"
    ACCESS_CHAT = "access_chat"


ALL_PERMISSIONS: tuple[Permission, ...] = tuple(Permission)

PermissionMap = dict[Permission, bool]

PRESIDENT_ROLE = "President"
VICE_PRESIDENT_ROLE = "Vice President"
MEMBER_ROLE = "Member"

_VICE_PRESIDENT_GRANTS = frozenset({
    Permission.VIEW_ANNOUNCEMENTS,
    Permission.CREATE_ANNOUNCEMENTS,
    Permission.EDIT_ANNOUNCEMENTS,
    Permission.VIEW_EVENTS,
    Permission.CREATE_EVENTS,
    Permission.EDIT_EVENTS,
    Permission.VIEW_MEMBERS,
    Permission.MANAGE_MEMBERS,
    Permission.VIEW_ATTENDANCE,
    Permission.EXPORT_ATTENDANCE,
    Permission.VIEW_STATS,
    Permission.ASSIGN_ROLES,
    Permission.ACCESS_CHAT,
})

_MEMBER_GRANTS = frozenset({
    Permission.VIEW_ANNOUNCEMENTS,
    Permission.VIEW_EVENTS,
    Permission.VIEW_MEMBERS,
    Permission.ACCESS_CHAT,
})

# (role_name, role_description, granted permissions), in creation order.
SYSTEM_ROLE_PROFILES: tuple[tuple[str, str, frozenset[Permission]], ...] = (
    (PRESIDENT_ROLE, "Club president with full permissions", frozenset(ALL_PERMISSIONS)),
    (VICE_PRESIDENT_ROLE, "Assists president and manages operations", _VICE_PRESIDENT_GRANTS),
    (MEMBER_ROLE, "Regular club member", _MEMBER_GRANTS),
)


def parse_permission(raw: str) -> Permission:
    try:
        return Permission(raw)
    except ValueError:
        raise ValidationError(f"Unknown permission '{raw}'")


def parse_permission_map(raw: Mapping[str, object] | None) -> PermissionMap:
    out: PermissionMap = {}
    for key, value in (raw or {}).items():
        perm = parse_permission(key)
        if not isinstance(value, bool):
            raise ValidationError(f"Permission '{key}' must be true or false")
        out[perm] = value
    return out


def full_permission_map(partial: Mapping[Permission, bool] | None = None) -> PermissionMap:
    partial = partial or {}
    return {perm: bool(partial.get(perm, False)) for perm in ALL_PERMISSIONS}


def profile_permission_map(granted: frozenset[Permission]) -> PermissionMap:
    return {perm: perm in granted for perm in ALL_PERMISSIONS}


def load_role_permissions(db: Session, role_id: int) -> PermissionMap:
    rows = db.execute(sa.text("""
        SELECT permission_key, permission_value
        FROM role_permissions
        WHERE role_id=:r
    """), {"r": role_id}).mappings().all()

    stored: PermissionMap = {}
    for r in rows:
        try:
            stored[Permission(r["permission_key"])] = bool(r["permission_value"])
        except ValueError:
            # Keys retired from the enum stay in the table but grant nothing.
            continue
    return full_permission_map(stored)


def write_role_permissions(db: Session, role_id: int, permissions: Mapping[Permission, bool]):
    """Insert one row per permission key for a freshly created role."""
    full = full_permission_map(permissions)
    db.execute(
        sa.text("""
            INSERT INTO role_permissions (role_id, permission_key, permission_value)
            VALUES (:r, :k, :v)
        """),
        [{"r": role_id, "k": perm.value, "v": value} for perm, value in full.items()],
    )


def patch_role_permissions(db: Session, role_id: int, patch: Mapping[Permission, bool]):
    """Overwrite only the supplied keys; every other key keeps its value."""
    for perm, value in patch.items():
        updated = db.execute(sa.text("""
            UPDATE role_permissions
            SET permission_value=:v
            WHERE role_id=:r AND permission_key=:k
        """), {"r": role_id, "k": perm.value, "v": bool(value)}).rowcount
        if updated == 0:
            db.execute(sa.text("""
                INSERT INTO role_permissions (role_id, permission_key, permission_value)
                VALUES (:r, :k, :v)
            """), {"r": role_id, "k": perm.value, "v": bool(value)})


def _coerce_id(raw) -> int | None:
    # Only real ints and all-digit strings; bools and floats never name a row.
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        return int(raw.strip())
    return None


def check_permission(db: Session, club_id, user_id, permission) -> bool:
    club_id = _coerce_id(club_id)
    user_id = _coerce_id(user_id)
    if club_id is None or user_id is None:
        return False
    try:
        perm = Permission(permission)
    except (TypeError, ValueError):
        return False

    row = db.execute(sa.text("""
        SELECT rp.permission_value
        FROM club_members cm
        JOIN clubs c ON c.id = cm.club_id
        JOIN club_roles r ON r.id = cm.role_id AND r.club_id = cm.club_id
        JOIN role_permissions rp ON rp.role_id = cm.role_id
        WHERE cm.club_id=:c
          AND cm.user_id=:u
          AND cm.status='active'
          AND c.is_active=:active
          AND rp.permission_key=:k
    """), {"c": club_id, "u": user_id, "k": perm.value, "active": True}).first()
    return bool(row and row[0])


def require_permission(db: Session, caller: Caller, club_id: int, permission: Permission) -> None:
    if not check_permission(db, club_id, caller.user_id, permission):
        raise PermissionDenied()


def is_active_member(db: Session, club_id: int, user_id: int) -> bool:
    row = db.execute(sa.text("""
        SELECT 1
        FROM club_members
        WHERE club_id=:c AND user_id=:u AND status='active'
    """), {"c": club_id, "u": user_id}).first()
    return row is not None
