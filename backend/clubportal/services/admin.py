from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.orm import Session

from clubportal.core.errors import NotFound, SystemInvariantProtected
from clubportal.db.session import transaction
from clubportal.schemas.admin import AdminClubOut, AdminUserOut
from clubportal.services.audit import audit
from clubportal.services.identity import Caller, require_superuser

logger = logging.getLogger(__name__)

_CLUB_SUMMARY = """
    SELECT
        c.id,
        c.name,
        c.description,
        c.staff_advisor,
        c.access_code,
        c.is_active,
        c.current_president_id,
        u.first_name AS president_first_name,
        u.last_name AS president_last_name,
        (
            SELECT count(*)
            FROM club_members cm
            WHERE cm.club_id = c.id AND cm.status = 'active'
        ) AS member_count,
        c.created_at
    FROM clubs c
    LEFT JOIN users u ON u.id = c.current_president_id
"""


def list_clubs(db: Session, caller: Caller) -> list[AdminClubOut]:
    require_superuser(caller)
    rows = db.execute(sa.text(f"""
        {_CLUB_SUMMARY}
        ORDER BY c.created_at DESC, c.id DESC
    """)).mappings().all()
    return [AdminClubOut(**r) for r in rows]


def club_summary(db: Session, caller: Caller, club_id: int) -> AdminClubOut:
    require_superuser(caller)
    row = db.execute(sa.text(f"""
        {_CLUB_SUMMARY}
        WHERE c.id=:c
    """), {"c": club_id}).mappings().first()
    if not row:
        raise NotFound("Club not found")
    return AdminClubOut(**row)


def list_users(db: Session, caller: Caller) -> list[AdminUserOut]:
    """Every regular account with its active club count. Superusers are left out."""
    require_superuser(caller)
    rows = db.execute(sa.text("""
        SELECT
            u.id,
            u.email,
            u.first_name,
            u.last_name,
            u.is_active,
            u.created_at,
            u.last_login_at,
            (
                SELECT count(*)
                FROM club_members cm
                WHERE cm.user_id = u.id AND cm.status = 'active'
            ) AS club_count
        FROM users u
        WHERE u.is_superuser=:off
        ORDER BY u.created_at DESC, u.id DESC
    """), {"off": False}).mappings().all()
    return [AdminUserOut(**r) for r in rows]


def set_user_active(db: Session, caller: Caller, *, user_id: int, active: bool) -> None:
    require_superuser(caller)
    target = db.execute(
        sa.text("SELECT is_superuser FROM users WHERE id=:u"),
        {"u": user_id},
    ).scalar_one_or_none()
    if target is None:
        raise NotFound("User not found")
    if target and not active:
        raise SystemInvariantProtected("Cannot deactivate a superuser")

    with transaction(db):
        db.execute(
            sa.text("UPDATE users SET is_active=:active WHERE id=:u"),
            {"active": active, "u": user_id},
        )
        audit(db, caller.user_id, "user", user_id, "activated" if active else "deactivated", {})

    logger.info("User %s %s by user %s", user_id, "activated" if active else "deactivated", caller.user_id)
