from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubportal.core.errors import (
    AlreadyProcessed,
    Conflict,
    NotFound,
    PermissionDenied,
    SystemInvariantProtected,
    ValidationError,
)
from clubportal.db.session import transaction
from clubportal.schemas.membership import JoinRequestCreatedOut, MemberOut, MyClubOut, PendingJoinRequestOut
from clubportal.services.audit import audit
from clubportal.services.identity import Caller
from clubportal.services.permissions import Permission, check_permission, require_permission

logger = logging.getLogger(__name__)


def normalize_access_code(raw: str | None) -> str:
    code = (raw or "").strip().upper()
    if not code:
        raise ValidationError("Access code is required")
    return code


def _load_join_request(db: Session, request_id: int) -> dict:
    row = db.execute(sa.text("""
        SELECT id, club_id, user_id, status
        FROM club_join_requests
        WHERE id=:r
    """), {"r": request_id}).mappings().first()
    if not row:
        raise NotFound("Request not found")
    if row["status"] != "pending":
        raise AlreadyProcessed("Request not found or already processed")
    return dict(row)


def _assert_role_in_club(db: Session, role_id: int, club_id: int):
    ok = db.execute(
        sa.text("SELECT 1 FROM club_roles WHERE id=:r AND club_id=:c"),
        {"r": role_id, "c": club_id},
    ).first()
    if not ok:
        raise ValidationError("Invalid role for this club")


def _active_membership_id(db: Session, club_id: int, user_id: int) -> int | None:
    return db.execute(sa.text("""
        SELECT id
        FROM club_members
        WHERE club_id=:c AND user_id=:u AND status='active'
    """), {"c": club_id, "u": user_id}).scalar_one_or_none()


def request_join(db: Session, caller: Caller, *, access_code: str, message: str = "") -> JoinRequestCreatedOut:
    code = normalize_access_code(access_code)

    club = db.execute(sa.text("""
        SELECT id, name
        FROM clubs
        WHERE access_code=:code AND is_active=:active
    """), {"code": code, "active": True}).mappings().first()
    if not club:
        raise NotFound("Invalid access code")

    existing = db.execute(sa.text("""
        SELECT status
        FROM club_members
        WHERE club_id=:c AND user_id=:u
    """), {"c": club["id"], "u": caller.user_id}).scalar_one_or_none()
    if existing is not None:
        raise Conflict("Already a member" if existing == "active" else "Removed from club")

    pending = db.execute(sa.text("""
        SELECT id
        FROM club_join_requests
        WHERE club_id=:c AND user_id=:u AND status='pending'
    """), {"c": club["id"], "u": caller.user_id}).first()
    if pending:
        raise Conflict("Already have pending request")

    with transaction(db):
        try:
            request_id = db.execute(sa.text("""
                INSERT INTO club_join_requests (club_id, user_id, access_code_used, message, status)
                VALUES (:c, :u, :code, :message, 'pending')
                RETURNING id
            """), {
                "c": club["id"],
                "u": caller.user_id,
                "code": code,
                "message": (message or "").strip(),
            }).scalar_one()
        except IntegrityError:
            raise Conflict("Already have pending request")
        audit(db, caller.user_id, "join_request", request_id, "submitted", {"club_id": club["id"]})

    return JoinRequestCreatedOut(request_id=request_id, club_id=club["id"], club_name=club["name"])


def list_pending_join_requests(db: Session, caller: Caller, club_id: int) -> list[PendingJoinRequestOut]:
    require_permission(db, caller, club_id, Permission.MANAGE_MEMBERS)
    rows = db.execute(sa.text("""
        SELECT
            jr.id,
            jr.club_id,
            jr.user_id,
            jr.access_code_used,
            jr.message,
            jr.created_at,
            u.email,
            u.first_name,
            u.last_name
        FROM club_join_requests jr
        JOIN users u ON u.id = jr.user_id
        WHERE jr.club_id=:c AND jr.status='pending'
        ORDER BY jr.created_at ASC, jr.id ASC
    """), {"c": club_id}).mappings().all()
    return [PendingJoinRequestOut(**r) for r in rows]


def approve_join_request(db: Session, caller: Caller, *, request_id: int, role_id: int) -> None:
    request = _load_join_request(db, request_id)
    require_permission(db, caller, request["club_id"], Permission.MANAGE_MEMBERS)
    _assert_role_in_club(db, role_id, request["club_id"])

    with transaction(db):
        claimed = db.execute(sa.text("""
            UPDATE club_join_requests
            SET status='approved',
                reviewed_by=:reviewer,
                reviewed_at=CURRENT_TIMESTAMP,
                assigned_role_id=:role
            WHERE id=:r AND status='pending'
        """), {"reviewer": caller.user_id, "role": role_id, "r": request_id}).rowcount
        if claimed == 0:
            raise AlreadyProcessed("Request not found or already processed")

        try:
            db.execute(sa.text("""
                INSERT INTO club_members (club_id, user_id, role_id, is_president, status)
                VALUES (:c, :u, :role, :president, 'active')
            """), {"c": request["club_id"], "u": request["user_id"], "role": role_id, "president": False})
        except IntegrityError:
            raise Conflict("User already has a membership in this club")

        general_room = db.execute(sa.text("""
            SELECT id
            FROM chat_rooms
            WHERE club_id=:c AND is_general=:general
            ORDER BY id
            LIMIT 1
        """), {"c": request["club_id"], "general": True}).scalar_one_or_none()
        if general_room is not None:
            db.execute(
                sa.text("INSERT INTO chat_room_members (room_id, user_id) VALUES (:room, :u)"),
                {"room": general_room, "u": request["user_id"]},
            )

        audit(db, caller.user_id, "join_request", request_id, "approved", {
            "club_id": request["club_id"],
            "user_id": request["user_id"],
            "role_id": role_id,
        })

    logger.info("Join request %s approved by user %s", request_id, caller.user_id)


def reject_join_request(db: Session, caller: Caller, *, request_id: int, reason: str | None = None) -> None:
    request = _load_join_request(db, request_id)
    require_permission(db, caller, request["club_id"], Permission.MANAGE_MEMBERS)

    with transaction(db):
        claimed = db.execute(sa.text("""
            UPDATE club_join_requests
            SET status='rejected',
                reviewed_by=:reviewer,
                reviewed_at=CURRENT_TIMESTAMP,
                rejection_reason=:reason
            WHERE id=:r AND status='pending'
        """), {"reviewer": caller.user_id, "reason": (reason or "").strip(), "r": request_id}).rowcount
        if claimed == 0:
            raise AlreadyProcessed("Request not found or already processed")
        audit(db, caller.user_id, "join_request", request_id, "rejected", {"reason": reason})

    logger.info("Join request %s rejected by user %s", request_id, caller.user_id)


def assign_role(db: Session, caller: Caller, *, club_id: int, user_id: int, role_id: int) -> None:
    require_permission(db, caller, club_id, Permission.ASSIGN_ROLES)
    _assert_role_in_club(db, role_id, club_id)
    membership_id = _active_membership_id(db, club_id, user_id)
    if membership_id is None:
        raise NotFound("User is not a member of this club")

    with transaction(db):
        db.execute(
            sa.text("UPDATE club_members SET role_id=:role WHERE id=:m"),
            {"role": role_id, "m": membership_id},
        )
        audit(db, caller.user_id, "club_member", membership_id, "role_assigned", {
            "club_id": club_id,
            "user_id": user_id,
            "role_id": role_id,
        })


def _current_president(db: Session, club_id: int) -> int | None:
    row = db.execute(
        sa.text("SELECT current_president_id FROM clubs WHERE id=:c"),
        {"c": club_id},
    ).first()
    if not row:
        raise NotFound("Club not found")
    return row[0]


def set_president(db: Session, caller: Caller, *, club_id: int, user_id: int) -> None:
    expected = _current_president(db, club_id)
    if not caller.is_superuser and (expected is None or expected != caller.user_id):
        raise PermissionDenied()

    if _active_membership_id(db, club_id, user_id) is None:
        raise NotFound("User is not a member of this club")

    with transaction(db):
        # Transfers race on clubs.current_president_id; only the first one to move it wins.
        if expected is None:
            claimed = db.execute(sa.text("""
                UPDATE clubs SET current_president_id=:u
                WHERE id=:c AND current_president_id IS NULL
            """), {"u": user_id, "c": club_id}).rowcount
        else:
            claimed = db.execute(sa.text("""
                UPDATE clubs SET current_president_id=:u
                WHERE id=:c AND current_president_id=:expected
            """), {"u": user_id, "c": club_id, "expected": expected}).rowcount
        if claimed == 0:
            raise Conflict("Club president changed, reload and try again")

        db.execute(
            sa.text("UPDATE club_members SET is_president=:off WHERE club_id=:c"),
            {"off": False, "c": club_id},
        )
        promoted = db.execute(sa.text("""
            UPDATE club_members
            SET is_president=:on
            WHERE club_id=:c AND user_id=:u AND status='active'
        """), {"on": True, "c": club_id, "u": user_id}).rowcount
        if promoted != 1:
            raise NotFound("User is not a member of this club")
        audit(db, caller.user_id, "club", club_id, "president_set", {"user_id": user_id})

    logger.info("Club %s president set to user %s by user %s", club_id, user_id, caller.user_id)


def list_members(db: Session, caller: Caller, club_id: int) -> list[MemberOut]:
    if not caller.is_superuser and not check_permission(db, club_id, caller.user_id, Permission.VIEW_MEMBERS):
        raise PermissionDenied()
    rows = db.execute(sa.text("""
        SELECT
            cm.user_id,
            u.email,
            u.first_name,
            u.last_name,
            cm.role_id,
            cr.role_name,
            cm.is_president,
            cm.joined_at
        FROM club_members cm
        JOIN users u ON u.id = cm.user_id
        JOIN club_roles cr ON cr.id = cm.role_id
        WHERE cm.club_id=:c AND cm.status='active'
        ORDER BY cm.is_president DESC, u.last_name ASC, u.first_name ASC
    """), {"c": club_id}).mappings().all()
    return [MemberOut(**r) for r in rows]


def remove_member(db: Session, caller: Caller, *, club_id: int, user_id: int) -> None:
    require_permission(db, caller, club_id, Permission.REMOVE_MEMBERS)
    row = db.execute(sa.text("""
        SELECT id, is_president
        FROM club_members
        WHERE club_id=:c AND user_id=:u AND status='active'
    """), {"c": club_id, "u": user_id}).mappings().first()
    if not row:
        raise NotFound("User is not a member of this club")
    if row["is_president"]:
        raise SystemInvariantProtected("Cannot remove the club president. Transfer the presidency first.")

    with transaction(db):
        db.execute(
            sa.text("UPDATE club_members SET status='removed' WHERE id=:m AND status='active'"),
            {"m": row["id"]},
        )
        db.execute(sa.text("""
            DELETE FROM chat_room_members
            WHERE user_id=:u
              AND room_id IN (SELECT id FROM chat_rooms WHERE club_id=:c)
        """), {"u": user_id, "c": club_id})
        audit(db, caller.user_id, "club_member", row["id"], "removed", {"club_id": club_id, "user_id": user_id})


def list_my_clubs(db: Session, caller: Caller) -> list[MyClubOut]:
    rows = db.execute(sa.text("""
        SELECT
            c.id,
            c.name,
            c.description,
            c.access_code,
            cm.is_president,
            cm.role_id,
            cr.role_name
        FROM clubs c
        JOIN club_members cm ON cm.club_id = c.id
        JOIN club_roles cr ON cr.id = cm.role_id
        WHERE cm.user_id=:u AND cm.status='active' AND c.is_active=:active
        ORDER BY cm.is_president DESC, c.name ASC
    """), {"u": caller.user_id, "active": True}).mappings().all()
    return [MyClubOut(**r) for r in rows]
