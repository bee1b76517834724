"""
Club creation requests and the provisioning workflow that turns an approved
request into a working club.

Approval runs as one transaction: claim the request, create the club, its
three system roles, the president membership and the general chat room. A
failure at any step rolls all of it back and leaves the request pending.
"""
from __future__ import annotations

import logging
import secrets

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubportal.core.config import settings
from clubportal.core.errors import AlreadyProcessed, Conflict, NotFound, PersistenceFailure, ValidationError
from clubportal.db.session import transaction
from clubportal.schemas.clubs import ClubApprovedOut, ClubRequestOut, PendingClubRequestOut
from clubportal.services.audit import audit
from clubportal.services.identity import Caller, require_superuser
from clubportal.services.permissions import (
    PRESIDENT_ROLE,
    SYSTEM_ROLE_PROFILES,
    profile_permission_map,
    write_role_permissions,
)

logger = logging.getLogger(__name__)

GENERAL_ROOM_NAME = "General"
GENERAL_ROOM_DESCRIPTION = "Main chat room for all members"

_REQUEST_COLUMNS = """
    cr.id,
    cr.requested_by,
    cr.club_name,
    cr.description,
    cr.staff_advisor,
    cr.president_name,
    cr.requester_comment,
    cr.status,
    cr.rejection_reason,
    cr.reviewed_at,
    cr.created_club_id,
    cr.created_at
"""


def _random_suffix() -> int:
    return 1000 + secrets.randbelow(9000)


def access_code_prefix(club_name: str) -> str:
    prefix = "".join(ch for ch in club_name[:6] if ch.isalnum()).upper()
    return prefix or "CLUB"


def generate_access_code(club_name: str) -> str:
    return f"{access_code_prefix(club_name)}{_random_suffix()}"


def _unique_access_code(db: Session, club_name: str) -> str:
    for _ in range(max(1, settings.ACCESS_CODE_MAX_ATTEMPTS)):
        code = generate_access_code(club_name)
        taken = db.execute(sa.text("SELECT 1 FROM clubs WHERE access_code=:code"), {"code": code}).first()
        if not taken:
            return code
    logger.error("Could not find a free access code for club name %r", club_name)
    raise PersistenceFailure("Could not generate a unique access code")


def submit_club_request(
    db: Session,
    caller: Caller,
    *,
    club_name: str,
    president_name: str,
    description: str = "",
    staff_advisor: str = "",
    requester_comment: str = "",
) -> int:
    club_name = (club_name or "").strip()
    president_name = (president_name or "").strip()
    if not club_name or not president_name:
        raise ValidationError("Club name and president name are required")

    pending = db.execute(sa.text("""
        SELECT id
        FROM club_creation_requests
        WHERE requested_by=:u AND status='pending'
    """), {"u": caller.user_id}).first()
    if pending:
        raise Conflict("You already have a pending club creation request")

    with transaction(db):
        try:
            request_id = db.execute(sa.text("""
                INSERT INTO club_creation_requests
                    (requested_by, club_name, description, staff_advisor, president_name, requester_comment, status)
                VALUES (:u, :name, :description, :advisor, :president, :comment, 'pending')
                RETURNING id
            """), {
                "u": caller.user_id,
                "name": club_name,
                "description": (description or "").strip(),
                "advisor": (staff_advisor or "").strip(),
                "president": president_name,
                "comment": (requester_comment or "").strip(),
            }).scalar_one()
        except IntegrityError:
            raise Conflict("You already have a pending club creation request")
        audit(db, caller.user_id, "club_request", request_id, "submitted", {"club_name": club_name})

    return request_id


def list_my_club_requests(db: Session, caller: Caller) -> list[ClubRequestOut]:
    rows = db.execute(sa.text(f"""
        SELECT {_REQUEST_COLUMNS}
        FROM club_creation_requests cr
        WHERE cr.requested_by=:u
        ORDER BY cr.created_at DESC, cr.id DESC
    """), {"u": caller.user_id}).mappings().all()
    return [ClubRequestOut(**r) for r in rows]


def list_pending_club_requests(db: Session, caller: Caller) -> list[PendingClubRequestOut]:
    require_superuser(caller)
    rows = db.execute(sa.text(f"""
        SELECT
            {_REQUEST_COLUMNS},
            u.email,
            u.first_name AS requester_first_name,
            u.last_name AS requester_last_name
        FROM club_creation_requests cr
        JOIN users u ON u.id = cr.requested_by
        WHERE cr.status='pending'
        ORDER BY cr.created_at ASC, cr.id ASC
    """)).mappings().all()
    return [PendingClubRequestOut(**r) for r in rows]


def _request_status(db: Session, request_id: int) -> str:
    status = db.execute(
        sa.text("SELECT status FROM club_creation_requests WHERE id=:r"),
        {"r": request_id},
    ).scalar_one_or_none()
    if status is None:
        raise NotFound("Request not found")
    return status


def _claim_club_request(db: Session, caller: Caller, request_id: int, status: str, reason: str | None = None) -> dict:
    row = db.execute(sa.text("""
        UPDATE club_creation_requests
        SET status=:status,
            reviewed_by=:reviewer,
            reviewed_at=CURRENT_TIMESTAMP,
            rejection_reason=:reason
        WHERE id=:r AND status='pending'
        RETURNING id, requested_by, club_name, description, staff_advisor
    """), {"status": status, "reviewer": caller.user_id, "reason": reason, "r": request_id}).mappings().first()
    if not row:
        raise AlreadyProcessed("Request not found or already processed")
    return dict(row)


def _insert_club(db: Session, request: dict, access_code: str) -> int:
    return db.execute(sa.text("""
        INSERT INTO clubs
            (name, description, staff_advisor, access_code, current_president_id, created_from_request_id, is_active)
        VALUES (:name, :description, :advisor, :code, :president, :request_id, :active)
        RETURNING id
    """), {
        "name": request["club_name"],
        "description": request["description"],
        "advisor": request["staff_advisor"],
        "code": access_code,
        "president": request["requested_by"],
        "request_id": request["id"],
        "active": True,
    }).scalar_one()


def _insert_system_roles(db: Session, club_id: int) -> dict[str, int]:
    role_ids: dict[str, int] = {}
    for role_name, description, granted in SYSTEM_ROLE_PROFILES:
        role_id = db.execute(sa.text("""
            INSERT INTO club_roles (club_id, role_name, role_description, is_system_role)
            VALUES (:c, :n, :d, :system)
            RETURNING id
        """), {"c": club_id, "n": role_name, "d": description, "system": True}).scalar_one()
        write_role_permissions(db, role_id, profile_permission_map(granted))
        role_ids[role_name] = role_id
    return role_ids


def _insert_president_membership(db: Session, club_id: int, user_id: int, role_id: int):
    db.execute(sa.text("""
        INSERT INTO club_members (club_id, user_id, role_id, is_president, status)
        VALUES (:c, :u, :r, :president, 'active')
    """), {"c": club_id, "u": user_id, "r": role_id, "president": True})


def _insert_general_chat_room(db: Session, club_id: int, user_id: int) -> int:
    room_id = db.execute(sa.text("""
        INSERT INTO chat_rooms (club_id, room_name, description, created_by, is_general)
        VALUES (:c, :name, :description, :u, :general)
        RETURNING id
    """), {
        "c": club_id,
        "name": GENERAL_ROOM_NAME,
        "description": GENERAL_ROOM_DESCRIPTION,
        "u": user_id,
        "general": True,
    }).scalar_one()
    db.execute(
        sa.text("INSERT INTO chat_room_members (room_id, user_id) VALUES (:room, :u)"),
        {"room": room_id, "u": user_id},
    )
    return room_id


def _link_created_club(db: Session, request_id: int, club_id: int):
    db.execute(
        sa.text("UPDATE club_creation_requests SET created_club_id=:c WHERE id=:r"),
        {"c": club_id, "r": request_id},
    )


def approve_club_request(db: Session, caller: Caller, *, request_id: int) -> ClubApprovedOut:
    require_superuser(caller)
    if _request_status(db, request_id) != "pending":
        raise AlreadyProcessed("Request not found or already processed")

    with transaction(db):
        request = _claim_club_request(db, caller, request_id, "approved")
        access_code = _unique_access_code(db, request["club_name"])
        club_id = _insert_club(db, request, access_code)
        role_ids = _insert_system_roles(db, club_id)
        _insert_president_membership(db, club_id, request["requested_by"], role_ids[PRESIDENT_ROLE])
        _insert_general_chat_room(db, club_id, request["requested_by"])
        _link_created_club(db, request_id, club_id)
        audit(db, caller.user_id, "club", club_id, "created", {
            "request_id": request_id,
            "access_code": access_code,
            "president_id": request["requested_by"],
        })

    logger.info("Club request %s approved as club %s (%s)", request_id, club_id, access_code)
    return ClubApprovedOut(club_id=club_id, access_code=access_code)


def reject_club_request(db: Session, caller: Caller, *, request_id: int, reason: str | None = None) -> None:
    require_superuser(caller)
    if _request_status(db, request_id) != "pending":
        raise AlreadyProcessed("Request not found or already processed")

    with transaction(db):
        _claim_club_request(db, caller, request_id, "rejected", reason=(reason or "").strip())
        audit(db, caller.user_id, "club_request", request_id, "rejected", {"reason": reason})

    logger.info("Club request %s rejected by user %s", request_id, caller.user_id)


def deactivate_club(db: Session, caller: Caller, *, club_id: int) -> None:
    require_superuser(caller)
    with transaction(db):
        updated = db.execute(
            sa.text("UPDATE clubs SET is_active=:active WHERE id=:c"),
            {"active": False, "c": club_id},
        ).rowcount
        if updated == 0:
            raise NotFound("Club not found")
        audit(db, caller.user_id, "club", club_id, "deactivated", {})
