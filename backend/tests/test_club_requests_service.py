import re
from itertools import chain, repeat

import pytest
import sqlalchemy as sa

from clubportal.core.config import settings
from clubportal.core.errors import AlreadyProcessed, Conflict, NotFound, PermissionDenied, PersistenceFailure, ValidationError
from clubportal.services import club_requests
from clubportal.services.club_requests import (
    access_code_prefix,
    approve_club_request,
    deactivate_club,
    list_my_club_requests,
    list_pending_club_requests,
    reject_club_request,
    submit_club_request,
)
from clubportal.services.membership import request_join
from clubportal.services.permissions import MEMBER_ROLE, PRESIDENT_ROLE, VICE_PRESIDENT_ROLE, Permission, check_permission
from tests.testkit import count_rows, make_user, provision_club


@pytest.fixture()
def people(db):
    return {
        "admin": make_user(db, "admin@example.com", superuser=True),
        "alice": make_user(db, "alice@example.com", last_name="Alvarez"),
        "bob": make_user(db, "bob@example.com", last_name="Baker"),
    }


def test_access_code_prefix():
    assert access_code_prefix("Chess Masters Club") == "CHESS"
    assert access_code_prefix("robotics") == "ROBOTI"
    assert access_code_prefix("A-B C! Society") == "ABC"
    assert access_code_prefix("!!!") == "CLUB"


def test_approve_provisions_a_working_club(db, people):
    alice = people["alice"]
    request_id = submit_club_request(db, alice, club_name="Chess Masters Club", president_name="Alice")

    out = approve_club_request(db, people["admin"], request_id=request_id)

    assert re.fullmatch(r"CHESS\d{4}", out.access_code)
    club = db.execute(sa.text("SELECT * FROM clubs WHERE id=:c"), {"c": out.club_id}).mappings().one()
    assert club["name"] == "Chess Masters Club"
    assert club["current_president_id"] == alice.user_id
    assert club["created_from_request_id"] == request_id

    roles = db.execute(
        sa.text("SELECT role_name FROM club_roles WHERE club_id=:c AND is_system_role=:s ORDER BY id"),
        {"c": out.club_id, "s": True},
    ).scalars().all()
    assert roles == [PRESIDENT_ROLE, VICE_PRESIDENT_ROLE, MEMBER_ROLE]
    assert count_rows(db, "role_permissions rp JOIN club_roles r ON r.id = rp.role_id", "r.club_id=:c", {"c": out.club_id}) == 57

    membership = db.execute(sa.text("""
        SELECT cm.is_president, cm.status, r.role_name
        FROM club_members cm JOIN club_roles r ON r.id = cm.role_id
        WHERE cm.club_id=:c AND cm.user_id=:u
    """), {"c": out.club_id, "u": alice.user_id}).mappings().one()
    assert bool(membership["is_president"]) is True
    assert membership["status"] == "active"
    assert membership["role_name"] == PRESIDENT_ROLE

    room = db.execute(
        sa.text("SELECT id, room_name, is_general FROM chat_rooms WHERE club_id=:c"),
        {"c": out.club_id},
    ).mappings().one()
    assert room["room_name"] == "General"
    assert bool(room["is_general"]) is True
    assert count_rows(db, "chat_room_members", "room_id=:r AND user_id=:u", {"r": room["id"], "u": alice.user_id}) == 1

    request = db.execute(sa.text("SELECT * FROM club_creation_requests WHERE id=:r"), {"r": request_id}).mappings().one()
    assert request["status"] == "approved"
    assert request["reviewed_by"] == people["admin"].user_id
    assert request["reviewed_at"] is not None
    assert request["created_club_id"] == out.club_id

    for perm in Permission:
        assert check_permission(db, out.club_id, alice.user_id, perm) is True


@pytest.mark.parametrize("step", [
    "_unique_access_code",
    "_insert_club",
    "_insert_system_roles",
    "_insert_president_membership",
    "_insert_general_chat_room",
    "_link_created_club",
])
def test_failure_at_any_step_rolls_back_everything(db, people, monkeypatch, step):
    request_id = submit_club_request(db, people["alice"], club_name="Chess Masters Club", president_name="Alice")
    real = getattr(club_requests, step)

    def fail_after_running(*args, **kwargs):
        real(*args, **kwargs)
        raise RuntimeError(f"{step} exploded")

    monkeypatch.setattr(club_requests, step, fail_after_running)

    with pytest.raises(RuntimeError):
        approve_club_request(db, people["admin"], request_id=request_id)

    for table in ("clubs", "club_roles", "role_permissions", "club_members", "chat_rooms", "chat_room_members"):
        assert count_rows(db, table) == 0, table
    status = db.execute(sa.text("SELECT status FROM club_creation_requests WHERE id=:r"), {"r": request_id}).scalar_one()
    assert status == "pending"

    monkeypatch.setattr(club_requests, step, real)
    out = approve_club_request(db, people["admin"], request_id=request_id)
    assert count_rows(db, "clubs", "id=:c", {"c": out.club_id}) == 1


def test_access_code_collisions_are_retried(db, people, monkeypatch):
    suffixes = chain([1234, 1234, 5678], repeat(9999))
    monkeypatch.setattr(club_requests, "_random_suffix", lambda: next(suffixes))

    first = provision_club(db, people["admin"], people["alice"], "Chess Masters Club")
    second = provision_club(db, people["admin"], people["bob"], "Chess Club")

    assert first.access_code == "CHESS1234"
    assert second.access_code == "CHESS5678"


def test_access_code_exhaustion_leaves_request_pending(db, people, monkeypatch):
    monkeypatch.setattr(club_requests, "_random_suffix", lambda: 1234)
    monkeypatch.setattr(settings, "ACCESS_CODE_MAX_ATTEMPTS", 3)
    provision_club(db, people["admin"], people["alice"], "Chess Masters Club")

    request_id = submit_club_request(db, people["bob"], club_name="Chess Club", president_name="Bob")
    with pytest.raises(PersistenceFailure):
        approve_club_request(db, people["admin"], request_id=request_id)

    assert count_rows(db, "clubs") == 1
    assert count_rows(db, "club_creation_requests", "id=:r AND status='pending'", {"r": request_id}) == 1


def test_only_one_pending_request_per_user(db, people):
    submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")
    with pytest.raises(Conflict):
        submit_club_request(db, people["alice"], club_name="Go", president_name="Alice")
    with pytest.raises(ValidationError):
        submit_club_request(db, people["bob"], club_name="  ", president_name="Bob")


def test_approve_and_reject_are_superuser_only(db, people):
    request_id = submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")
    with pytest.raises(PermissionDenied):
        approve_club_request(db, people["bob"], request_id=request_id)
    with pytest.raises(PermissionDenied):
        reject_club_request(db, people["alice"], request_id=request_id)
    with pytest.raises(PermissionDenied):
        list_pending_club_requests(db, people["bob"])


def test_reject_records_reason_and_creates_nothing(db, people):
    request_id = submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")
    reject_club_request(db, people["admin"], request_id=request_id, reason="  Duplicate of chess society ")

    row = db.execute(sa.text("SELECT status, rejection_reason FROM club_creation_requests WHERE id=:r"), {"r": request_id}).one()
    assert row.status == "rejected"
    assert row.rejection_reason == "Duplicate of chess society"
    assert count_rows(db, "clubs") == 0

    # Rejection frees the requester to submit again.
    submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")


def test_processed_requests_cannot_be_reviewed_again(db, people):
    request_id = submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")
    approve_club_request(db, people["admin"], request_id=request_id)

    with pytest.raises(AlreadyProcessed):
        approve_club_request(db, people["admin"], request_id=request_id)
    with pytest.raises(AlreadyProcessed):
        reject_club_request(db, people["admin"], request_id=request_id)
    with pytest.raises(NotFound):
        approve_club_request(db, people["admin"], request_id=9999)
    assert count_rows(db, "clubs") == 1


def test_stale_pending_check_loses_the_claim(db, people, monkeypatch):
    request_id = submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")
    approve_club_request(db, people["admin"], request_id=request_id)

    # A second reviewer that read the request while it was still pending.
    monkeypatch.setattr(club_requests, "_request_status", lambda db, rid: "pending")
    with pytest.raises(AlreadyProcessed):
        approve_club_request(db, people["admin"], request_id=request_id)
    assert count_rows(db, "clubs") == 1


def test_request_listings(db, people):
    first = submit_club_request(db, people["alice"], club_name="Chess", president_name="Alice")
    reject_club_request(db, people["admin"], request_id=first)
    second = submit_club_request(db, people["alice"], club_name="Go", president_name="Alice")
    third = submit_club_request(db, people["bob"], club_name="Bridge", president_name="Bob")

    mine = list_my_club_requests(db, people["alice"])
    assert [r.id for r in mine] == [second, first]
    assert mine[1].status == "rejected"

    pending = list_pending_club_requests(db, people["admin"])
    assert [r.id for r in pending] == [second, third]
    assert pending[1].email == "bob@example.com"
    assert pending[1].requester_last_name == "Baker"


def test_deactivated_club_rejects_new_joins(db, people):
    club = provision_club(db, people["admin"], people["alice"])
    deactivate_club(db, people["admin"], club_id=club.club_id)

    with pytest.raises(NotFound):
        request_join(db, people["bob"], access_code=club.access_code)
    with pytest.raises(NotFound):
        deactivate_club(db, people["admin"], club_id=9999)
    assert check_permission(db, club.club_id, people["alice"].user_id, Permission.VIEW_EVENTS) is False
