import pytest
import sqlalchemy as sa

from clubportal.core.errors import NotFound, PermissionDenied, SystemInvariantProtected
from clubportal.services.admin import club_summary, list_clubs, list_users, set_user_active
from clubportal.services.club_requests import deactivate_club
from tests.testkit import add_member, make_user, provision_club


@pytest.fixture()
def people(db):
    return {
        "admin": make_user(db, "admin@example.com", superuser=True),
        "alice": make_user(db, "alice@example.com", last_name="Alvarez"),
        "bob": make_user(db, "bob@example.com", last_name="Baker"),
    }


def test_club_overview(db, people):
    chess = provision_club(db, people["admin"], people["alice"], "Chess Masters Club")
    robotics = provision_club(db, people["admin"], people["bob"], "Robotics")
    add_member(db, people["alice"], people["bob"], chess.access_code)
    deactivate_club(db, people["admin"], club_id=robotics.club_id)

    clubs = list_clubs(db, people["admin"])
    assert [c.id for c in clubs] == [robotics.club_id, chess.club_id]
    assert clubs[0].is_active is False

    summary = club_summary(db, people["admin"], chess.club_id)
    assert summary.name == "Chess Masters Club"
    assert summary.access_code == chess.access_code
    assert summary.president_last_name == "Alvarez"
    assert summary.member_count == 2

    with pytest.raises(NotFound):
        club_summary(db, people["admin"], 9999)


def test_user_overview_leaves_out_superusers(db, people):
    chess = provision_club(db, people["admin"], people["alice"])
    add_member(db, people["alice"], people["bob"], chess.access_code)

    users = list_users(db, people["admin"])
    assert sorted(u.email for u in users) == ["alice@example.com", "bob@example.com"]
    assert {u.email: u.club_count for u in users} == {"alice@example.com": 1, "bob@example.com": 1}


def test_admin_reads_are_superuser_only(db, people):
    chess = provision_club(db, people["admin"], people["alice"])
    with pytest.raises(PermissionDenied):
        list_clubs(db, people["alice"])
    with pytest.raises(PermissionDenied):
        list_users(db, people["alice"])
    with pytest.raises(PermissionDenied):
        club_summary(db, people["alice"], chess.club_id)
    with pytest.raises(PermissionDenied):
        set_user_active(db, people["alice"], user_id=people["bob"].user_id, active=False)


def test_deactivate_and_reactivate_user(db, people):
    set_user_active(db, people["admin"], user_id=people["bob"].user_id, active=False)
    active = db.execute(sa.text("SELECT is_active FROM users WHERE id=:u"), {"u": people["bob"].user_id}).scalar_one()
    assert not active

    set_user_active(db, people["admin"], user_id=people["bob"].user_id, active=True)
    active = db.execute(sa.text("SELECT is_active FROM users WHERE id=:u"), {"u": people["bob"].user_id}).scalar_one()
    assert active


def test_superusers_cannot_be_deactivated(db, people):
    other_admin = make_user(db, "root@example.com", superuser=True)
    with pytest.raises(SystemInvariantProtected):
        set_user_active(db, people["admin"], user_id=other_admin.user_id, active=False)
    with pytest.raises(NotFound):
        set_user_active(db, people["admin"], user_id=9999, active=False)
