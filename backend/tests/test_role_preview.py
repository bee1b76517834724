import pytest

from clubportal.core.errors import ValidationError
from clubportal.services.permissions import ALL_PERMISSIONS, Permission, full_permission_map
from clubportal.services.roles import preview_permissions, role_preview


def _nav(preview):
    return [entry.name for entry in preview.navigation]


def test_empty_role_sees_only_ungated_sections():
    preview = role_preview(full_permission_map())
    assert _nav(preview) == ["Dashboard", "Sign-In", "Personal Settings"]
    assert preview.features == []


def test_full_role_sees_everything_in_order():
    preview = role_preview({perm: True for perm in ALL_PERMISSIONS})
    assert _nav(preview) == [
        "Dashboard",
        "Announcements",
        "Events",
        "Members",
        "Sign-In",
        "Attendance",
        "Chat",
        "Personal Settings",
        "Club Settings",
    ]
    assert len(preview.features) == 13
    assert preview.features[0] == "Can create announcements"
    assert preview.features[-1] == "Can edit/delete roles"


def test_view_permissions_drive_navigation_not_features():
    preview = role_preview({Permission.VIEW_EVENTS: True, Permission.ACCESS_CHAT: True})
    assert _nav(preview) == ["Dashboard", "Events", "Sign-In", "Chat", "Personal Settings"]
    assert preview.features == []


def test_mutating_permissions_show_features():
    preview = preview_permissions({"manage_members": True, "assign_roles": True, "view_members": False})
    assert preview.features == ["Can approve/manage members", "Can assign roles to members"]
    assert "Members" not in _nav(preview)


def test_unsaved_preview_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        preview_permissions({"superpowers": True})
