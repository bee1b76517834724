from __future__ import annotations

from dataclasses import dataclass

from clubportal.core.errors import PermissionDenied


@dataclass(frozen=True)
class Caller:
    """Identity of whoever triggered the current request."""

    user_id: int
    is_superuser: bool = False


def require_superuser(caller: Caller) -> None:
    if not caller.is_superuser:
        raise PermissionDenied("Access denied - superuser only")
