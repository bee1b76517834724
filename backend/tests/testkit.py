from __future__ import annotations

import json
from dataclasses import dataclass
from urllib import error, request

import sqlalchemy as sa

from clubportal.services.club_requests import approve_club_request, submit_club_request
from clubportal.services.identity import Caller
from clubportal.services.membership import approve_join_request, request_join


class ApiError(RuntimeError):
    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"HTTP {status_code}: {payload}")


class ApiClient:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def call(self, method: str, path: str, *, token: str | None = None, body=None, timeout: int = 20):
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        payload = None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if body is not None:
            headers["Content-Type"] = "application/json"
            payload = json.dumps(body).encode("utf-8")

        req = request.Request(url=url, data=payload, headers=headers, method=method.upper())
        try:
            with request.urlopen(req, timeout=timeout) as resp:
                raw = resp.read().decode("utf-8")
                return _parse_payload(raw)
        except error.HTTPError as exc:
            raw = exc.read().decode("utf-8")
            raise ApiError(exc.code, _parse_payload(raw)) from exc


@dataclass
class IdentityFactory:
    seed: str
    counter: int = 0

    def next_email(self, prefix: str = "user") -> str:
        self.counter += 1
        return f"{prefix}_{self.seed}_{self.counter}@example.com"


def _parse_payload(raw: str):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def register_user(api: ApiClient, email: str, password: str = "Sup3r-Secret!") -> str:
    out = api.call(
        "POST",
        "/auth/register",
        body={"email": email, "password": password, "first_name": "Test", "last_name": email.split("@")[0]},
    )
    token = (out.get("data") or {}).get("access_token") if isinstance(out, dict) else None
    if not token:
        raise AssertionError("No access_token received.")
    return token


# In-process helpers (SQLite-backed service tests)

def make_user(db, email: str, *, superuser: bool = False, last_name: str = "User") -> Caller:
    user_id = db.execute(sa.text("""
        INSERT INTO users (email, password_hash, first_name, last_name, is_superuser, is_active)
        VALUES (:e, 'not-a-real-hash', 'Test', :ln, :su, :active)
        RETURNING id
    """), {"e": email, "ln": last_name, "su": superuser, "active": True}).scalar_one()
    db.commit()
    return Caller(user_id=user_id, is_superuser=superuser)


def provision_club(db, admin: Caller, requester: Caller, club_name: str = "Chess Masters Club"):
    request_id = submit_club_request(db, requester, club_name=club_name, president_name="Pres")
    return approve_club_request(db, admin, request_id=request_id)


def role_id(db, club_id: int, role_name: str) -> int:
    return db.execute(
        sa.text("SELECT id FROM club_roles WHERE club_id=:c AND role_name=:n"),
        {"c": club_id, "n": role_name},
    ).scalar_one()


def add_member(db, approver: Caller, user: Caller, access_code: str, role_name: str = "Member") -> int:
    created = request_join(db, user, access_code=access_code)
    rid = role_id(db, created.club_id, role_name)
    approve_join_request(db, approver, request_id=created.request_id, role_id=rid)
    return created.request_id


def count_rows(db, table: str, where: str = "1=1", params: dict | None = None) -> int:
    return int(db.execute(sa.text(f"SELECT count(*) FROM {table} WHERE {where}"), params or {}).scalar_one())
