import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubportal.api.deps import get_caller, get_current_user
from clubportal.core.config import settings
from clubportal.core.security import PASSWORD_MAX_BYTES, create_access_token, hash_password, verify_password
from clubportal.db.session import get_db
from clubportal.models.user import User
from clubportal.schemas.auth import LoginIn, MeOut, RegisterIn, TokenOut, looks_like_email
from clubportal.schemas.common import ResultOut
from clubportal.services.audit import audit
from clubportal.services.identity import Caller
from clubportal.services.membership import list_my_clubs

router = APIRouter()


def _normalize_email(email: str | None) -> str:
    raw = (email or "").strip().lower()
    if not raw or not looks_like_email(raw):
        raise HTTPException(400, "Invalid email address")
    return raw


@router.post("/register", response_model=ResultOut)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    if len(payload.password) < settings.PASSWORD_MIN_LENGTH:
        raise HTTPException(400, f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
    if len(payload.password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise HTTPException(400, f"Password must be at most {PASSWORD_MAX_BYTES} bytes")

    existing = db.execute(sa.text("SELECT id FROM users WHERE email=:e"), {"e": email}).first()
    if existing:
        raise HTTPException(409, "Email already registered")

    try:
        user_id = db.execute(sa.text("""
            INSERT INTO users (email, password_hash, first_name, last_name, is_superuser, is_active, last_login_at)
            VALUES (:e, :h, :fn, :ln, :superuser, :active, CURRENT_TIMESTAMP)
            RETURNING id
        """), {
            "e": email,
            "h": hash_password(payload.password),
            "fn": payload.first_name.strip(),
            "ln": payload.last_name.strip(),
            "superuser": False,
            "active": True,
        }).scalar_one()
        audit(db, user_id, "user", user_id, "registered", {})
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "Email already registered")

    token = create_access_token(str(user_id))
    return ResultOut(data=TokenOut(access_token=token), message="Registration successful")


@router.post("/login", response_model=ResultOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = (payload.email or "").strip().lower()
    row = db.execute(sa.text("""
        SELECT id, password_hash, is_active
        FROM users
        WHERE email=:e
    """), {"e": email}).mappings().first()
    if not row or not verify_password(payload.password, row["password_hash"]):
        raise HTTPException(401, "Invalid email or password")
    if not row["is_active"]:
        raise HTTPException(403, "Account is deactivated")

    db.execute(sa.text("UPDATE users SET last_login_at=CURRENT_TIMESTAMP WHERE id=:u"), {"u": row["id"]})
    db.commit()
    token = create_access_token(str(row["id"]))
    return ResultOut(data=TokenOut(access_token=token), message="Login successful")


@router.get("/me", response_model=ResultOut)
def me(current: User = Depends(get_current_user)):
    return ResultOut(data=MeOut(
        id=current.id,
        email=current.email,
        first_name=current.first_name,
        last_name=current.last_name,
        is_superuser=bool(current.is_superuser),
    ))


@router.get("/my-clubs", response_model=ResultOut)
def my_clubs(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_my_clubs(db, caller))
