from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt

from clubportal.core.config import settings

ALGO = "HS256"

# bcrypt only hashes the first 72 bytes and newer releases refuse longer input.
PASSWORD_MAX_BYTES = 72

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def create_access_token(sub: str) -> str:
    exp = now_utc() + timedelta(minutes=settings.JWT_ACCESS_MINUTES)
    payload = {"sub": sub, "type": "access", "exp": exp}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGO)

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGO])

def hash_password(password: str) -> str:
    raw = password.encode("utf-8")
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode("utf-8")

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
