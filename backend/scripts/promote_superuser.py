import sys

import sqlalchemy as sa

from clubportal.db.session import SessionLocal
from clubportal.services.audit import audit


def promote(db, email: str) -> int | None:
    user_id = db.execute(sa.text("""
        UPDATE users
        SET is_superuser=:on
        WHERE email=:e
        RETURNING id
    """), {"on": True, "e": email.strip().lower()}).scalar_one_or_none()
    if user_id is not None:
        audit(db, None, "user", user_id, "promoted_superuser", {})
    return user_id


def main():
    if len(sys.argv) != 2:
        print("usage: python -m scripts.promote_superuser EMAIL")
        raise SystemExit(2)

    db = SessionLocal()
    try:
        user_id = promote(db, sys.argv[1])
        if user_id is None:
            db.rollback()
            print(f"error: no user with email {sys.argv[1]}")
            raise SystemExit(1)
        db.commit()
        print(f"ok: user {user_id} is now a superuser")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
