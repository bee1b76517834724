import sqlalchemy as sa

from clubportal.db.session import SessionLocal
from clubportal.services.permissions import ALL_PERMISSIONS


def reconcile(db) -> int:
    """Give every role an explicit (denied) row for keys it is missing."""
    inserted = 0
    for perm in ALL_PERMISSIONS:
        inserted += db.execute(sa.text("""
            INSERT INTO role_permissions (role_id, permission_key, permission_value)
            SELECT r.id, :k, :v
            FROM club_roles r
            WHERE NOT EXISTS (
                SELECT 1
                FROM role_permissions rp
                WHERE rp.role_id = r.id AND rp.permission_key = :k
            )
        """), {"k": perm.value, "v": False}).rowcount
    return inserted


def main():
    db = SessionLocal()
    try:
        inserted = reconcile(db)
        db.commit()
        print(f"ok: role permissions reconciled (inserted={inserted})")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
