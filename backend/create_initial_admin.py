# backend/create_initial_admin.py

import os

from finsuite.database import SessionLocal
from finsuite.apps.bootstrap.services import ensure_defaults


def main() -> None:
    db = SessionLocal()
    try:
        summary = ensure_defaults(
            db,
            admin_email=os.getenv("DEFAULT_ADMIN_EMAIL"),
            admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD"),
        )
        db.commit()

        print(f"[OK] Settings created:   {summary['settings_created']}")
        print(f"[OK] Categories created: {summary['categories_created']}")
        if summary["admin_created"]:
            print(f"[OK] Created super admin: {summary['admin_email']}")
        else:
            print(f"[INFO] Super admin already exists: {summary['admin_email']}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
