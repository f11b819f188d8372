"""
Bring the database schema up to date without touching existing data.

Creates missing tables declared in the models, seeds the
monthly_basis.basis_type choice list and, when ADMIN_EMAIL and
ADMIN_PASSWORD are set, creates that admin account if it does not exist.

Run:
  python scripts/ensure_schema.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from sqlalchemy import inspect

print("[ensure] loading application...")

# make sure the project root is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from payouts import create_app  # type: ignore
from payouts.extensions import db  # type: ignore


def _tables() -> set[str]:
    return set(inspect(db.engine).get_table_names())


def _ensure_admin() -> None:
    from payouts.models import User

    email = (os.getenv("ADMIN_EMAIL") or "").strip().lower()
    password = os.getenv("ADMIN_PASSWORD") or ""
    if not email or not password:
        return
    if User.query.filter_by(email=email).first():
        print(f"[ensure] admin {email} already exists")
        return
    u = User(email=email, role="admin", is_active=True)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    print(f"[ensure] created admin {email}")


def main() -> int:
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[ensure] SQLALCHEMY_DATABASE_URI = {uri}")

        before = _tables()
        print(f"[ensure] tables before: {len(before)}")

        # register every model in the metadata
        from payouts import models  # noqa: F401
        from payouts.models.basis import ensure_basis_type_options

        db.create_all()

        created = sorted(_tables() - before)
        if created:
            print(f"[ensure] created tables: {', '.join(created)}")
        else:
            print("[ensure] no new tables needed.")

        added = ensure_basis_type_options()
        if added:
            print(f"[ensure] basis_type options added: {', '.join(added)}")

        _ensure_admin()
        print("[ensure] done.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
