"""
Release-phase helper: migrate, then seed roles and the admin user.

- Refuses to run without DATABASE_URL, and refuses sqlite when ENV=production.
- Seeding is idempotent and never overwrites an existing password.

Usage:
  python scripts/release.py [--with-sample-tabs]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def run_release(*, with_sample_tabs: bool = False) -> None:
    db_url = _require_env("DATABASE_URL")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print("=== OCL API release start ===", flush=True)
    print(f"ENV={env or '(unset)'}", flush=True)
    print("Running Alembic migrations...", flush=True)

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")
    print("Migrations complete.", flush=True)

    print("Seeding permissions/admin (idempotent)...", flush=True)
    from scripts import init_db

    init_db.seed_only(database_url=db_url)

    if with_sample_tabs:
        from scripts import seed_cold_calling

        n = seed_cold_calling.seed(db_url)
        print(f"Sample cold calling rows inserted: {n}", flush=True)
    print("=== OCL API release done ===", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--with-sample-tabs", action="store_true")
    args = parser.parse_args()
    run_release(with_sample_tabs=args.with_sample_tabs)


if __name__ == "__main__":
    main()
