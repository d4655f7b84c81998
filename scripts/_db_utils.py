from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.ocl.db import build_engine, make_sessionmaker


def script_db_url(explicit: str | None = None) -> str:
    """Explicit URL, else DATABASE_URL, else the local sqlite default."""
    return (explicit or os.environ.get("DATABASE_URL") or "sqlite:///ocl.db").strip()


@contextmanager
def script_session(db_url: str):
    """One-shot session for CLI scripts: commits on success, disposes the engine on exit."""
    engine = build_engine(db_url)
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
