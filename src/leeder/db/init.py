from __future__ import annotations

from pathlib import Path

from leeder.config import get_settings
from leeder.db.base import Base
from leeder.db.session import SessionLocal, engine
from leeder.db import models  # noqa: F401
from leeder.db.seed import seed_admin


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        inserted = seed_admin(session)
    return {"seeded_admins": inserted}
