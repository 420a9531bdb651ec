from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from leeder.config import Settings, get_settings
from leeder.core.auth import AuthService, normalize_email
from leeder.db.repositories import Repository

logger = logging.getLogger(__name__)


def seed_admin(session: Session, settings: Settings | None = None) -> int:
    """Create the configured admin account once; returns how many were inserted."""
    settings = settings or get_settings()
    if not settings.admin_email or not settings.admin_password:
        return 0

    repo = Repository(session)
    if repo.get_auth_user_by_email(normalize_email(settings.admin_email)) is not None:
        return 0

    profile = AuthService(repo, settings).create_admin(
        email=settings.admin_email,
        password=settings.admin_password,
        name=settings.admin_name,
    )
    logger.info("Seeded admin account user_id=%s", profile.id)
    return 1
