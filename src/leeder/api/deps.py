from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from leeder.config import get_settings
from leeder.core.auth import AuthService
from leeder.db.models import Profile
from leeder.db.repositories import Repository
from leeder.db.session import get_db_session
from leeder.types import Role

http_bearer = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_access_token(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str | None:
    if creds is not None:
        return creds.credentials
    return request.cookies.get(get_settings().session_cookie_name)


def get_optional_profile(
    token: str | None = Depends(get_access_token),
    db: Session = Depends(get_db),
) -> Profile | None:
    return AuthService(Repository(db)).get_user(token)


def get_current_profile(profile: Profile | None = Depends(get_optional_profile)) -> Profile:
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentification requise",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return profile


def require_role(*roles: Role):
    allowed = {role.value for role in roles}

    def _dep(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Accès refusé")
        return profile

    return _dep
