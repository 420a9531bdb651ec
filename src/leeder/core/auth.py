from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

from leeder.config import Settings, get_settings
from leeder.db.models import Profile
from leeder.db.repositories import Repository
from leeder.errors import AuthError, ConflictError, StoreError
from leeder.types import Role

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, int], None]


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(slots=True, frozen=True)
class AuthSessionToken:
    access_token: str
    user_id: int
    role: str
    expires_at: datetime


class AuthService:
    def __init__(self, repo: Repository, settings: Settings | None = None):
        self.repo = repo
        self.settings = settings or get_settings()
        self._listeners: list[AuthListener] = []

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, user_id: int) -> None:
        for listener in list(self._listeners):
            listener(event, user_id)

    def sign_up(self, *, email: str, password: str, name: str, role: str | Role) -> AuthSessionToken:
        role = Role.parse(role)
        if role is Role.ADMIN:
            raise AuthError("Les comptes administrateur ne peuvent pas être créés à l'inscription")
        return self._register(email=email, password=password, name=name, role=role)

    def create_admin(self, *, email: str, password: str, name: str) -> Profile:
        token = self._register(email=email, password=password, name=name, role=Role.ADMIN, notify=False)
        profile = self.repo.get_profile(token.user_id)
        if profile is None:
            raise StoreError(f"Profil administrateur {token.user_id} introuvable")
        return profile

    def _register(
        self,
        *,
        email: str,
        password: str,
        name: str,
        role: Role,
        notify: bool = True,
    ) -> AuthSessionToken:
        email = normalize_email(email)
        name = name.strip()
        if not email or "@" not in email:
            raise AuthError("Adresse email invalide")
        if not name:
            raise AuthError("Le nom est obligatoire")
        if len(password) < self.settings.min_password_length:
            raise AuthError(
                f"Le mot de passe doit contenir au moins {self.settings.min_password_length} caractères"
            )

        try:
            profile = self.repo.register_account(
                email=email,
                password_hash=hash_password(password),
                name=name,
                role=role.value,
            )
        except ConflictError as exc:
            raise AuthError("Un compte existe déjà avec cet email") from exc

        logger.info("Registered account user_id=%s role=%s", profile.id, role.value)
        token = self._issue(profile.id, role.value)
        if notify:
            self._notify(SIGNED_IN, profile.id)
        return token

    def sign_in_with_password(self, *, email: str, password: str) -> AuthSessionToken:
        user = self.repo.get_auth_user_by_email(normalize_email(email))
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError("Identifiants de connexion invalides")

        profile = self.repo.get_profile(user.id)
        if profile is None:
            raise AuthError("Aucun profil associé à ce compte")

        token = self._issue(user.id, profile.role)
        self._notify(SIGNED_IN, user.id)
        return token

    def sign_out(self, access_token: str) -> None:
        claims = self._decode(access_token)
        if claims is None:
            return
        if self.repo.revoke_session(claims["jti"]):
            self._notify(SIGNED_OUT, int(claims["sub"]))

    def get_session(self, access_token: str | None) -> AuthSessionToken | None:
        if not access_token:
            return None
        claims = self._decode(access_token)
        if claims is None:
            return None

        record = self.repo.get_session(claims["jti"])
        if record is None or record.revoked_at is not None:
            return None
        expires_at = record.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        if expires_at <= datetime.now(UTC):
            return None

        return AuthSessionToken(
            access_token=access_token,
            user_id=int(claims["sub"]),
            role=str(claims.get("role", "")),
            expires_at=expires_at,
        )

    def get_user(self, access_token: str | None) -> Profile | None:
        session = self.get_session(access_token)
        if session is None:
            return None
        return self.repo.get_profile(session.user_id)

    def _issue(self, user_id: int, role: str) -> AuthSessionToken:
        now = datetime.now(UTC)
        expires_at = now + timedelta(minutes=self.settings.session_ttl_min)
        token_id = uuid.uuid4().hex
        payload = {
            "sub": str(user_id),
            "role": role,
            "jti": token_id,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        access_token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        self.repo.create_session(user_id=user_id, token_id=token_id, expires_at=expires_at)
        return AuthSessionToken(access_token=access_token, user_id=user_id, role=role, expires_at=expires_at)

    def _decode(self, access_token: str) -> dict | None:
        try:
            claims = jwt.decode(
                access_token,
                self.settings.secret_key,
                algorithms=[self.settings.jwt_algorithm],
            )
        except jwt.InvalidTokenError:
            return None
        if "jti" not in claims or "sub" not in claims:
            return None
        return claims
