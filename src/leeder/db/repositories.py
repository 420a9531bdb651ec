from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from leeder.db.models import (
    Application,
    AuthSession,
    AuthUser,
    CompanyProfile,
    FreelancerProfile,
    Mission,
    Profile,
)
from leeder.errors import DUPLICATE_APPLICATION_MESSAGE, ConflictError, StoreError

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION_MARKERS = ("UNIQUE constraint failed", "duplicate key value", "Duplicate entry")


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    text = str(orig if orig is not None else exc)
    return any(marker in text for marker in _UNIQUE_VIOLATION_MARKERS)


class Repository:
    """Store client: every read and write of the marketplace goes through here.

    Writes commit immediately. Failures roll the session back and surface as
    ``StoreError`` (or ``ConflictError`` for uniqueness violations), so callers
    never see a half-applied change.
    """

    def __init__(self, session: Session):
        self.session = session

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Integrity failure during %s: %s", action, exc.orig)
            if is_unique_violation(exc):
                raise ConflictError() from exc
            raise StoreError() from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store failure during %s", action)
            raise StoreError() from exc

    def _scalars(self, statement: Any) -> list[Any]:
        try:
            return list(self.session.scalars(statement).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store read failed")
            raise StoreError() from exc

    def _rows(self, statement: Any) -> list[Any]:
        try:
            return list(self.session.execute(statement).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store read failed")
            raise StoreError() from exc

    def _scalar(self, statement: Any) -> Any:
        try:
            return self.session.scalar(statement)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store read failed")
            raise StoreError() from exc

    def _get(self, model: type, ident: int) -> Any:
        try:
            return self.session.get(model, ident)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store read failed for %s %s", model.__name__, ident)
            raise StoreError() from exc

    def _flush(self, action: str) -> None:
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store failure during %s", action)
            raise StoreError() from exc

    def _execute_all(self, action: str, statements: list[Any]) -> None:
        try:
            for statement in statements:
                self.session.execute(statement)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store failure during %s", action)
            raise StoreError() from exc

    # auth

    def get_auth_user_by_email(self, email: str) -> AuthUser | None:
        return self._scalar(select(AuthUser).where(AuthUser.email == email))

    def get_auth_user(self, user_id: int) -> AuthUser | None:
        return self._get(AuthUser, user_id)

    def register_account(self, *, email: str, password_hash: str, name: str, role: str) -> Profile:
        user = AuthUser(email=email, password_hash=password_hash)
        self.session.add(user)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Un compte existe déjà avec cet email") from exc

        profile = Profile(id=user.id, email=email, name=name, role=role)
        self.session.add(profile)
        # extension rows reference profiles.id, so the profile row goes in first
        self._flush("account registration")
        if role == "freelancer":
            self.session.add(FreelancerProfile(id=user.id, skills=[]))
        elif role == "company":
            self.session.add(
                CompanyProfile(id=user.id, company_name=name, contact_name=name, mission_types=[])
            )

        self._commit("account registration")
        self.session.refresh(profile)
        return profile

    def create_session(self, *, user_id: int, token_id: str, expires_at: datetime) -> AuthSession:
        item = AuthSession(user_id=user_id, token_id=token_id, expires_at=expires_at)
        self.session.add(item)
        self._commit("session creation")
        self.session.refresh(item)
        return item

    def get_session(self, token_id: str) -> AuthSession | None:
        return self._scalar(select(AuthSession).where(AuthSession.token_id == token_id))

    def revoke_session(self, token_id: str) -> bool:
        item = self.get_session(token_id)
        if item is None or item.revoked_at is not None:
            return False
        item.revoked_at = datetime.now(UTC)
        self._commit("session revocation")
        return True

    # profiles

    def get_profile(self, profile_id: int) -> Profile | None:
        return self._get(Profile, profile_id)

    def list_profiles(self) -> list[Profile]:
        return self._scalars(select(Profile).order_by(Profile.created_at.desc(), Profile.id.desc()))

    def get_freelancer_profile(self, profile_id: int) -> FreelancerProfile | None:
        return self._get(FreelancerProfile, profile_id)

    def get_company_profile(self, profile_id: int) -> CompanyProfile | None:
        return self._get(CompanyProfile, profile_id)

    def save_profile_and_extension(
        self,
        profile_id: int,
        *,
        profile_values: dict[str, Any],
        extension_values: dict[str, Any],
    ) -> Profile:
        profile = self._get(Profile, profile_id)
        if profile is None:
            raise StoreError(f"Profil {profile_id} introuvable")

        for key, value in profile_values.items():
            setattr(profile, key, value)

        if profile.role == "freelancer":
            extension = self._get(FreelancerProfile, profile_id)
            if extension is None:
                extension = FreelancerProfile(id=profile_id, skills=[])
                self.session.add(extension)
        elif profile.role == "company":
            extension = self._get(CompanyProfile, profile_id)
            if extension is None:
                extension = CompanyProfile(
                    id=profile_id,
                    company_name=profile.name,
                    contact_name=profile.name,
                    mission_types=[],
                )
                self.session.add(extension)
        else:
            raise StoreError(f"Le rôle {profile.role} n'a pas de profil étendu")

        for key, value in extension_values.items():
            setattr(extension, key, value)

        self._commit("profile update")
        self.session.refresh(profile)
        return profile

    def display_names(self, profile_ids: set[int]) -> dict[int, str]:
        if not profile_ids:
            return {}
        rows = self._rows(
            select(Profile.id, Profile.name, CompanyProfile.company_name)
            .outerjoin(CompanyProfile, CompanyProfile.id == Profile.id)
            .where(Profile.id.in_(profile_ids))
        )
        return {row.id: row.company_name or row.name for row in rows}

    def delete_profile(self, profile_id: int) -> bool:
        profile = self._get(Profile, profile_id)
        if profile is None:
            return False

        owned_missions = select(Mission.id).where(Mission.company_id == profile_id)
        self._execute_all(
            "profile deletion",
            [
                delete(Application).where(Application.mission_id.in_(owned_missions)),
                delete(Mission).where(Mission.company_id == profile_id),
                delete(Application).where(Application.freelancer_id == profile_id),
                update(Mission)
                .where(Mission.assigned_freelancer_id == profile_id)
                .values(assigned_freelancer_id=None),
                delete(FreelancerProfile).where(FreelancerProfile.id == profile_id),
                delete(CompanyProfile).where(CompanyProfile.id == profile_id),
                delete(AuthSession).where(AuthSession.user_id == profile_id),
                delete(Profile).where(Profile.id == profile_id),
                delete(AuthUser).where(AuthUser.id == profile_id),
            ],
        )
        self._commit("profile deletion")
        return True

    # missions

    def create_mission(self, **values: Any) -> Mission:
        mission = Mission(**values)
        self.session.add(mission)
        self._commit("mission creation")
        self.session.refresh(mission)
        return mission

    def get_mission(self, mission_id: int) -> Mission | None:
        return self._get(Mission, mission_id)

    def list_missions(self, *, company_id: int | None = None, status: str | None = None) -> list[Mission]:
        statement = select(Mission)
        if company_id is not None:
            statement = statement.where(Mission.company_id == company_id)
        if status is not None:
            statement = statement.where(Mission.status == status)
        statement = statement.order_by(Mission.created_at.desc(), Mission.id.desc())
        return self._scalars(statement)

    def update_mission(self, mission: Mission, **values: Any) -> Mission:
        for key, value in values.items():
            setattr(mission, key, value)
        self._commit("mission update")
        self.session.refresh(mission)
        return mission

    def delete_mission(self, mission_id: int) -> bool:
        mission = self._get(Mission, mission_id)
        if mission is None:
            return False
        self._execute_all(
            "mission deletion",
            [delete(Application).where(Application.mission_id == mission_id)],
        )
        self.session.delete(mission)
        self._commit("mission deletion")
        return True

    # applications

    def create_application(
        self,
        *,
        mission_id: int,
        freelancer_id: int,
        message: str | None,
        availability: str | None,
        proposed_rate: float | None,
    ) -> Application:
        item = Application(
            mission_id=mission_id,
            freelancer_id=freelancer_id,
            message=message,
            availability=availability,
            proposed_rate=proposed_rate,
            status="pending",
        )
        self.session.add(item)
        try:
            self._commit("application submission")
        except ConflictError as exc:
            raise ConflictError(DUPLICATE_APPLICATION_MESSAGE) from exc
        self.session.refresh(item)
        return item

    def get_application(self, application_id: int) -> Application | None:
        return self._get(Application, application_id)

    def list_company_application_rows(self, company_id: int) -> list[Any]:
        statement = (
            select(Application, Profile, FreelancerProfile, Mission)
            .join(Mission, Mission.id == Application.mission_id)
            .join(Profile, Profile.id == Application.freelancer_id)
            .outerjoin(FreelancerProfile, FreelancerProfile.id == Application.freelancer_id)
            .where(Mission.company_id == company_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return self._rows(statement)

    def list_freelancer_application_rows(self, freelancer_id: int) -> list[Any]:
        statement = (
            select(Application, Mission)
            .join(Mission, Mission.id == Application.mission_id)
            .where(Application.freelancer_id == freelancer_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return self._rows(statement)

    def list_all_application_rows(self) -> list[Any]:
        statement = (
            select(Application, Mission.title, Profile.name)
            .join(Mission, Mission.id == Application.mission_id)
            .join(Profile, Profile.id == Application.freelancer_id)
            .order_by(Application.created_at.desc(), Application.id.desc())
        )
        return self._rows(statement)

    def update_application(self, application: Application, **values: Any) -> Application:
        for key, value in values.items():
            setattr(application, key, value)
        self._commit("application update")
        self.session.refresh(application)
        return application

    def delete_application(self, application_id: int) -> bool:
        item = self._get(Application, application_id)
        if item is None:
            return False
        self.session.delete(item)
        self._commit("application deletion")
        return True
