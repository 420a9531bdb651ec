from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from leeder.db.models import Mission, Profile
from leeder.db.repositories import Repository
from leeder.errors import AccessDeniedError, NotFoundError, ValidationError
from leeder.types import MissionInput, MissionStatus, Role

logger = logging.getLogger(__name__)

REQUIRED_MISSION_FIELDS = ("title", "description", "location", "hourly_rate")


def parse_skills(raw: str | list[str] | None) -> list[str]:
    """Split a comma separated skills field, keeping order and dropping blanks."""
    if raw is None:
        return []
    items = raw if isinstance(raw, list) else raw.split(",")
    return [item.strip() for item in items if item and item.strip()]


def parse_rate(value: Any, field: str = "hourly_rate") -> float:
    if isinstance(value, bool):
        raise ValidationError("Tarif horaire invalide", missing_fields=[field])
    try:
        rate = float(str(value).strip().replace(",", "."))
    except ValueError as exc:
        raise ValidationError("Tarif horaire invalide", missing_fields=[field]) from exc
    if not math.isfinite(rate) or rate < 0:
        raise ValidationError("Le tarif horaire doit être un nombre positif", missing_fields=[field])
    return rate


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(slots=True, frozen=True)
class MissionScope:
    company_id: int | None = None
    status: MissionStatus | None = None

    @classmethod
    def owned_by(cls, company_id: int) -> MissionScope:
        return cls(company_id=company_id)

    @classmethod
    def open(cls) -> MissionScope:
        return cls(status=MissionStatus.OPEN)

    @classmethod
    def all(cls) -> MissionScope:
        return cls()


class MissionManager:
    def __init__(self, repo: Repository):
        self.repo = repo

    def create_mission(self, company_id: int, fields: MissionInput | dict[str, Any]) -> Mission:
        data = fields if isinstance(fields, MissionInput) else MissionInput.model_validate(fields)

        missing = [name for name in REQUIRED_MISSION_FIELDS if _blank(getattr(data, name))]
        if missing:
            raise ValidationError(missing_fields=missing)
        hourly_rate = parse_rate(data.hourly_rate)
        if data.payment_delay is not None and data.payment_delay < 0:
            raise ValidationError("Délai de paiement invalide", missing_fields=["payment_delay"])

        company = self.repo.get_profile(company_id)
        if company is None:
            raise NotFoundError(f"Entreprise {company_id} introuvable")
        if company.role not in {Role.COMPANY.value, Role.ADMIN.value}:
            raise AccessDeniedError("Seules les entreprises peuvent publier des missions")

        mission = self.repo.create_mission(
            company_id=company_id,
            title=data.title.strip(),
            description=data.description.strip(),
            location=data.location.strip(),
            hourly_rate=hourly_rate,
            duration=_optional_text(data.duration),
            skills_required=parse_skills(data.skills),
            equipment_needed=_optional_text(data.equipment_needed),
            payment_delay=data.payment_delay,
            status=MissionStatus.OPEN.value,
        )
        logger.info("Mission created mission_id=%s company_id=%s", mission.id, company_id)
        return mission

    def get_mission(self, mission_id: int) -> Mission:
        mission = self.repo.get_mission(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission {mission_id} introuvable")
        return mission

    def list_missions(self, scope: MissionScope) -> list[Mission]:
        return self.repo.list_missions(
            company_id=scope.company_id,
            status=scope.status.value if scope.status else None,
        )

    def company_names(self, missions: list[Mission]) -> dict[int, str]:
        return self.repo.display_names({mission.company_id for mission in missions})

    def set_status(
        self,
        mission_id: int,
        new_status: MissionStatus | str,
        *,
        actor: Profile | None = None,
    ) -> Mission:
        # Any status is reachable from any other; only ownership is checked.
        status = MissionStatus.parse(new_status)
        mission = self.get_mission(mission_id)
        self._check_owner(mission, actor)
        updated = self.repo.update_mission(mission, status=status.value)
        logger.info("Mission status mission_id=%s status=%s", mission_id, status.value)
        return updated

    def delete_mission(self, mission_id: int, *, actor: Profile | None = None) -> None:
        mission = self.get_mission(mission_id)
        self._check_owner(mission, actor)
        self.repo.delete_mission(mission_id)
        logger.info("Mission deleted mission_id=%s", mission_id)

    @staticmethod
    def _check_owner(mission: Mission, actor: Profile | None) -> None:
        if actor is None or actor.role == Role.ADMIN.value:
            return
        if actor.role != Role.COMPANY.value or mission.company_id != actor.id:
            raise AccessDeniedError("Cette mission ne vous appartient pas")
