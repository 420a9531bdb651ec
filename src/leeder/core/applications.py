from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from leeder.core.missions import parse_rate
from leeder.db.models import Application, Profile
from leeder.db.repositories import Repository
from leeder.errors import (
    AccessDeniedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from leeder.types import ApplicationStatus, MissionStatus, Role

logger = logging.getLogger(__name__)

AcceptanceHook = Callable[[Application], None]

# Company flow only; admins write any status.
APPLICATION_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED},
    ApplicationStatus.ACCEPTED: set(),
    ApplicationStatus.REJECTED: set(),
}


def log_contract_notice(application: Application) -> None:
    logger.info(
        "Application accepted application_id=%s mission_id=%s; contract generation requested",
        application.id,
        application.mission_id,
    )


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return current == target or target in APPLICATION_TRANSITIONS[current]


class ApplicationManager:
    def __init__(self, repo: Repository, on_accepted: AcceptanceHook | None = None):
        self.repo = repo
        self.on_accepted = on_accepted or log_contract_notice

    def submit_application(
        self,
        mission_id: int,
        freelancer_id: int,
        message: str | None = None,
        *,
        availability: str | None = None,
        proposed_rate: float | str | None = None,
    ) -> Application:
        rate = None
        if proposed_rate is not None and str(proposed_rate).strip():
            rate = parse_rate(proposed_rate, field="proposed_rate")

        mission = self.repo.get_mission(mission_id)
        if mission is None:
            raise NotFoundError(f"Mission {mission_id} introuvable")
        if mission.status != MissionStatus.OPEN.value:
            raise ValidationError("Cette mission n'accepte plus de candidatures")

        freelancer = self.repo.get_profile(freelancer_id)
        if freelancer is None:
            raise NotFoundError(f"Profil {freelancer_id} introuvable")
        if freelancer.role != Role.FREELANCER.value:
            raise AccessDeniedError("Seuls les freelances peuvent postuler")

        application = self.repo.create_application(
            mission_id=mission_id,
            freelancer_id=freelancer_id,
            message=(message or "").strip() or None,
            availability=(availability or "").strip() or None,
            proposed_rate=rate,
        )
        logger.info(
            "Application submitted application_id=%s mission_id=%s freelancer_id=%s",
            application.id,
            mission_id,
            freelancer_id,
        )
        return application

    def get_application(self, application_id: int) -> Application:
        application = self.repo.get_application(application_id)
        if application is None:
            raise NotFoundError(f"Candidature {application_id} introuvable")
        return application

    def list_applications_for_company(self, company_id: int) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for application, freelancer, extension, mission in self.repo.list_company_application_rows(company_id):
            items.append(
                {
                    "id": application.id,
                    "message": application.message,
                    "availability": application.availability,
                    "proposed_rate": application.proposed_rate,
                    "status": application.status,
                    "created_at": application.created_at,
                    "freelancer": {
                        "id": freelancer.id,
                        "name": freelancer.name,
                        "photo_url": freelancer.photo_url,
                        "freelancer_profile": _extension_summary(extension),
                    },
                    "mission": {
                        "id": mission.id,
                        "title": mission.title,
                        "hourly_rate": mission.hourly_rate,
                    },
                }
            )
        return items

    def list_applications_for_freelancer(self, freelancer_id: int) -> list[dict[str, Any]]:
        return [
            {
                "id": application.id,
                "status": application.status,
                "message": application.message,
                "availability": application.availability,
                "proposed_rate": application.proposed_rate,
                "created_at": application.created_at,
                "mission": {
                    "id": mission.id,
                    "title": mission.title,
                    "hourly_rate": mission.hourly_rate,
                    "status": mission.status,
                },
            }
            for application, mission in self.repo.list_freelancer_application_rows(freelancer_id)
        ]

    def set_application_status(
        self,
        application_id: int,
        new_status: ApplicationStatus | str,
        *,
        actor: Profile | None = None,
    ) -> Application:
        target = ApplicationStatus.parse(new_status)
        application = self.get_application(application_id)
        current = ApplicationStatus.parse(application.status)

        forced = actor is None or actor.role == Role.ADMIN.value
        if not forced:
            mission = self.repo.get_mission(application.mission_id)
            if actor.role != Role.COMPANY.value or mission is None or mission.company_id != actor.id:
                raise AccessDeniedError("Cette candidature ne concerne pas vos missions")
            if not can_transition(current, target):
                raise InvalidTransitionError("candidature", current.value, target.value)

        if current == target:
            return application

        updated = self.repo.update_application(application, status=target.value)
        logger.info("Application status application_id=%s %s -> %s", application_id, current.value, target.value)
        if target is ApplicationStatus.ACCEPTED:
            self.on_accepted(updated)
        return updated

    def delete_application(self, application_id: int) -> None:
        if not self.repo.delete_application(application_id):
            raise NotFoundError(f"Candidature {application_id} introuvable")
        logger.info("Application deleted application_id=%s", application_id)


def _extension_summary(extension: Any) -> dict[str, Any]:
    if extension is None:
        return {}
    return {
        "skills": list(extension.skills or []),
        "rating_average": extension.rating_average,
        "location": extension.location,
        "distance_limit": extension.distance_limit,
        "hourly_rate": extension.hourly_rate,
        "experience": extension.experience,
    }
