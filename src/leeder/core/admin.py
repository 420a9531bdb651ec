from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from leeder.core.applications import ApplicationManager
from leeder.core.missions import MissionManager, MissionScope
from leeder.db.repositories import Repository
from leeder.errors import NotFoundError, ValidationError
from leeder.types import ApplicationStatus, MissionStatus

logger = logging.getLogger(__name__)

DELETION_KINDS = ("mission", "user", "application")
IRREVERSIBLE_WARNING = "Cette action est irréversible."


@dataclass(slots=True, frozen=True)
class DeletionRequest:
    kind: str
    target_id: int
    label: str
    warning: str = IRREVERSIBLE_WARNING


class AdminPanel:
    """Unrestricted view and override of every mission, profile and application."""

    def __init__(self, repo: Repository):
        self.repo = repo
        self.missions = MissionManager(repo)
        self.applications = ApplicationManager(repo)

    def overview(self) -> dict[str, list[dict[str, Any]]]:
        missions = self.missions.list_missions(MissionScope.all())
        company_names = self.missions.company_names(missions)
        return {
            "missions": [
                {
                    "id": mission.id,
                    "title": mission.title,
                    "location": mission.location,
                    "hourly_rate": mission.hourly_rate,
                    "status": mission.status,
                    "company_id": mission.company_id,
                    "company_name": company_names.get(mission.company_id, ""),
                    "created_at": mission.created_at,
                }
                for mission in missions
            ],
            "profiles": [
                {
                    "id": profile.id,
                    "name": profile.name,
                    "email": profile.email,
                    "role": profile.role,
                    "created_at": profile.created_at,
                }
                for profile in self.repo.list_profiles()
            ],
            "applications": [
                {
                    "id": application.id,
                    "status": application.status,
                    "mission_id": application.mission_id,
                    "mission_title": mission_title,
                    "freelancer_id": application.freelancer_id,
                    "freelancer_name": freelancer_name,
                    "created_at": application.created_at,
                }
                for application, mission_title, freelancer_name in self.repo.list_all_application_rows()
            ],
        }

    def set_mission_status(self, mission_id: int, new_status: MissionStatus | str):
        return self.missions.set_status(mission_id, new_status)

    def set_application_status(self, application_id: int, new_status: ApplicationStatus | str):
        return self.applications.set_application_status(application_id, new_status)

    def open_deletion(self, kind: str, target_id: int) -> DeletionRequest:
        if kind not in DELETION_KINDS:
            raise ValidationError(f"Type d'élément inconnu : {kind}")
        return DeletionRequest(kind=kind, target_id=target_id, label=self._label(kind, target_id))

    def confirm_deletion(self, request: DeletionRequest, confirmed: bool) -> bool:
        if not confirmed:
            logger.info("Deletion cancelled kind=%s id=%s", request.kind, request.target_id)
            return False

        if request.kind == "mission":
            deleted = self.repo.delete_mission(request.target_id)
        elif request.kind == "user":
            deleted = self.repo.delete_profile(request.target_id)
        else:
            deleted = self.repo.delete_application(request.target_id)

        logger.info("Admin deletion kind=%s id=%s deleted=%s", request.kind, request.target_id, deleted)
        return deleted

    def _label(self, kind: str, target_id: int) -> str:
        if kind == "mission":
            mission = self.repo.get_mission(target_id)
            if mission is None:
                raise NotFoundError(f"Mission {target_id} introuvable")
            return f"la mission « {mission.title} »"
        if kind == "user":
            profile = self.repo.get_profile(target_id)
            if profile is None:
                raise NotFoundError(f"Profil {target_id} introuvable")
            return f"l'utilisateur « {profile.name} » ({profile.email})"
        application = self.repo.get_application(target_id)
        if application is None:
            raise NotFoundError(f"Candidature {target_id} introuvable")
        mission = self.repo.get_mission(application.mission_id)
        title = mission.title if mission else str(application.mission_id)
        return f"la candidature n°{application.id} pour « {title} »"
