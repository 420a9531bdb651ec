from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from leeder.errors import ValidationError


class _ClosedEnum(str, Enum):
    @classmethod
    def parse(cls, value: Any) -> Any:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError as exc:
            allowed = ", ".join(member.value for member in cls)
            raise ValidationError(f"Valeur invalide '{value}' (attendu : {allowed})") from exc


class Role(_ClosedEnum):
    FREELANCER = "freelancer"
    COMPANY = "company"
    ADMIN = "admin"


class MissionStatus(_ClosedEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApplicationStatus(_ClosedEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


MISSION_STATUS_LABELS: dict[MissionStatus, str] = {
    MissionStatus.OPEN: "Ouverte",
    MissionStatus.IN_PROGRESS: "En cours",
    MissionStatus.COMPLETED: "Terminée",
    MissionStatus.CANCELLED: "Annulée",
}

APPLICATION_STATUS_LABELS: dict[ApplicationStatus, str] = {
    ApplicationStatus.PENDING: "Nouvelle",
    ApplicationStatus.ACCEPTED: "Acceptée",
    ApplicationStatus.REJECTED: "Refusée",
}


class MissionInput(BaseModel):
    """Raw mission form as typed by a company; checked by ``MissionManager``."""

    title: str = ""
    description: str = ""
    location: str = ""
    hourly_rate: str | float | int = ""
    duration: str = ""
    skills: str | list[str] = ""
    equipment_needed: str = ""
    payment_delay: int | None = None


class ApplicationInput(BaseModel):
    message: str = ""
    availability: str = ""
    proposed_rate: float | None = None

    @field_validator("proposed_rate")
    @classmethod
    def validate_rate(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("proposed_rate must be a non-negative number")
        return value


class WizardValues(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)
    current_step: int = 1
