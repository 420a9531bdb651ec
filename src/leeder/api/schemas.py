from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SignUpRequest(BaseModel):
    email: str
    password: str
    name: str
    role: Literal["freelancer", "company"]


class SignInRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str
    expires_at: datetime


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: str
    photo_url: str | None = None


class CurrentSessionResponse(BaseModel):
    profile: ProfileResponse
    profile_completed: bool


class MissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    company_name: str = ""
    title: str
    description: str
    location: str
    hourly_rate: float
    duration: str | None = None
    skills_required: list[str] = Field(default_factory=list)
    equipment_needed: str | None = None
    payment_delay: int | None = None
    status: str
    assigned_freelancer_id: int | None = None
    created_at: datetime


class StatusUpdateRequest(BaseModel):
    status: str


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mission_id: int
    freelancer_id: int
    message: str | None = None
    availability: str | None = None
    proposed_rate: float | None = None
    status: str
    created_at: datetime


class FreelancerSummary(BaseModel):
    id: int
    name: str
    photo_url: str | None = None
    freelancer_profile: dict[str, Any] = Field(default_factory=dict)


class MissionSummary(BaseModel):
    id: int
    title: str
    hourly_rate: float
    status: str | None = None


class CompanyApplicationResponse(BaseModel):
    id: int
    message: str | None = None
    availability: str | None = None
    proposed_rate: float | None = None
    status: str
    created_at: datetime
    freelancer: FreelancerSummary
    mission: MissionSummary


class FreelancerApplicationResponse(BaseModel):
    id: int
    status: str
    message: str | None = None
    availability: str | None = None
    proposed_rate: float | None = None
    created_at: datetime
    mission: MissionSummary


class WizardResponse(BaseModel):
    role: str
    current_step: int
    total_steps: int
    progress: int
    step_title: str
    values: dict[str, Any]
    missing_fields: list[str]
    profile_completed: bool


class DeletionResponse(BaseModel):
    kind: str
    id: int
    label: str
    deleted: bool
