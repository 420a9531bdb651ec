from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from leeder.api.deps import get_access_token, get_current_profile, get_db, require_role
from leeder.api.schemas import (
    ApplicationResponse,
    CompanyApplicationResponse,
    CurrentSessionResponse,
    DeletionResponse,
    FreelancerApplicationResponse,
    MissionResponse,
    ProfileResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    StatusUpdateRequest,
    WizardResponse,
)
from leeder.core.admin import AdminPanel
from leeder.core.applications import ApplicationManager
from leeder.core.auth import AuthService, AuthSessionToken
from leeder.core.missions import MissionManager, MissionScope
from leeder.core.onboarding import (
    TOTAL_STEPS,
    OnboardingService,
    WizardState,
    go_to_step,
    reachable_step,
    validate_step,
    with_values,
)
from leeder.db.models import Mission, Profile
from leeder.db.repositories import Repository
from leeder.types import ApplicationInput, MissionInput, Role, WizardValues

router = APIRouter(prefix="/api", tags=["api"])


def _session_response(token: AuthSessionToken) -> SessionResponse:
    return SessionResponse(
        access_token=token.access_token,
        user_id=token.user_id,
        role=token.role,
        expires_at=token.expires_at,
    )


def _mission_response(mission: Mission, names: dict[int, str]) -> MissionResponse:
    item = MissionResponse.model_validate(mission)
    item.company_name = names.get(mission.company_id, "")
    return item


def _wizard_response(state: WizardState, completed: bool) -> WizardResponse:
    return WizardResponse(
        role=state.role.value,
        current_step=state.current_step,
        total_steps=TOTAL_STEPS,
        progress=state.progress,
        step_title=state.step.title,
        values=dict(state.values),
        missing_fields=validate_step(state),
        profile_completed=completed,
    )


# auth


@router.post("/auth/sign-up", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUpRequest, db: Session = Depends(get_db)) -> SessionResponse:
    token = AuthService(Repository(db)).sign_up(
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
    )
    return _session_response(token)


@router.post("/auth/sign-in", response_model=SessionResponse)
def sign_in(payload: SignInRequest, db: Session = Depends(get_db)) -> SessionResponse:
    token = AuthService(Repository(db)).sign_in_with_password(email=payload.email, password=payload.password)
    return _session_response(token)


@router.post("/auth/sign-out", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(token: str | None = Depends(get_access_token), db: Session = Depends(get_db)) -> Response:
    if token:
        AuthService(Repository(db)).sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/auth/session", response_model=CurrentSessionResponse)
def current_session(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> CurrentSessionResponse:
    completed = OnboardingService(Repository(db)).is_completed(profile.id)
    return CurrentSessionResponse(profile=ProfileResponse.model_validate(profile), profile_completed=completed)


# missions


@router.get("/missions", response_model=list[MissionResponse])
def list_missions(
    scope: Literal["open", "mine", "all"] = Query("open"),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> list[MissionResponse]:
    manager = MissionManager(Repository(db))
    if scope == "mine":
        if profile.role != Role.COMPANY.value:
            raise HTTPException(status_code=403, detail="Réservé aux entreprises")
        missions = manager.list_missions(MissionScope.owned_by(profile.id))
    elif scope == "all":
        if profile.role != Role.ADMIN.value:
            raise HTTPException(status_code=403, detail="Réservé aux administrateurs")
        missions = manager.list_missions(MissionScope.all())
    else:
        missions = manager.list_missions(MissionScope.open())
    names = manager.company_names(missions)
    return [_mission_response(mission, names) for mission in missions]


@router.post("/missions", response_model=MissionResponse, status_code=status.HTTP_201_CREATED)
def create_mission(
    payload: MissionInput,
    profile: Profile = Depends(require_role(Role.COMPANY)),
    db: Session = Depends(get_db),
) -> MissionResponse:
    manager = MissionManager(Repository(db))
    mission = manager.create_mission(profile.id, payload)
    return _mission_response(mission, manager.company_names([mission]))


@router.post("/missions/{mission_id}/status", response_model=MissionResponse)
def update_mission_status(
    mission_id: int,
    payload: StatusUpdateRequest,
    profile: Profile = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    db: Session = Depends(get_db),
) -> MissionResponse:
    manager = MissionManager(Repository(db))
    mission = manager.set_status(mission_id, payload.status, actor=profile)
    return _mission_response(mission, manager.company_names([mission]))


@router.delete("/missions/{mission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mission(
    mission_id: int,
    profile: Profile = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    db: Session = Depends(get_db),
) -> Response:
    MissionManager(Repository(db)).delete_mission(mission_id, actor=profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# applications


@router.post(
    "/missions/{mission_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_application(
    mission_id: int,
    payload: ApplicationInput,
    profile: Profile = Depends(require_role(Role.FREELANCER)),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    application = ApplicationManager(Repository(db)).submit_application(
        mission_id,
        profile.id,
        payload.message,
        availability=payload.availability,
        proposed_rate=payload.proposed_rate,
    )
    return ApplicationResponse.model_validate(application)


@router.get("/applications", response_model=list[CompanyApplicationResponse])
def list_company_applications(
    profile: Profile = Depends(require_role(Role.COMPANY)),
    db: Session = Depends(get_db),
) -> list[CompanyApplicationResponse]:
    rows = ApplicationManager(Repository(db)).list_applications_for_company(profile.id)
    return [CompanyApplicationResponse.model_validate(row) for row in rows]


@router.get("/applications/mine", response_model=list[FreelancerApplicationResponse])
def list_my_applications(
    profile: Profile = Depends(require_role(Role.FREELANCER)),
    db: Session = Depends(get_db),
) -> list[FreelancerApplicationResponse]:
    rows = ApplicationManager(Repository(db)).list_applications_for_freelancer(profile.id)
    return [FreelancerApplicationResponse.model_validate(row) for row in rows]


@router.post("/applications/{application_id}/status", response_model=ApplicationResponse)
def update_application_status(
    application_id: int,
    payload: StatusUpdateRequest,
    profile: Profile = Depends(require_role(Role.COMPANY, Role.ADMIN)),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    application = ApplicationManager(Repository(db)).set_application_status(
        application_id,
        payload.status,
        actor=profile,
    )
    return ApplicationResponse.model_validate(application)


# onboarding


@router.get("/onboarding", response_model=WizardResponse)
def get_onboarding(
    profile: Profile = Depends(require_role(Role.FREELANCER, Role.COMPANY)),
    db: Session = Depends(get_db),
) -> WizardResponse:
    service = OnboardingService(Repository(db))
    return _wizard_response(service.load(profile.id), service.is_completed(profile.id))


@router.put("/onboarding/progress", response_model=WizardResponse)
def save_onboarding_progress(
    payload: WizardValues,
    profile: Profile = Depends(require_role(Role.FREELANCER, Role.COMPANY)),
    db: Session = Depends(get_db),
) -> WizardResponse:
    service = OnboardingService(Repository(db))
    state = reachable_step(with_values(service.load(profile.id), payload.values), payload.current_step)
    service.save_progress(profile.id, state)
    return _wizard_response(state, service.is_completed(profile.id))


@router.post("/onboarding/submit", response_model=WizardResponse)
def submit_onboarding(
    payload: WizardValues,
    profile: Profile = Depends(require_role(Role.FREELANCER, Role.COMPANY)),
    db: Session = Depends(get_db),
) -> WizardResponse:
    service = OnboardingService(Repository(db))
    state = go_to_step(with_values(service.load(profile.id), payload.values), TOTAL_STEPS)
    service.submit(profile.id, state)
    return _wizard_response(state, True)


# admin


@router.get("/admin/overview")
def admin_overview(
    _: Profile = Depends(require_role(Role.ADMIN)),
    db: Session = Depends(get_db),
) -> dict:
    return AdminPanel(Repository(db)).overview()


@router.post("/admin/missions/{mission_id}/status", response_model=MissionResponse)
def admin_mission_status(
    mission_id: int,
    payload: StatusUpdateRequest,
    _: Profile = Depends(require_role(Role.ADMIN)),
    db: Session = Depends(get_db),
) -> MissionResponse:
    panel = AdminPanel(Repository(db))
    mission = panel.set_mission_status(mission_id, payload.status)
    return _mission_response(mission, panel.missions.company_names([mission]))


@router.post("/admin/applications/{application_id}/status", response_model=ApplicationResponse)
def admin_application_status(
    application_id: int,
    payload: StatusUpdateRequest,
    _: Profile = Depends(require_role(Role.ADMIN)),
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    application = AdminPanel(Repository(db)).set_application_status(application_id, payload.status)
    return ApplicationResponse.model_validate(application)


@router.delete("/admin/{kind}/{target_id}", response_model=DeletionResponse)
def admin_delete(
    kind: Literal["mission", "user", "application"],
    target_id: int,
    confirm: bool = Query(False),
    _: Profile = Depends(require_role(Role.ADMIN)),
    db: Session = Depends(get_db),
) -> DeletionResponse:
    panel = AdminPanel(Repository(db))
    request = panel.open_deletion(kind, target_id)
    deleted = panel.confirm_deletion(request, confirm)
    return DeletionResponse(kind=kind, id=target_id, label=request.label, deleted=deleted)
