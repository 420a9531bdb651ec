from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from leeder.api.deps import get_db
from leeder.config import get_settings
from leeder.core.admin import DELETION_KINDS, AdminPanel
from leeder.core.applications import ApplicationManager
from leeder.core.auth import AuthService, AuthSessionToken
from leeder.core.dashboard import resolve_dashboard
from leeder.core.missions import MissionManager, MissionScope
from leeder.core.onboarding import (
    BOOL_FIELDS,
    LIST_FIELDS,
    TOTAL_STEPS,
    OnboardingService,
    go_to_step,
    next_step,
    previous_step,
    reachable_step,
    with_values,
)
from leeder.db.models import Profile
from leeder.db.repositories import Repository
from leeder.errors import LeederError, ValidationError
from leeder.types import (
    APPLICATION_STATUS_LABELS,
    MISSION_STATUS_LABELS,
    ApplicationStatus,
    MissionStatus,
    Role,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])
templates = Jinja2Templates(
    directory=str(Path(__file__).resolve().parents[1] / "web" / "templates")
)

APPLICATION_NOTICES = {
    ApplicationStatus.PENDING: "Candidature remise en attente",
    ApplicationStatus.ACCEPTED: "Candidature acceptée. Génération du contrat en cours...",
    ApplicationStatus.REJECTED: "Candidature refusée",
}

FIELD_LABELS = {
    "name": "Nom complet",
    "birth_date": "Date de naissance",
    "nationality": "Nationalité",
    "photo_url": "Photo (URL)",
    "address": "Adresse",
    "email": "Email",
    "phone": "Téléphone",
    "skills": "Compétences",
    "experience": "Expérience",
    "hourly_rate": "Tarif horaire souhaité (€)",
    "location": "Localisation",
    "max_travel_time": "Temps de trajet maximum (minutes)",
    "distance_limit": "Distance maximum (km)",
    "is_available": "Disponible",
    "company_name": "Nom de l'entreprise",
    "siret": "SIRET",
    "activity": "Activité",
    "kbis_document_url": "Extrait Kbis (URL)",
    "contact_name": "Nom du contact",
    "sector": "Secteur",
    "mission_types": "Types de missions",
    "special_requirements": "Exigences particulières",
}


def _mission_label(value: str) -> str:
    return MISSION_STATUS_LABELS[MissionStatus.parse(value)]


def _application_label(value: str) -> str:
    return APPLICATION_STATUS_LABELS[ApplicationStatus.parse(value)]


templates.env.filters["mission_status"] = _mission_label
templates.env.filters["application_status"] = _application_label


def _redirect(url: str, notice: str | None = None, level: str = "success") -> RedirectResponse:
    if notice:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}{urlencode({'notice': notice, 'level': level})}"
    return RedirectResponse(url=url, status_code=303)


def _failure(url: str, exc: LeederError) -> RedirectResponse:
    logger.warning("Web action failed redirect=%s: %s", url, exc.message)
    return _redirect(url, exc.message, level="error")


def _render(
    request: Request,
    template: str,
    context: dict,
    status_code: int = 200,
) -> HTMLResponse:
    context.setdefault("notice", request.query_params.get("notice"))
    context.setdefault("level", request.query_params.get("level", "success"))
    return templates.TemplateResponse(request, template, context, status_code=status_code)


def _current_profile(request: Request, db: Session) -> Profile | None:
    token = request.cookies.get(get_settings().session_cookie_name)
    return AuthService(Repository(db)).get_user(token)


def _with_session_cookie(response: Response, token: AuthSessionToken) -> Response:
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        token.access_token,
        max_age=settings.session_ttl_min * 60,
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
    )
    return response


def _sign_in_required() -> RedirectResponse:
    return _redirect("/auth", "Veuillez vous connecter", level="error")


def _forbidden() -> RedirectResponse:
    return _redirect("/dashboard", "Accès refusé", level="error")


# landing and auth


@router.get("/", response_class=HTMLResponse)
def landing(request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    return _render(request, "landing.html", {"profile": _current_profile(request, db)})


@router.get("/auth", response_class=HTMLResponse)
def auth_page(request: Request, role: str = "") -> HTMLResponse:
    selected = role if role in {Role.FREELANCER.value, Role.COMPANY.value} else ""
    return _render(request, "auth.html", {"role": selected or Role.FREELANCER.value, "sign_up": bool(selected)})


@router.post("/auth/sign-in")
def web_sign_in(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        token = AuthService(Repository(db)).sign_in_with_password(email=email, password=password)
    except LeederError as exc:
        return _failure("/auth", exc)
    return _with_session_cookie(_redirect("/dashboard", "Connexion réussie"), token)


@router.post("/auth/sign-up")
def web_sign_up(
    email: str = Form(...),
    password: str = Form(...),
    name: str = Form(...),
    role: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        token = AuthService(Repository(db)).sign_up(email=email, password=password, name=name, role=role)
    except LeederError as exc:
        return _failure(f"/auth?role={role}", exc)
    return _with_session_cookie(_redirect("/dashboard", "Compte créé avec succès"), token)


@router.post("/auth/sign-out")
def web_sign_out(request: Request, db: Session = Depends(get_db)):
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        AuthService(Repository(db)).sign_out(token)
    response = _redirect("/")
    response.delete_cookie(settings.session_cookie_name)
    return response


# dashboards


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, view: str = "", db: Session = Depends(get_db)):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()

    repo = Repository(db)
    completed = OnboardingService(repo).is_completed(profile.id)
    try:
        decision = resolve_dashboard(profile, completed, view or None)
    except LeederError as exc:
        return _failure("/dashboard", exc)
    if decision.needs_onboarding:
        return _redirect(decision.redirect_to)

    context: dict = {"profile": profile, "view": decision.view.value, "is_admin": profile.role == Role.ADMIN.value}
    missions = MissionManager(repo)
    applications = ApplicationManager(repo)

    if decision.view is Role.FREELANCER:
        open_missions = missions.list_missions(MissionScope.open())
        mine = applications.list_applications_for_freelancer(profile.id)
        context.update(
            {
                "missions": open_missions,
                "company_names": missions.company_names(open_missions),
                "applications": mine,
                "applied_mission_ids": {item["mission"]["id"] for item in mine},
            }
        )
        return _render(request, "dashboard_freelancer.html", context)

    if decision.view is Role.COMPANY:
        context.update(
            {
                "missions": missions.list_missions(MissionScope.owned_by(profile.id)),
                "applications": applications.list_applications_for_company(profile.id),
                "mission_statuses": list(MissionStatus),
            }
        )
        return _render(request, "dashboard_company.html", context)

    context.update(
        {
            "overview": AdminPanel(repo).overview(),
            "mission_statuses": list(MissionStatus),
            "application_statuses": list(ApplicationStatus),
        }
    )
    return _render(request, "dashboard_admin.html", context)


# onboarding


@router.get("/onboarding/{role}", response_class=HTMLResponse)
def onboarding_page(request: Request, role: str, step: int = 1, db: Session = Depends(get_db)):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()
    if role not in {Role.FREELANCER.value, Role.COMPANY.value}:
        return _render(request, "not_found.html", {"message": "Page introuvable"}, status_code=404)
    if profile.role != role:
        return _forbidden()

    state = OnboardingService(Repository(db)).load(profile.id)
    state = reachable_step(state, step)
    return _render(
        request,
        "onboarding.html",
        {"profile": profile, "state": state, "total_steps": TOTAL_STEPS, "labels": FIELD_LABELS},
    )


@router.post("/onboarding/{role}")
async def onboarding_submit(request: Request, role: str, db: Session = Depends(get_db)):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()
    if profile.role != role:
        return _forbidden()

    form = await request.form()
    action = str(form.get("action", "next"))
    try:
        current = int(str(form.get("current_step", "1")))
    except ValueError:
        current = 1
    current = min(max(current, 1), TOTAL_STEPS)
    page = f"/onboarding/{role}"

    service = OnboardingService(Repository(db))
    try:
        state = go_to_step(service.load(profile.id), current)
        updates: dict = {}
        for name in state.step.fields:
            if name in LIST_FIELDS:
                updates[name] = form.getlist(name)
            elif name in BOOL_FIELDS:
                updates[name] = name in form
            elif name in form:
                updates[name] = str(form.get(name, ""))
        state = reachable_step(with_values(state, updates), current)
        current = state.current_step
        service.save_progress(profile.id, state)

        if action == "previous":
            return _redirect(f"{page}?step={previous_step(state).current_step}")
        if action == "submit":
            service.submit(profile.id, state)
            return _redirect("/dashboard", "Profil complété avec succès")
        return _redirect(f"{page}?step={next_step(state).current_step}")
    except LeederError as exc:
        return _failure(f"{page}?step={current}", exc)


# missions and applications


@router.post("/missions")
def web_create_mission(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    location: str = Form(""),
    hourly_rate: str = Form(""),
    duration: str = Form(""),
    skills: str = Form(""),
    equipment_needed: str = Form(""),
    payment_delay: str = Form(""),
    db: Session = Depends(get_db),
):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()

    try:
        delay = int(payment_delay) if payment_delay.strip() else None
    except ValueError:
        return _failure("/dashboard", ValidationError("Délai de paiement invalide"))

    try:
        MissionManager(Repository(db)).create_mission(
            profile.id,
            {
                "title": title,
                "description": description,
                "location": location,
                "hourly_rate": hourly_rate,
                "duration": duration,
                "skills": skills,
                "equipment_needed": equipment_needed,
                "payment_delay": delay,
            },
        )
    except LeederError as exc:
        return _failure("/dashboard", exc)
    return _redirect("/dashboard", "Mission publiée avec succès")


@router.post("/missions/{mission_id}/status")
def web_mission_status(
    request: Request,
    mission_id: int,
    status: str = Form(...),
    db: Session = Depends(get_db),
):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()
    try:
        MissionManager(Repository(db)).set_status(mission_id, status, actor=profile)
    except LeederError as exc:
        return _failure("/dashboard", exc)
    return _redirect("/dashboard", "Statut de la mission mis à jour")


@router.post("/missions/{mission_id}/apply")
def web_apply(
    request: Request,
    mission_id: int,
    message: str = Form(""),
    availability: str = Form(""),
    proposed_rate: str = Form(""),
    db: Session = Depends(get_db),
):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()
    try:
        ApplicationManager(Repository(db)).submit_application(
            mission_id,
            profile.id,
            message,
            availability=availability,
            proposed_rate=proposed_rate,
        )
    except LeederError as exc:
        return _failure("/dashboard", exc)
    return _redirect("/dashboard", "Candidature envoyée avec succès")


@router.post("/applications/{application_id}/status")
def web_application_status(
    request: Request,
    application_id: int,
    status: str = Form(...),
    db: Session = Depends(get_db),
):
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()
    try:
        application = ApplicationManager(Repository(db)).set_application_status(
            application_id,
            status,
            actor=profile,
        )
    except LeederError as exc:
        return _failure("/dashboard", exc)

    return _redirect("/dashboard", APPLICATION_NOTICES[ApplicationStatus.parse(application.status)])


# admin


def _admin_profile(request: Request, db: Session) -> Profile | RedirectResponse:
    profile = _current_profile(request, db)
    if profile is None:
        return _sign_in_required()
    if profile.role != Role.ADMIN.value:
        return _forbidden()
    return profile


@router.get("/admin/delete/{kind}/{target_id}", response_class=HTMLResponse)
def admin_delete_page(request: Request, kind: str, target_id: int, db: Session = Depends(get_db)):
    profile = _admin_profile(request, db)
    if isinstance(profile, RedirectResponse):
        return profile
    if kind not in DELETION_KINDS:
        return _render(request, "not_found.html", {"message": "Élément introuvable"}, status_code=404)

    try:
        deletion = AdminPanel(Repository(db)).open_deletion(kind, target_id)
    except LeederError as exc:
        return _render(request, "not_found.html", {"message": exc.message}, status_code=404)
    return _render(request, "confirm_delete.html", {"profile": profile, "deletion": deletion})


@router.post("/admin/delete/{kind}/{target_id}")
def admin_delete(
    request: Request,
    kind: str,
    target_id: int,
    confirm: str = Form(""),
    db: Session = Depends(get_db),
):
    profile = _admin_profile(request, db)
    if isinstance(profile, RedirectResponse):
        return profile

    panel = AdminPanel(Repository(db))
    try:
        deletion = panel.open_deletion(kind, target_id)
        deleted = panel.confirm_deletion(deletion, confirm == "yes")
    except LeederError as exc:
        return _failure("/dashboard?view=admin", exc)
    if not deleted:
        return _redirect("/dashboard?view=admin", "Suppression annulée", level="info")
    return _redirect("/dashboard?view=admin", "Élément supprimé avec succès")


@router.post("/admin/missions/{mission_id}/status")
def admin_mission_status(
    request: Request,
    mission_id: int,
    status: str = Form(...),
    db: Session = Depends(get_db),
):
    profile = _admin_profile(request, db)
    if isinstance(profile, RedirectResponse):
        return profile
    try:
        AdminPanel(Repository(db)).set_mission_status(mission_id, status)
    except LeederError as exc:
        return _failure("/dashboard?view=admin", exc)
    return _redirect("/dashboard?view=admin", "Statut mis à jour")


@router.post("/admin/applications/{application_id}/status")
def admin_application_status(
    request: Request,
    application_id: int,
    status: str = Form(...),
    db: Session = Depends(get_db),
):
    profile = _admin_profile(request, db)
    if isinstance(profile, RedirectResponse):
        return profile
    try:
        AdminPanel(Repository(db)).set_application_status(application_id, status)
    except LeederError as exc:
        return _failure("/dashboard?view=admin", exc)
    return _redirect("/dashboard?view=admin", "Statut mis à jour")
