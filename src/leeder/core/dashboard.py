from __future__ import annotations

from dataclasses import dataclass

from leeder.db.models import Profile
from leeder.errors import AccessDeniedError
from leeder.types import Role

ONBOARDING_ROUTES: dict[Role, str] = {
    Role.FREELANCER: "/onboarding/freelancer",
    Role.COMPANY: "/onboarding/company",
}


@dataclass(slots=True, frozen=True)
class DashboardDecision:
    view: Role | None = None
    redirect_to: str | None = None

    @property
    def needs_onboarding(self) -> bool:
        return self.redirect_to is not None


def views_for(role: Role | str) -> set[Role]:
    role = Role.parse(role)
    if role is Role.ADMIN:
        return {Role.ADMIN, Role.FREELANCER, Role.COMPANY}
    return {role}


def ensure_can_view(role: Role | str, view: Role | str) -> Role:
    view = Role.parse(view)
    if view not in views_for(role):
        raise AccessDeniedError("Vous n'avez pas accès à cet espace")
    return view


def resolve_dashboard(profile: Profile, completed: bool, requested: Role | str | None = None) -> DashboardDecision:
    """Pick the dashboard for ``profile``.

    Freelancers and companies that have not finished onboarding are sent to
    their wizard; admins are never gated and may ask for any view.
    """
    role = Role.parse(profile.role)
    if role is not Role.ADMIN and not completed:
        return DashboardDecision(redirect_to=ONBOARDING_ROUTES[role])
    if requested:
        return DashboardDecision(view=ensure_can_view(role, requested))
    return DashboardDecision(view=role)
