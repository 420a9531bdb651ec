from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from leeder.db.repositories import Repository
from leeder.errors import AccessDeniedError, NotFoundError, ValidationError
from leeder.types import Role

logger = logging.getLogger(__name__)

TOTAL_STEPS = 4

SKILLS_OPTIONS = (
    "Merchandising",
    "Mise en rayon",
    "PLV",
    "Animation commerciale",
    "Inventaire",
    "Facing",
    "Théâtralisation",
    "Implantation",
)

MISSION_TYPES_OPTIONS = SKILLS_OPTIONS + ("Audit terrain", "Formation")

SECTOR_OPTIONS = (
    "Grande distribution",
    "Commerce spécialisé",
    "Retail",
    "Cosmétique",
    "Alimentaire",
    "Textile",
    "Électronique",
    "Bricolage",
    "Autre",
)


@dataclass(slots=True, frozen=True)
class StepSpec:
    title: str
    fields: tuple[str, ...]
    required: tuple[str, ...]
    multi_select: str | None = None
    options: tuple[str, ...] = ()


FREELANCER_STEPS = (
    StepSpec(
        "Informations personnelles",
        ("name", "birth_date", "nationality", "photo_url"),
        ("name", "birth_date", "nationality"),
    ),
    StepSpec("Coordonnées", ("address", "email", "phone"), ("address", "email", "phone")),
    StepSpec(
        "Compétences et expérience",
        ("skills", "experience", "hourly_rate"),
        ("skills", "experience"),
        multi_select="skills",
        options=SKILLS_OPTIONS,
    ),
    StepSpec(
        "Zone et disponibilité",
        ("location", "max_travel_time", "distance_limit", "is_available"),
        ("location", "max_travel_time", "distance_limit"),
    ),
)

COMPANY_STEPS = (
    StepSpec(
        "Informations sur l'entreprise",
        ("company_name", "siret", "activity", "kbis_document_url"),
        ("company_name", "siret", "activity"),
    ),
    StepSpec("Contact", ("contact_name", "address"), ("contact_name", "address")),
    StepSpec("Secteur et localisation", ("sector", "location"), ("sector", "location"), options=SECTOR_OPTIONS),
    StepSpec(
        "Types de missions",
        ("mission_types", "special_requirements"),
        ("mission_types",),
        multi_select="mission_types",
        options=MISSION_TYPES_OPTIONS,
    ),
)

STEPS: dict[Role, tuple[StepSpec, ...]] = {
    Role.FREELANCER: FREELANCER_STEPS,
    Role.COMPANY: COMPANY_STEPS,
}

DEFAULT_VALUES: dict[Role, dict[str, Any]] = {
    Role.FREELANCER: {"skills": [], "distance_limit": "50", "is_available": True},
    Role.COMPANY: {"mission_types": []},
}

LIST_FIELDS = {"skills", "mission_types"}
BOOL_FIELDS = {"is_available"}
INT_FIELDS = {"max_travel_time", "distance_limit"}
FLOAT_FIELDS = {"hourly_rate"}
DATE_FIELDS = {"birth_date"}

# Wizard fields stored on the base profile rather than the role extension.
PROFILE_COLUMNS: dict[Role, dict[str, str]] = {
    Role.FREELANCER: {"name": "name", "photo_url": "photo_url"},
    Role.COMPANY: {"company_name": "name"},
}

# Shown and required by the wizard, owned by the auth service.
READ_ONLY_FIELDS = {"email"}

# Columns that a partial save never clears.
KEEP_WHEN_BLANK = {"name", "company_name", "contact_name"}


def _steps_for(role: Role) -> tuple[StepSpec, ...]:
    try:
        return STEPS[role]
    except KeyError as exc:
        raise ValidationError(f"Aucun parcours d'inscription pour le rôle {role.value}") from exc


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


@dataclass(slots=True, frozen=True)
class WizardState:
    role: Role
    current_step: int = 1
    values: Mapping[str, Any] = field(default_factory=dict)

    @property
    def steps(self) -> tuple[StepSpec, ...]:
        return _steps_for(self.role)

    @property
    def step(self) -> StepSpec:
        return self.steps[self.current_step - 1]

    @property
    def is_last_step(self) -> bool:
        return self.current_step == TOTAL_STEPS

    @property
    def progress(self) -> int:
        return int(self.current_step / TOTAL_STEPS * 100)

    def value(self, name: str, default: Any = "") -> Any:
        return self.values.get(name, default)

    def choices(self, name: str) -> list[str]:
        """Catalogue options for ``name`` followed by stored items outside the catalogue."""
        chosen = [str(item) for item in (self.values.get(name) or [])]
        options = list(self.step.options)
        return options + [item for item in chosen if item not in options]


def new_wizard(role: Role | str, values: Mapping[str, Any] | None = None) -> WizardState:
    role = Role.parse(role)
    _steps_for(role)
    merged = dict(DEFAULT_VALUES[role])
    if values:
        merged.update({key: value for key, value in values.items() if value is not None})
    return WizardState(role=role, current_step=1, values=merged)


def known_fields(role: Role) -> set[str]:
    return {name for step in _steps_for(role) for name in step.fields}


def validate_step(state: WizardState, step: int | None = None) -> list[str]:
    """Return the required fields of ``step`` that are still empty."""
    number = state.current_step if step is None else step
    if not 1 <= number <= TOTAL_STEPS:
        raise ValidationError(f"Étape {number} inexistante")
    spec = state.steps[number - 1]
    return [name for name in spec.required if _is_missing(state.values.get(name))]


def missing_fields(state: WizardState) -> list[str]:
    missing: list[str] = []
    for number in range(1, TOTAL_STEPS + 1):
        missing.extend(validate_step(state, number))
    return missing


def next_step(state: WizardState) -> WizardState:
    missing = validate_step(state)
    if missing:
        spec = state.step
        if spec.multi_select and spec.multi_select in missing:
            message = "Veuillez sélectionner au moins un élément et remplir les champs obligatoires"
        else:
            message = "Veuillez remplir tous les champs obligatoires"
        raise ValidationError(message, missing_fields=missing)
    return replace(state, current_step=min(state.current_step + 1, TOTAL_STEPS))


def previous_step(state: WizardState) -> WizardState:
    return replace(state, current_step=max(state.current_step - 1, 1))


def go_to_step(state: WizardState, step: int) -> WizardState:
    if not 1 <= step <= TOTAL_STEPS:
        raise ValidationError(f"Étape {step} inexistante")
    return replace(state, current_step=step)


def first_incomplete_step(state: WizardState) -> int:
    for number in range(1, TOTAL_STEPS):
        if validate_step(state, number):
            return number
    return TOTAL_STEPS


def reachable_step(state: WizardState, step: int) -> WizardState:
    """Move to ``step`` unless an earlier step is incomplete, then stop at that one."""
    step = min(max(step, 1), TOTAL_STEPS)
    return go_to_step(state, min(step, first_incomplete_step(state)))


def with_values(state: WizardState, updates: Mapping[str, Any]) -> WizardState:
    allowed = known_fields(state.role)
    merged = dict(state.values)
    for key, value in updates.items():
        if key not in allowed:
            continue
        if key in LIST_FIELDS:
            value = _dedupe([str(item) for item in (value or [])])
        merged[key] = value
    return replace(state, values=merged)


def toggle(state: WizardState, field_name: str, item: str) -> WizardState:
    if field_name not in LIST_FIELDS or field_name not in known_fields(state.role):
        raise ValidationError(f"Le champ {field_name} n'est pas une sélection multiple")
    current = list(state.values.get(field_name) or [])
    if item in current:
        current.remove(item)
    else:
        current.append(item)
    return with_values(state, {field_name: current})


def _dedupe(items: list[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


def _coerce(name: str, value: Any) -> Any:
    if name in LIST_FIELDS:
        return _dedupe([str(item) for item in (value or [])])
    if name in BOOL_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "on", "yes", "oui"}
        return bool(value)
    if _is_missing(value):
        return None
    if name in INT_FIELDS:
        try:
            return int(str(value).strip())
        except ValueError as exc:
            raise ValidationError("Valeur numérique invalide", missing_fields=[name]) from exc
    if name in FLOAT_FIELDS:
        try:
            return float(str(value).strip().replace(",", "."))
        except ValueError as exc:
            raise ValidationError("Valeur numérique invalide", missing_fields=[name]) from exc
    if name in DATE_FIELDS:
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip())
        except ValueError as exc:
            raise ValidationError("Date invalide", missing_fields=[name]) from exc
    return str(value).strip()


def _display(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class OnboardingService:
    def __init__(self, repo: Repository):
        self.repo = repo

    def _profile(self, profile_id: int):
        profile = self.repo.get_profile(profile_id)
        if profile is None:
            raise NotFoundError(f"Profil {profile_id} introuvable")
        return profile

    def load(self, profile_id: int) -> WizardState:
        profile = self._profile(profile_id)
        role = Role.parse(profile.role)
        values: dict[str, Any] = {"email": profile.email}

        if role is Role.FREELANCER:
            values.update({"name": profile.name, "photo_url": profile.photo_url})
            extension = self.repo.get_freelancer_profile(profile_id)
        elif role is Role.COMPANY:
            values["company_name"] = profile.name
            extension = self.repo.get_company_profile(profile_id)
        else:
            raise ValidationError("Les administrateurs n'ont pas de parcours d'inscription")

        if extension is not None:
            for name in known_fields(role) - set(PROFILE_COLUMNS[role]) - READ_ONLY_FIELDS:
                stored = getattr(extension, name, None)
                if stored is not None:
                    values[name] = list(stored) if name in LIST_FIELDS else stored
            if role is Role.COMPANY and extension.company_name:
                values["company_name"] = extension.company_name

        return new_wizard(role, {key: _display(value) for key, value in values.items()})

    def is_completed(self, profile_id: int) -> bool:
        profile = self._profile(profile_id)
        if profile.role == Role.FREELANCER.value:
            extension = self.repo.get_freelancer_profile(profile_id)
        elif profile.role == Role.COMPANY.value:
            extension = self.repo.get_company_profile(profile_id)
        else:
            return True
        return bool(extension and extension.profile_completed)

    def save_progress(self, profile_id: int, state: WizardState) -> None:
        self._persist(profile_id, state, completed=False)
        logger.info("Onboarding progress saved profile_id=%s step=%s", profile_id, state.current_step)

    def submit(self, profile_id: int, state: WizardState) -> None:
        if not state.is_last_step:
            raise ValidationError("Veuillez compléter toutes les étapes avant de valider")
        missing = missing_fields(state)
        if missing:
            raise ValidationError(missing_fields=missing)
        self._persist(profile_id, state, completed=True)
        logger.info("Onboarding completed profile_id=%s role=%s", profile_id, state.role.value)

    def _persist(self, profile_id: int, state: WizardState, *, completed: bool) -> None:
        profile = self._profile(profile_id)
        if profile.role != state.role.value:
            raise AccessDeniedError("Ce parcours ne correspond pas à votre profil")

        profile_columns = PROFILE_COLUMNS[state.role]
        profile_values: dict[str, Any] = {}
        extension_values: dict[str, Any] = {}
        for name in known_fields(state.role) - READ_ONLY_FIELDS:
            if name not in state.values:
                continue
            value = _coerce(name, state.values[name])
            if value is None and name in KEEP_WHEN_BLANK:
                continue
            if name in profile_columns:
                profile_values[profile_columns[name]] = value
            if name not in profile_columns or state.role is Role.COMPANY:
                extension_values[name] = value

        if completed:
            extension_values["profile_completed"] = True

        self.repo.save_profile_and_extension(
            profile_id,
            profile_values=profile_values,
            extension_values=extension_values,
        )
