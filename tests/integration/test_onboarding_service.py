from datetime import date

import pytest

from factories import make_admin, make_user
from leeder.core.onboarding import OnboardingService, go_to_step, new_wizard, with_values
from leeder.db.repositories import Repository
from leeder.db.session import SessionLocal
from leeder.errors import AccessDeniedError, ValidationError

FREELANCER_VALUES = {
    "name": "Alice Martin",
    "birth_date": "1990-04-12",
    "nationality": "Française",
    "address": "3 rue de la République, Lyon",
    "phone": "0601020304",
    "skills": ["Merchandising", "PLV"],
    "experience": "Cinq ans en grande distribution",
    "hourly_rate": "16,5",
    "location": "Lyon",
    "max_travel_time": "45",
    "distance_limit": "30",
}


def test_saving_progress_keeps_profile_incomplete_and_resumes() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        freelancer = make_user(repo, "freelancer", name="Alice")
        freelancer_id = freelancer.id

        state = service.load(freelancer_id)
        assert state.value("email") == freelancer.email
        assert state.value("distance_limit") == "50"

        state = with_values(state, {"name": "Alice Martin", "birth_date": "1990-04-12", "nationality": "Française"})
        service.save_progress(freelancer_id, go_to_step(state, 2))
        assert service.is_completed(freelancer_id) is False

    with SessionLocal() as db:
        repo = Repository(db)
        resumed = OnboardingService(repo).load(freelancer_id)
        assert resumed.value("name") == "Alice Martin"
        assert resumed.value("birth_date") == "1990-04-12"
        assert resumed.value("nationality") == "Française"
        assert repo.get_profile(freelancer_id).name == "Alice Martin"
        assert repo.get_freelancer_profile(freelancer_id).birth_date == date(1990, 4, 12)


def test_submit_completes_freelancer_profile() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        freelancer = make_user(repo, "freelancer")

        state = go_to_step(with_values(service.load(freelancer.id), FREELANCER_VALUES), 4)
        service.submit(freelancer.id, state)

        extension = repo.get_freelancer_profile(freelancer.id)
        assert extension.profile_completed is True
        assert extension.skills == ["Merchandising", "PLV"]
        assert extension.hourly_rate == 16.5
        assert extension.max_travel_time == 45
        assert extension.distance_limit == 30
        assert service.is_completed(freelancer.id)


def test_submit_requires_last_step_and_every_field() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        freelancer = make_user(repo, "freelancer")
        state = with_values(service.load(freelancer.id), FREELANCER_VALUES)

        with pytest.raises(ValidationError):
            service.submit(freelancer.id, state)

        incomplete = go_to_step(with_values(state, {"phone": ""}), 4)
        with pytest.raises(ValidationError) as excinfo:
            service.submit(freelancer.id, incomplete)
        assert excinfo.value.missing_fields == ["phone"]
        assert service.is_completed(freelancer.id) is False


def test_invalid_numbers_are_rejected_on_save() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        freelancer = make_user(repo, "freelancer")
        state = with_values(service.load(freelancer.id), {"max_travel_time": "une heure"})

        with pytest.raises(ValidationError) as excinfo:
            service.save_progress(freelancer.id, state)
        assert excinfo.value.missing_fields == ["max_travel_time"]


def test_company_wizard_keeps_name_in_sync() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        company = make_user(repo, "company", name="Acme")

        state = service.load(company.id)
        assert state.value("company_name") == "Acme"

        state = with_values(
            state,
            {
                "company_name": "Acme Distribution",
                "siret": "12345678900011",
                "activity": "Grande surface",
                "contact_name": "Claire Dupont",
                "address": "1 avenue Foch, Paris",
                "sector": "Grande distribution",
                "location": "Paris",
                "mission_types": ["Audit terrain", "Formation"],
            },
        )
        service.submit(company.id, go_to_step(state, 4))

        extension = repo.get_company_profile(company.id)
        assert extension.company_name == "Acme Distribution"
        assert extension.contact_name == "Claire Dupont"
        assert extension.mission_types == ["Audit terrain", "Formation"]
        assert extension.profile_completed is True
        assert repo.get_profile(company.id).name == "Acme Distribution"
        assert repo.display_names({company.id}) == {company.id: "Acme Distribution"}


def test_blank_contact_name_does_not_break_partial_save() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        company = make_user(repo, "company", name="Acme")

        service.save_progress(company.id, with_values(service.load(company.id), {"contact_name": "", "siret": "123"}))

        extension = repo.get_company_profile(company.id)
        assert extension.contact_name == "Acme"
        assert extension.siret == "123"


def test_wizard_must_match_profile_role() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        service = OnboardingService(repo)
        company = make_user(repo, "company")
        admin = make_admin(repo)

        with pytest.raises(AccessDeniedError):
            service.save_progress(company.id, new_wizard("freelancer", {"name": "X"}))
        with pytest.raises(ValidationError):
            service.load(admin.id)
        assert service.is_completed(admin.id)
