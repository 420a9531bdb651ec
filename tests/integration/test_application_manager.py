import pytest

from factories import count_applications, make_admin, make_mission, make_user
from leeder.core.applications import ApplicationManager
from leeder.core.missions import MissionManager
from leeder.db.repositories import Repository
from leeder.db.session import SessionLocal
from leeder.errors import (
    DUPLICATE_APPLICATION_MESSAGE,
    AccessDeniedError,
    ConflictError,
    InvalidTransitionError,
    ValidationError,
)


def test_duplicate_application_conflicts_without_second_row() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = ApplicationManager(repo)
        company = make_user(repo, "company")
        alice = make_user(repo, "freelancer")
        bob = make_user(repo, "freelancer")
        mission = make_mission(repo, company)

        manager.submit_application(mission.id, alice.id, "Premier message")
        with pytest.raises(ConflictError) as excinfo:
            manager.submit_application(mission.id, alice.id, "Second message")
        assert excinfo.value.message == DUPLICATE_APPLICATION_MESSAGE
        assert count_applications(repo, mission.id, alice.id) == 1

        manager.submit_application(mission.id, bob.id)
        assert count_applications(repo, mission.id) == 2


def test_application_terms_are_stored_as_columns() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        company = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")
        mission = make_mission(repo, company)

        application = ApplicationManager(repo).submit_application(
            mission.id,
            freelancer.id,
            "  Bonjour  ",
            availability="Lundi au mercredi",
            proposed_rate="17,5",
        )
        assert application.status == "pending"
        assert application.message == "Bonjour"
        assert application.availability == "Lundi au mercredi"
        assert application.proposed_rate == 17.5


def test_only_freelancers_apply_to_open_missions() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = ApplicationManager(repo)
        company = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")
        mission = make_mission(repo, company)

        with pytest.raises(AccessDeniedError):
            manager.submit_application(mission.id, company.id)

        MissionManager(repo).set_status(mission.id, "cancelled")
        with pytest.raises(ValidationError):
            manager.submit_application(mission.id, freelancer.id)


def test_company_listing_is_enriched_and_newest_first() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = ApplicationManager(repo)
        company = make_user(repo, "company")
        other_company = make_user(repo, "company")
        alice = make_user(repo, "freelancer", name="Alice")
        bob = make_user(repo, "freelancer", name="Bob")
        repo.save_profile_and_extension(
            alice.id,
            profile_values={},
            extension_values={"skills": ["PLV"], "location": "Lyon", "distance_limit": 30},
        )
        mission = make_mission(repo, company, title="Facing")
        foreign = make_mission(repo, other_company, title="Ailleurs")

        first = manager.submit_application(mission.id, alice.id, "Alice ici")
        second = manager.submit_application(mission.id, bob.id, "Bob ici")
        manager.submit_application(foreign.id, alice.id)

        items = manager.list_applications_for_company(company.id)
        assert [item["id"] for item in items] == [second.id, first.id]

        alice_item = items[1]
        assert alice_item["freelancer"]["name"] == "Alice"
        assert alice_item["freelancer"]["freelancer_profile"]["skills"] == ["PLV"]
        assert alice_item["freelancer"]["freelancer_profile"]["distance_limit"] == 30
        assert alice_item["mission"] == {"id": mission.id, "title": "Facing", "hourly_rate": 15.0}


def test_accepting_reads_back_and_fires_hook() -> None:
    accepted: list[int] = []
    with SessionLocal() as db:
        repo = Repository(db)
        manager = ApplicationManager(repo, on_accepted=lambda application: accepted.append(application.id))
        company = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")
        mission = make_mission(repo, company)
        application_id = manager.submit_application(mission.id, freelancer.id).id

        manager.set_application_status(application_id, "accepted", actor=company)

    with SessionLocal() as db:
        assert Repository(db).get_application(application_id).status == "accepted"
    assert accepted == [application_id]


def test_company_transitions_are_guarded_but_admin_overrides() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = ApplicationManager(repo)
        company = make_user(repo, "company")
        stranger = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")
        admin = make_admin(repo)
        mission = make_mission(repo, company)
        application = manager.submit_application(mission.id, freelancer.id)

        with pytest.raises(AccessDeniedError):
            manager.set_application_status(application.id, "accepted", actor=stranger)
        with pytest.raises(AccessDeniedError):
            manager.set_application_status(application.id, "accepted", actor=freelancer)

        manager.set_application_status(application.id, "rejected", actor=company)
        with pytest.raises(InvalidTransitionError):
            manager.set_application_status(application.id, "accepted", actor=company)

        assert manager.set_application_status(application.id, "pending", actor=admin).status == "pending"


def test_freelancer_listing_shows_own_applications() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = ApplicationManager(repo)
        company = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")
        mission = make_mission(repo, company, title="Inventaire")
        manager.submit_application(mission.id, freelancer.id, proposed_rate=20)

        items = manager.list_applications_for_freelancer(freelancer.id)
        assert len(items) == 1
        assert items[0]["mission"]["title"] == "Inventaire"
        assert items[0]["proposed_rate"] == 20.0
