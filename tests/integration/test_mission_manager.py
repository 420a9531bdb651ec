import pytest
from sqlalchemy import Delete
from sqlalchemy.exc import OperationalError

from factories import count_applications, make_admin, make_mission, make_user
from leeder.core.applications import ApplicationManager
from leeder.core.missions import MissionManager, MissionScope
from leeder.db.repositories import Repository
from leeder.db.session import SessionLocal
from leeder.errors import AccessDeniedError, NotFoundError, StoreError, ValidationError
from leeder.types import MissionStatus


def test_create_mission_parses_fields() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        company = make_user(repo, "company", name="Carrefour Lyon")
        mission = make_mission(repo, company, hourly_rate="14,5", skills=" PLV, , Facing ", payment_delay=30)

        assert mission.status == "open"
        assert mission.hourly_rate == 14.5
        assert mission.skills_required == ["PLV", "Facing"]
        assert mission.payment_delay == 30
        assert MissionManager(repo).company_names([mission]) == {company.id: "Carrefour Lyon"}


def test_create_mission_reports_missing_fields() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        company = make_user(repo, "company")
        with pytest.raises(ValidationError) as excinfo:
            MissionManager(repo).create_mission(company.id, {"title": "Inventaire", "location": " "})
        assert excinfo.value.missing_fields == ["description", "location", "hourly_rate"]
        assert repo.list_missions() == []


def test_create_mission_rejects_bad_rate_and_non_company() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        company = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")

        with pytest.raises(ValidationError):
            make_mission(repo, company, hourly_rate="-2")
        with pytest.raises(AccessDeniedError):
            make_mission(repo, freelancer)
        with pytest.raises(NotFoundError):
            MissionManager(repo).create_mission(9999, {"title": "x", "description": "y", "location": "z", "hourly_rate": 1})


def test_missions_are_listed_newest_first_per_scope() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = MissionManager(repo)
        first_company = make_user(repo, "company")
        second_company = make_user(repo, "company")
        oldest = make_mission(repo, first_company, title="Oldest")
        middle = make_mission(repo, second_company, title="Middle")
        newest = make_mission(repo, first_company, title="Newest")
        manager.set_status(middle.id, MissionStatus.COMPLETED)

        assert [m.id for m in manager.list_missions(MissionScope.all())] == [newest.id, middle.id, oldest.id]
        assert [m.id for m in manager.list_missions(MissionScope.owned_by(first_company.id))] == [newest.id, oldest.id]
        assert [m.id for m in manager.list_missions(MissionScope.open())] == [newest.id, oldest.id]


def test_status_changes_are_permissive_but_owner_checked() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        manager = MissionManager(repo)
        owner = make_user(repo, "company")
        other = make_user(repo, "company")
        mission = make_mission(repo, owner)

        assert manager.set_status(mission.id, "completed", actor=owner).status == "completed"
        assert manager.set_status(mission.id, "open", actor=owner).status == "open"
        with pytest.raises(AccessDeniedError):
            manager.set_status(mission.id, "cancelled", actor=other)
        with pytest.raises(ValidationError):
            manager.set_status(mission.id, "archived", actor=owner)
        assert manager.get_mission(mission.id).status == "open"


def test_delete_mission_is_hard_and_cascades_to_applications() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        company = make_user(repo, "company")
        freelancer = make_user(repo, "freelancer")
        admin = make_admin(repo)
        mission_id = make_mission(repo, company).id
        kept_id = make_mission(repo, company, title="Inventaire").id
        ApplicationManager(repo).submit_application(mission_id, freelancer.id, "Disponible")

        MissionManager(repo).delete_mission(mission_id, actor=admin)

        assert repo.get_mission(mission_id) is None
        assert [m.id for m in MissionManager(repo).list_missions(MissionScope.all())] == [kept_id]
        assert [m.id for m in MissionManager(repo).list_missions(MissionScope.open())] == [kept_id]
        assert count_applications(repo, mission_id) == 0
        assert ApplicationManager(repo).list_applications_for_freelancer(freelancer.id) == []
        with pytest.raises(NotFoundError):
            MissionManager(repo).delete_mission(mission_id)


def test_failed_delete_rolls_back_and_raises_store_error(monkeypatch: pytest.MonkeyPatch) -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        company = make_user(repo, "company")
        company_id = company.id
        freelancer = make_user(repo, "freelancer")
        mission_id = make_mission(repo, company).id
        ApplicationManager(repo).submit_application(mission_id, freelancer.id)

        execute = db.execute

        def locked_on_delete(statement, *args, **kwargs):
            if isinstance(statement, Delete):
                raise OperationalError("DELETE", {}, Exception("database is locked"))
            return execute(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", locked_on_delete)
        with pytest.raises(StoreError):
            repo.delete_mission(mission_id)
        with pytest.raises(StoreError):
            repo.delete_profile(company_id)
        monkeypatch.undo()

        assert repo.get_mission(mission_id) is not None
        assert count_applications(repo, mission_id) == 1
        assert repo.get_profile(company_id) is not None
