from __future__ import annotations

import json

import typer
import uvicorn

from leeder.api.app import create_app
from leeder.config import get_settings
from leeder.core.auth import AuthService
from leeder.core.missions import MissionManager, MissionScope
from leeder.db.init import init_database
from leeder.db.repositories import Repository
from leeder.db.session import SessionLocal
from leeder.errors import LeederError
from leeder.logging_config import configure_logging
from leeder.types import MissionStatus

app = typer.Typer(help="Leeder CLI")
admin_app = typer.Typer(help="Manage administrator accounts")
missions_app = typer.Typer(help="Mission registry commands")

app.add_typer(admin_app, name="admin")
app.add_typer(missions_app, name="missions")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


@app.command("init")
def init_cmd() -> None:
    """Initialize database, directories, and the seeded admin account."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@admin_app.command("create")
def admin_create(
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
    name: str = typer.Option("Administrateur", "--name"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            profile = AuthService(Repository(db)).create_admin(email=email, password=password, name=name)
        except LeederError as exc:
            raise typer.BadParameter(exc.message) from exc
        typer.echo(json.dumps({"id": profile.id, "email": profile.email, "role": profile.role}, indent=2))


@missions_app.command("list")
def missions_list(
    status: str | None = typer.Option(None, "--status"),
    company_id: int | None = typer.Option(None, "--company-id"),
) -> None:
    configure_logging()
    ensure_initialized()
    try:
        parsed = MissionStatus.parse(status) if status else None
    except LeederError as exc:
        raise typer.BadParameter(exc.message) from exc

    with SessionLocal() as db:
        manager = MissionManager(Repository(db))
        missions = manager.list_missions(MissionScope(company_id=company_id, status=parsed))
        names = manager.company_names(missions)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": mission.id,
                        "title": mission.title,
                        "company": names.get(mission.company_id, ""),
                        "location": mission.location,
                        "hourly_rate": mission.hourly_rate,
                        "status": mission.status,
                        "created_at": mission.created_at.isoformat() if mission.created_at else None,
                    }
                    for mission in missions
                ],
                indent=2,
                ensure_ascii=False,
            )
        )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
