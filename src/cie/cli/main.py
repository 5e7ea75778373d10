"""Typer CLI entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import orjson
import psycopg
import typer
from pydantic import ValidationError

from cie.config import Settings
from cie.db.client import db_cursor
from cie.db.schema import ensure_schema
from cie.intake.classifier import IntakeClassifier, IntakePolicy
from cie.intake.locks import PostgresKeyedLock
from cie.intake.service import IntakeService
from cie.intake.store import PostgresComplaintStore
from cie.models import ActiveComplaint, CandidateComplaint, Coordinate
from cie.utils.logging import configure_logging, get_logger


app = typer.Typer(help="Complaint Intake Engine CLI")
intake_app = typer.Typer(help="Intake commands")
db_app = typer.Typer(help="Database utilities")

app.add_typer(intake_app, name="intake")
app.add_typer(db_app, name="db")

logger = get_logger(__name__)


@app.callback()
def main() -> None:
    """Initialize logging for all commands."""
    settings = Settings()
    configure_logging(settings.log_level)


def load_snapshot(path: Path) -> list[ActiveComplaint]:
    """Read a JSON array of active complaints."""
    payload = orjson.loads(path.read_bytes())
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array")
    return [ActiveComplaint.model_validate(item) for item in payload]


def _echo_json(payload: dict) -> None:
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8"))


@intake_app.command("classify")
def intake_classify(
    title: str = typer.Option(..., help="Complaint title"),
    lat: float = typer.Option(..., help="Latitude in degrees"),
    lon: float = typer.Option(..., help="Longitude in degrees"),
    snapshot: Optional[Path] = typer.Option(
        None, exists=True, dir_okay=False, help="JSON file of active complaints (default: database)"
    ),
) -> None:
    """Classify a candidate without persisting it."""
    settings = Settings()
    try:
        candidate = CandidateComplaint(
            title=title, coordinate=Coordinate(lat=lat, lon=lon), user_id="cli"
        )
        if snapshot is not None:
            active = load_snapshot(snapshot)
        else:
            active = PostgresComplaintStore(settings).fetch_active()
        decision = IntakeClassifier(IntakePolicy.from_settings(settings)).classify(
            candidate, active
        )
    except (ValueError, psycopg.Error) as exc:
        typer.echo(f"Classification failed: {exc}", err=True)
        raise typer.Exit(1)

    logger.info("intake.classify.done snapshot=%s reason=%s", len(active), decision.reason)
    _echo_json(decision.model_dump(mode="json"))


@intake_app.command("submit")
def intake_submit(
    title: str = typer.Option(..., help="Complaint title"),
    lat: float = typer.Option(..., help="Latitude in degrees"),
    lon: float = typer.Option(..., help="Longitude in degrees"),
    user_id: str = typer.Option(..., help="Submitting user id"),
    category: str = typer.Option("Roads & Infrastructure", help="Complaint category"),
    description: str = typer.Option("", help="Free-text description"),
) -> None:
    """Submit a complaint with per-key serialization against the database."""
    settings = Settings()
    try:
        candidate = CandidateComplaint(
            title=title,
            category=category,
            description=description,
            coordinate=Coordinate(lat=lat, lon=lon),
            user_id=user_id,
        )
    except ValidationError as exc:
        typer.echo(f"Invalid input: {exc}", err=True)
        raise typer.Exit(1)

    service = IntakeService(
        store=PostgresComplaintStore(settings),
        lock=PostgresKeyedLock(settings),
        settings=settings,
    )
    try:
        result = service.submit(candidate)
    except Exception as exc:
        typer.echo(f"Submission failed: {exc}", err=True)
        raise typer.Exit(1)

    _echo_json(result.model_dump(mode="json"))
    if not result.accepted:
        raise typer.Exit(2)


@db_app.command("check")
def db_check() -> None:
    """Check database connectivity."""
    try:
        with db_cursor() as cursor:
            cursor.execute("select 1")
            logger.info("db.check.ok")
    except Exception as exc:
        logger.error("db.check.failed: %s", exc)
        typer.echo(f"Database check failed: {exc}", err=True)
        raise typer.Exit(1)


@db_app.command("init")
def db_init() -> None:
    """Create the complaints table if missing."""
    try:
        with db_cursor() as cursor:
            ensure_schema(cursor)
        logger.info("db.init.ok")
    except Exception as exc:
        logger.error("db.init.failed: %s", exc)
        typer.echo(f"Database init failed: {exc}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
