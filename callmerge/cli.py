import json
import logging
from pathlib import Path

import typer
import uvicorn
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callmerge import database
from callmerge.config import settings
from callmerge.normalize import MalformedEventError, normalize_payload
from callmerge.services.event_store import EventStore
from callmerge.services.merge import MergeInProgressError, MergeOrchestrator

app = typer.Typer()

logger = logging.getLogger(__name__)


@app.callback()
def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    database.Base.metadata.create_all(bind=database.engine)


@app.command()
def import_events(path: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """Append webhook payloads from a JSON-lines file to the event store."""
    db: Session = database.SessionLocal()
    imported = 0
    rejected = 0
    try:
        store = EventStore(db)
        for line_number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
            if not line.strip():
                continue
            try:
                store.append_event(normalize_payload(json.loads(line)))
            except (json.JSONDecodeError, MalformedEventError) as exc:
                rejected += 1
                logger.warning("Line %s rejected: %s", line_number, exc)
                continue
            imported += 1
        db.commit()
    finally:
        db.close()
    typer.echo(f"Imported {imported} event(s), rejected {rejected}")


@app.command()
def merge():
    """Run one merge pass over all unconsumed events."""
    db: Session = database.SessionLocal()
    try:
        summary = MergeOrchestrator(db).run_once()
    except (MergeInProgressError, SQLAlchemyError) as exc:
        typer.echo(f"Merge pass failed: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(
        f"Processed {summary.groups_processed} call(s): {summary.created} created, "
        f"{summary.updated} updated, {summary.failed} failed, {summary.malformed} malformed event(s)"
    )
    for error in summary.errors:
        typer.echo(f"  {error}", err=True)


@app.command()
def merge_call(call_id: str):
    """Re-merge every stored event of one call."""
    db: Session = database.SessionLocal()
    try:
        result = MergeOrchestrator(db).run_for_call_id(call_id)
    finally:
        db.close()
    if result is None:
        typer.echo(f"No events found for call {call_id}")
        raise typer.Exit(code=1)
    typer.echo(
        f"{result.action.capitalize()} record {result.record_id} for call {call_id}: "
        f"{result.final_status.value} ({result.event_count} events)"
    )


@app.command()
def preview():
    """Show what the next merge pass would produce without writing anything."""
    db: Session = database.SessionLocal()
    try:
        response = MergeOrchestrator(db).preview()
    finally:
        db.close()
    typer.echo(f"{response.total_calls} call(s) pending")
    for item in response.calls:
        typer.echo(
            f"{item.call_id}  {item.final_status.value:<9}  {item.direction.value:<8}  "
            f"events={item.event_count}  from={item.caller_number or '-'}  "
            f"answered_by={item.answered_by or 'N/A'}  duration={item.duration_seconds}s  "
            f"ivr={item.ivr_path or 'None'}"
        )


@app.command()
def stats():
    """Print event store statistics."""
    db: Session = database.SessionLocal()
    try:
        data = EventStore(db).statistics()
    finally:
        db.close()
    typer.echo(json.dumps(data, indent=2))


@app.command()
def serve():
    """Serve the HTTP API."""
    uvicorn.run(
        "callmerge.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
