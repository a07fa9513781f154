"""memocurve CLI — root commands and the config subgroup."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from memocurve.application.config import config_file_candidates
from memocurve.application.utils.clock import now_ms
from memocurve.domain.constants import STAGE_COUNT
from memocurve.domain.errors import MemoCurveError
from memocurve.interface._common import (
    _resolve_with_overrides,
    describe_due,
    fail,
    find_card,
    open_store,
    print_stage_rows,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="memocurve: spaced repetition on the Ebbinghaus forgetting curve.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage memocurve configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Enable debug logging."),
    ] = 0,
    data_dir: Annotated[
        Path | None, typer.Option(help="Directory holding the card collection.")
    ] = None,
):
    """Global settings for memocurve."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["data_dir"] = data_dir
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _config(ctx: typer.Context, **overrides):
    obj = ctx.obj or {}
    return _resolve_with_overrides(
        data_dir=obj.get("data_dir"), verbose=obj.get("verbose") or None, **overrides
    )


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    content: Annotated[str, typer.Argument(help="The word or phrase to memorize.")],
    meaning: Annotated[str, typer.Option("--meaning", "-m", help="Its meaning.")] = "",
    example: Annotated[str, typer.Option("--example", "-e", help="An example sentence.")] = "",
):
    """[bold green]Add[/bold green] a card; its first review is due in 30 minutes."""
    from memocurve.application.card_service import CardService

    store = open_store(_config(ctx))
    try:
        card = CardService(store).add_card(content, meaning, example)
    except ValueError as e:
        fail(e)
    typer.secho(f"Added {card.id}: {card.content}", fg="green")
    typer.echo(f"First review {describe_due(card.next_due, now_ms())}")


@app.command("list")
def list_cards(
    ctx: typer.Context,
    search: Annotated[
        str | None, typer.Option("--search", "-s", help="Filter by content (case-insensitive).")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output raw JSON.")] = False,
):
    """List cards, most urgent first."""
    from memocurve.application.card_service import CardService

    store = open_store(_config(ctx))
    cards = sorted(CardService(store).search(search or ""), key=lambda c: c.next_due)

    if as_json:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": c.id,
                        "content": c.content,
                        "meaning": c.meaning,
                        "reviewCount": c.review_count,
                        "nextDue": c.next_due,
                    }
                    for c in cards
                ],
                indent=2,
            )
        )
        return

    if not cards:
        typer.secho("No cards found.", fg="yellow")
        return

    now = now_ms()
    for c in cards:
        color = "red" if c.next_due < now and not c.is_complete else None
        typer.secho(
            f"{c.id}  {c.review_count:>2}/{STAGE_COUNT}  "
            f"{describe_due(c.next_due, now):<28}  {c.content}",
            fg=color,
        )


@app.command()
def delete(
    ctx: typer.Context,
    card_ids: Annotated[list[str], typer.Argument(help="Card ids (or unique prefixes).")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Delete cards."""
    from memocurve.application.card_service import CardService

    store = open_store(_config(ctx))
    try:
        cards = [find_card(store, card_id) for card_id in card_ids]
    except MemoCurveError as e:
        fail(e)

    if not force:
        typer.confirm(f"Delete {len(cards)} card(s)?", abort=True)
    removed = CardService(store).delete_cards(c.id for c in cards)
    typer.secho(f"Deleted {removed} card(s).", fg="green")


@app.command("import")
def import_cards(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="A .csv or .xlsx file with a Content column.")],
):
    """Import cards from a spreadsheet."""
    from memocurve.application.card_service import CardService

    store = open_store(_config(ctx))
    try:
        result = CardService(store).import_file(path)
    except (OSError, ValueError) as e:
        fail(e)

    typer.secho(f"Imported {result.imported} card(s).", fg="green")
    if result.skipped:
        typer.secho(f"Skipped {result.skipped} row(s) without content.", fg="yellow")


@app.command()
def export(
    ctx: typer.Context,
    path: Annotated[
        Path | None,
        typer.Argument(help="Output .xlsx or .csv file. Defaults to a timestamped name."),
    ] = None,
    card_ids: Annotated[
        list[str] | None, typer.Option("--id", help="Export only these cards. Repeatable.")
    ] = None,
):
    """Export cards and their review history."""
    from memocurve.application.card_service import CardService

    store = open_store(_config(ctx))
    try:
        selected = [find_card(store, card_id).id for card_id in card_ids or []]
        written = CardService(store).export_file(path, selected_ids=selected)
    except (MemoCurveError, OSError, ValueError) as e:
        fail(e)
    typer.secho(f"Exported to {written}", fg="green")


@app.command()
def due(ctx: typer.Context):
    """Show how many cards are waiting for review."""
    from memocurve.application.card_service import CardService

    store = open_store(_config(ctx))
    summary = CardService(store).summary()
    typer.echo(f"Total cards: {summary.total}")
    color = "red" if summary.pending else "green"
    typer.secho(f"Pending reviews: {summary.pending}", fg=color)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@app.command()
def progress(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id (or unique prefix).")],
    as_json: Annotated[bool, typer.Option("--json", help="Output raw JSON.")] = False,
):
    """Show the 12-stage review chart of a card."""
    from memocurve.application.progress_editor import ProgressEditor, overdue_count

    store = open_store(_config(ctx))
    try:
        card = find_card(store, card_id)
    except MemoCurveError as e:
        fail(e)

    rows = ProgressEditor(store).stage_rows(card)
    if as_json:
        typer.echo(
            json.dumps(
                [
                    {
                        "stage": r.index + 1,
                        "label": r.label,
                        "dueAt": r.due_at,
                        "status": r.status.value,
                        "isNext": r.is_next,
                    }
                    for r in rows
                ],
                indent=2,
            )
        )
        return
    print_stage_rows(card, rows)
    overdue = overdue_count(rows)
    if overdue:
        typer.secho(f"{overdue} stage(s) overdue.", fg="red")


@app.command()
def toggle(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id (or unique prefix).")],
    stage: Annotated[
        int, typer.Argument(min=1, max=STAGE_COUNT, help="Stage number, 1 to 12.")
    ],
):
    """Check the next pending stage, or uncheck the most recent one."""
    from memocurve.application.progress_editor import ProgressEditor

    store = open_store(_config(ctx))
    try:
        card = find_card(store, card_id)
    except MemoCurveError as e:
        fail(e)

    index = stage - 1
    editor = ProgressEditor(store)
    result = editor.toggle_stage(card, index, index >= len(card.completed_at))
    if not result.ok:
        typer.secho(result.message, fg="yellow")
        raise typer.Exit(1)
    print_stage_rows(result.card, editor.stage_rows(result.card))


# ---------------------------------------------------------------------------
# Review & reminders
# ---------------------------------------------------------------------------


@app.command()
def review(
    ctx: typer.Context,
    trigger: Annotated[
        int | None,
        typer.Option(
            min=1, max=60, help="Seconds on screen before a review counts (this run only)."
        ),
    ] = None,
    enrichment: Annotated[
        str | None, typer.Option(help="Question source: auto, gemini, offline.")
    ] = None,
):
    """[bold green]Review[/bold green] your cards, most urgent first."""
    import asyncio

    from memocurve.application.factory import get_question_generator
    from memocurve.interface.review_commands import run_review

    config = _config(ctx, enrichment=enrichment)
    store = open_store(config)
    review_config = store.load_config()
    if trigger is not None:
        review_config.review_duration_trigger = trigger

    asyncio.run(run_review(store, review_config, get_question_generator(config)))


@app.command()
def remind(
    ctx: typer.Context,
    once: Annotated[bool, typer.Option("--once", help="Check once and exit.")] = False,
    interval: Annotated[
        float | None, typer.Option(help="Seconds between checks.")
    ] = None,
):
    """Watch for due cards and print a reminder when there are some."""
    import asyncio

    from memocurve.application.reminders import ReminderService
    from memocurve.interface.notifier import ConsoleNotifier

    config = _config(ctx, reminder_interval=interval)
    store = open_store(config)
    notifier = ConsoleNotifier(permission=config.notifications, interactive=sys.stdin.isatty())
    service = ReminderService(store, notifier)

    if once:
        count = service.poll_once()
        if not count:
            typer.secho("Nothing due.", fg="green")
        return

    typer.echo(f"Checking every {config.reminder_interval:g}s. Ctrl-C to stop.")
    try:
        asyncio.run(service.run(config.reminder_interval))
    except KeyboardInterrupt:
        raise typer.Exit() from None


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Start the HTTP API."""
    import uvicorn

    config = _config(ctx, server_port=port, server_host=host)
    if ctx.obj and ctx.obj.get("data_dir"):
        os.environ["MEMOCURVE_DATA_DIR"] = str(config.data_dir)

    typer.secho(
        f"Starting memocurve server on http://{config.server_host}:{config.server_port}",
        fg="green",
    )
    uvicorn.run(
        "memocurve.server:app",
        host=config.server_host,
        port=config.server_port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display the resolved settings and review preferences."""
    config = _config(ctx)
    settings = {
        k: str(v) if isinstance(v, Path) else v
        for k, v in config.model_dump(exclude={"gemini_api_key"}).items()
    }
    settings["gemini_api_key"] = "set" if config.gemini_api_key else None
    review_config = open_store(config).load_config()
    typer.echo(
        json.dumps(
            {"settings": settings, "review": review_config.model_dump(by_alias=True)},
            indent=2,
        )
    )


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    trigger: Annotated[
        int | None, typer.Option(help="Seconds on screen before a review counts (1-60).")
    ] = None,
    front: Annotated[
        list[str] | None,
        typer.Option(help="Field shown on the front: content, meaning, example, aiQuestion."),
    ] = None,
    back: Annotated[list[str] | None, typer.Option(help="Field shown on the back.")] = None,
    show_ai_question: Annotated[
        bool | None,
        typer.Option("--show-ai-question/--hide-ai-question", help="AI question on the front."),
    ] = None,
    reminder_method: Annotated[
        str | None, typer.Option(help="None, Push, SMS or Email.")
    ] = None,
):
    """Change review preferences."""
    updates = {
        "review_duration_trigger": trigger,
        "front_fields": front,
        "back_fields": back,
        "show_ai_question_on_front": show_ai_question,
        "reminder_method": reminder_method,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    if not updates:
        typer.secho("Nothing to change.", fg="yellow")
        raise typer.Exit()

    from memocurve.application.config import ReviewConfig

    store = open_store(_config(ctx))
    current = store.load_config()
    try:
        updated = ReviewConfig.model_validate({**current.model_dump(), **updates})
    except ValidationError as e:
        typer.secho(f"Invalid setting: {e.errors()[0]['msg']}", fg="red", err=True)
        raise typer.Exit(1) from None

    store.save_config(updated)
    typer.secho("Saved.", fg="green")
    typer.echo(json.dumps(updated.model_dump(by_alias=True), indent=2))


@config_app.command("open")
def config_open():
    """Open the config file in your default editor."""
    import subprocess

    cfg_path = config_file_candidates()[0]
    if not cfg_path.exists():
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        cfg_path.touch()

    if sys.platform == "darwin":
        subprocess.run(["open", str(cfg_path)])
    elif sys.platform == "win32":
        os.startfile(str(cfg_path))
    else:
        subprocess.run(["xdg-open", str(cfg_path)])
