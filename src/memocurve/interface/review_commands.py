"""Interactive terminal review loop."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import typer

from memocurve.application.config import ReviewConfig
from memocurve.application.dwell_timer import ReviewRunner
from memocurve.application.progress_editor import ProgressEditor
from memocurve.application.review_session import ReviewSession, SessionState
from memocurve.application.utils.clock import now_ms
from memocurve.domain.constants import STAGE_COUNT, TICK_INTERVAL
from memocurve.domain.ports import CardRepository, QuestionGenerator
from memocurve.interface._common import FIELD_LABELS, describe_due, print_stage_rows

logger = logging.getLogger(__name__)

HELP_TEXT = "[n]ext  [p]rev  [f]lip  [c]hart  [s]tatus  [t N] toggle stage N  [q]uit"

ReadCommand = Callable[[], Awaitable[str]]


async def _read_line() -> str:
    try:
        return await asyncio.to_thread(input, "> ")
    except EOFError:
        return "q"


def render_card(session: ReviewSession) -> None:
    card = session.current_card
    if card is None:
        typer.secho("No cards to review.", fg="yellow")
        return

    typer.echo("")
    typer.secho(
        f"Card {session.position + 1}/{len(session.queue)}  "
        f"({card.review_count}/{STAGE_COUNT} reviews)",
        bold=True,
    )
    if not session.is_current_due():
        typer.secho(
            f"Not due yet, next review {describe_due(card.next_due, now_ms())}. "
            "Viewing it now won't advance its progress.",
            fg="yellow",
        )

    side = "Back" if session.flipped else "Front"
    fields = session.back_fields() if session.flipped else session.front_fields()
    typer.secho(f"[{side}]", fg="cyan")
    for name, value in fields:
        typer.echo(f"  {FIELD_LABELS[name]}: {value}")


def render_status(session: ReviewSession) -> None:
    filled = int(session.progress_fraction() * 20)
    bar = "#" * filled + "-" * (20 - filled)
    typer.echo(f"[{bar}] {session.dwell_seconds}/{session.trigger}s  {session.state.value}")


def _announcer() -> Callable[[ReviewSession], None]:
    seen = None

    def on_change(session: ReviewSession) -> None:
        nonlocal seen
        outcome = session.last_outcome
        if outcome is None or outcome is seen:
            return
        seen = outcome
        if outcome.credited:
            typer.secho(
                f"Review recorded ({outcome.review_count}/{STAGE_COUNT}).", fg="green"
            )
        elif not outcome.due:
            typer.secho("Viewed (not due, progress unchanged).", fg="yellow")

    return on_change


async def run_review(
    repository: CardRepository,
    config: ReviewConfig,
    generator: QuestionGenerator | None = None,
    interval: float = TICK_INTERVAL,
    read_command: ReadCommand | None = None,
) -> ReviewSession:
    """Run a review pass until the user quits. Returns the closed session."""
    read = read_command or _read_line
    session = ReviewSession(repository, config, generator)
    runner = ReviewRunner(session, interval=interval, on_change=_announcer())
    editor = ProgressEditor(repository)

    if runner.start() is SessionState.IDLE:
        typer.secho("No cards to review.", fg="yellow")
        runner.close()
        return session

    typer.echo(HELP_TEXT)
    render_card(session)

    try:
        while True:
            command = (await read()).strip().lower()
            if command in ("q", "quit", "exit"):
                break
            if command in ("", "n", "next"):
                if not runner.next():
                    typer.secho("This is the last card.", fg="yellow")
                    continue
            elif command in ("p", "prev"):
                if not runner.prev():
                    typer.secho("This is the first card.", fg="yellow")
                    continue
            elif command in ("f", "flip"):
                session.flip()
            elif command in ("c", "chart"):
                card = session.current_card
                print_stage_rows(card, editor.stage_rows(card))
                continue
            elif command in ("s", "status"):
                render_status(session)
                continue
            elif command.startswith("t "):
                _toggle(editor, session, command[2:].strip())
                continue
            else:
                typer.echo(HELP_TEXT)
                continue
            render_card(session)
    finally:
        runner.close()
        await runner.drain()

    return session


def _toggle(editor: ProgressEditor, session: ReviewSession, arg: str) -> None:
    card = session.current_card
    try:
        stage = int(arg)
    except ValueError:
        typer.secho(f"Not a stage number: {arg}", fg="red")
        return
    if not 1 <= stage <= STAGE_COUNT:
        typer.secho(f"Stage must be between 1 and {STAGE_COUNT}.", fg="red")
        return

    index = stage - 1
    result = editor.toggle_stage(card, index, index >= len(card.completed_at))
    if not result.ok:
        typer.secho(result.message, fg="yellow")
        return
    print_stage_rows(result.card, editor.stage_rows(result.card))
