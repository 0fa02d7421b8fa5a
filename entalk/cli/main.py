"""
Typer CLI for the entalk deck service.

Commands:
    entalk db init                  - Initialize database tables
    entalk events add-location      - Register a venue
    entalk events locations         - List venues
    entalk events add               - Register an event
    entalk questions import         - Bulk import questions from JSON
    entalk questions list           - List an event's questions with counters
    entalk questions generate       - Generate questions for an event with the AI generator
    entalk deck generate            - Generate a deck for an event at a location
    entalk deck show                - Show a deck by access code
    entalk deck reconcile           - Re-apply a deck's usage history
    entalk feedback record          - Record a like/dislike
    entalk feedback view            - Count one view of a question card
    entalk feedback stats           - Per-question feedback summary for an event
    entalk categories               - List categories and deck phases
    entalk info                     - Show configuration

Usage:
    entalk --help
    entalk deck generate --event <event-id> --location <location-id>
"""

from __future__ import annotations

import uuid
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from entalk.decks.errors import DeckError, NotFoundError
from entalk.decks.models import (
    ALL_CATEGORIES,
    ALL_PHASES,
    Category,
    DeckPhase,
    Event,
    Location,
    parse_tag,
)
from entalk.logging_setup import configure_logging

app = typer.Typer(
    help="entalk: conversation question decks for events and venues",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings())


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """
    Dependency injection container for CLI commands.

    Stores and services are built once per command invocation and shared.
    """

    def __init__(self):
        self.settings = get_settings()
        self._question_store = None
        self._deck_store = None
        self._feedback_store = None
        self._event_directory = None
        self._generator = None
        self._assembler = None
        self._recorder = None

    @property
    def question_store(self):
        if self._question_store is None:
            from entalk.stores.sql import SqlQuestionStore

            self._question_store = SqlQuestionStore()
        return self._question_store

    @property
    def deck_store(self):
        if self._deck_store is None:
            from entalk.stores.sql import SqlDeckStore

            self._deck_store = SqlDeckStore()
        return self._deck_store

    @property
    def feedback_store(self):
        if self._feedback_store is None:
            from entalk.stores.sql import SqlFeedbackStore

            self._feedback_store = SqlFeedbackStore()
        return self._feedback_store

    @property
    def event_directory(self):
        if self._event_directory is None:
            from entalk.stores.sql import SqlEventDirectory

            self._event_directory = SqlEventDirectory()
        return self._event_directory

    @property
    def generator(self):
        if self._generator is None:
            from entalk.generation import build_question_generator

            self._generator = build_question_generator(self.settings)
        return self._generator

    @property
    def assembler(self):
        if self._assembler is None:
            from entalk.decks.assembler import DeckAssembler, DeckConfig

            self._assembler = DeckAssembler(
                question_store=self.question_store,
                deck_store=self.deck_store,
                event_directory=self.event_directory,
                generator=self.generator,
                config=DeckConfig.from_settings(self.settings),
            )
        return self._assembler

    @property
    def recorder(self):
        if self._recorder is None:
            from entalk.feedback import FeedbackRecorder

            self._recorder = FeedbackRecorder(self.question_store, self.feedback_store)
        return self._recorder


def _fail(error: Exception) -> None:
    logger.error(str(error))
    rprint(f"[red]✗[/red] {error}")
    raise typer.Exit(code=1)


# ========================================
# DB COMMANDS
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    from entalk.db.database import init_db

    init_db()
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# EVENT COMMANDS
# ========================================

events_app = typer.Typer(help="Events and locations")
app.add_typer(events_app, name="events")


@events_app.command("add-location")
def events_add_location(name: str = typer.Argument(..., help="Venue display name")) -> None:
    """Register a location."""
    ctx = CLIContext()
    location = ctx.event_directory.add_location(Location(id=str(uuid.uuid4()), name=name))
    rprint(f"[green]✓[/green] Location [bold]{location.name}[/bold]: {location.id}")


@events_app.command("locations")
def events_locations() -> None:
    """List registered locations."""
    ctx = CLIContext()
    table = Table(title="Locations")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    for location in ctx.event_directory.list_locations():
        table.add_row(location.id, location.name)
    console.print(table)


@events_app.command("add")
def events_add(
    name: str = typer.Argument(..., help="Event name (used as the question topic)"),
    user_id: str = typer.Option(..., "--user", "-u", help="Owning organizer id"),
    location_id: str = typer.Option(None, "--location", "-l", help="Default location id"),
    description: str = typer.Option(None, "--description", "-d"),
) -> None:
    """Register an event."""
    ctx = CLIContext()
    if location_id and ctx.event_directory.get_location(location_id) is None:
        _fail(NotFoundError("location", location_id))
    event = ctx.event_directory.add_event(
        Event(
            id=str(uuid.uuid4()),
            name=name,
            user_id=user_id,
            location_id=location_id,
            description=description,
        )
    )
    rprint(f"[green]✓[/green] Event [bold]{event.name}[/bold]: {event.id}")


# ========================================
# QUESTION COMMANDS
# ========================================

questions_app = typer.Typer(help="Question management")
app.add_typer(questions_app, name="questions")


@questions_app.command("import")
def questions_import(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file of questions"),
    event_id: str = typer.Option(..., "--event", "-e", help="Owning event id"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without inserting"),
) -> None:
    """Bulk import questions from a JSON file."""
    from entalk.content import QuestionImporter

    ctx = CLIContext()
    if ctx.event_directory.get_event(event_id) is None:
        _fail(NotFoundError("event", event_id))

    try:
        result = QuestionImporter(ctx.question_store, dry_run=dry_run).import_file(path, event_id)
    except (ValueError, OSError) as e:
        # JSONDecodeError is a ValueError
        _fail(e)

    rprint(
        f"[green]✓[/green] Parsed {result.total_parsed}, imported {result.total_imported}, "
        f"skipped {result.skipped}"
    )
    for error in result.errors[:20]:
        rprint(f"  [yellow]⚠[/yellow] {error}")


@questions_app.command("list")
def questions_list(event_id: str = typer.Option(..., "--event", "-e")) -> None:
    """List an event's questions with performance counters."""
    ctx = CLIContext()
    questions = ctx.question_store.find_by_event(event_id)

    table = Table(title=f"Questions ({len(questions)})")
    table.add_column("ID", style="dim", no_wrap=True, min_width=36)
    table.add_column("Category", style="cyan")
    table.add_column("Phase", style="magenta")
    table.add_column("Text")
    table.add_column("Views", justify="right")
    table.add_column("👍", justify="right")
    table.add_column("👎", justify="right")
    table.add_column("Novelty", justify="center")

    for q in questions:
        table.add_row(
            q.id,
            q.category.value,
            q.deck_phase.value,
            q.text,
            str(q.performance.views),
            str(q.performance.likes),
            str(q.performance.dislikes),
            "✓" if q.is_novelty else "",
        )
    console.print(table)


@questions_app.command("generate")
def questions_generate(
    event_id: str = typer.Option(..., "--event", "-e", help="Owning event id"),
    count: int = typer.Option(5, "--count", "-n", min=1, help="Number of questions"),
    categories: list[str] = typer.Option(
        None, "--category", "-c", help="Category to aim for (repeatable; default all)"
    ),
    phases: list[str] = typer.Option(
        None, "--phase", "-p", help="Deck phase to aim for (repeatable; default all)"
    ),
    novelty: bool = typer.Option(False, "--novelty", help="Unusual free-standing questions"),
    topic: str = typer.Option(None, "--topic", "-t", help="Topic (default: event name)"),
) -> None:
    """Generate questions for an event and add them to its pool."""
    from entalk.content import QuestionAuthor

    try:
        wanted_categories = [parse_tag(Category, c) for c in categories or []]
        wanted_phases = [parse_tag(DeckPhase, p) for p in phases or []]
    except ValueError as e:
        _fail(e)

    ctx = CLIContext()
    author = QuestionAuthor(ctx.question_store, ctx.event_directory, ctx.generator)
    try:
        created = author.generate_for_event(
            event_id,
            count,
            categories=wanted_categories,
            phases=wanted_phases,
            novelty=novelty,
            topic=topic,
        )
    except (DeckError, ValueError) as e:
        _fail(e)

    table = Table(title=f"Generated questions ({len(created)})")
    table.add_column("Category", style="cyan")
    table.add_column("Phase", style="magenta")
    table.add_column("Text")
    for q in created:
        table.add_row(q.category.value, q.deck_phase.value, q.text)
    console.print(table)
    rprint(f"[green]✓[/green] Added {len(created)} questions to event {event_id}")


# ========================================
# DECK COMMANDS
# ========================================

deck_app = typer.Typer(help="Deck generation and lookup")
app.add_typer(deck_app, name="deck")


def _print_deck(ctx: CLIContext, access_code: str) -> None:
    deck = ctx.assembler.get_deck(access_code)
    questions = ctx.assembler.get_deck_questions(access_code)

    table = Table(title=f"Deck {deck.access_code} ({deck.size} questions)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Phase", style="magenta")
    table.add_column("Question")
    for i, q in enumerate(questions, start=1):
        table.add_row(str(i), q.category.value, q.deck_phase.value, q.text)
    console.print(table)


@deck_app.command("generate")
def deck_generate(
    event_id: str = typer.Option(..., "--event", "-e", help="Event id"),
    location_id: str = typer.Option(..., "--location", "-l", help="Location id"),
) -> None:
    """Generate a deck for an event at a location."""
    ctx = CLIContext()
    try:
        deck = ctx.assembler.generate_deck(location_id, event_id)
        _print_deck(ctx, deck.access_code)
    except DeckError as e:
        _fail(e)
    rprint(f"[green]✓[/green] Access code: [bold]{deck.access_code}[/bold]")


@deck_app.command("show")
def deck_show(access_code: str = typer.Argument(..., help="Deck access code")) -> None:
    """Show a deck by access code."""
    ctx = CLIContext()
    try:
        _print_deck(ctx, access_code)
    except DeckError as e:
        _fail(e)


@deck_app.command("reconcile")
def deck_reconcile(access_code: str = typer.Argument(..., help="Deck access code")) -> None:
    """Re-apply a deck's usage history after an interrupted generation."""
    ctx = CLIContext()
    try:
        deck = ctx.assembler.reconcile_deck_usage(access_code)
    except DeckError as e:
        _fail(e)
    rprint(f"[green]✓[/green] Usage reconciled for {deck.size} questions")


# ========================================
# FEEDBACK COMMANDS
# ========================================

feedback_app = typer.Typer(help="Participant feedback")
app.add_typer(feedback_app, name="feedback")


@feedback_app.command("record")
def feedback_record(
    question_id: str = typer.Option(..., "--question", "-q"),
    event_id: str = typer.Option(..., "--event", "-e"),
    location_id: str = typer.Option(..., "--location", "-l"),
    kind: str = typer.Option(..., "--kind", "-k", help="like or dislike"),
    participant_id: str = typer.Option(None, "--participant", "-p"),
) -> None:
    """Record a like/dislike for a question."""
    ctx = CLIContext()
    try:
        feedback = ctx.recorder.record(question_id, event_id, location_id, kind, participant_id)
    except (DeckError, ValueError) as e:
        _fail(e)
    rprint(f"[green]✓[/green] Recorded {feedback.kind.value}")


@feedback_app.command("view")
def feedback_view(question_id: str = typer.Option(..., "--question", "-q")) -> None:
    """Count one participant seeing a question card."""
    ctx = CLIContext()
    try:
        ctx.recorder.record_view(question_id)
    except DeckError as e:
        _fail(e)
    rprint(f"[green]✓[/green] View recorded for {question_id}")


@feedback_app.command("stats")
def feedback_stats(event_id: str = typer.Option(..., "--event", "-e")) -> None:
    """Per-question feedback summary for an event."""
    ctx = CLIContext()
    stats = ctx.recorder.event_summary(event_id)

    table = Table(title="Feedback")
    table.add_column("Question")
    table.add_column("👍", justify="right", style="green")
    table.add_column("👎", justify="right", style="red")
    table.add_column("Total", justify="right")
    table.add_column("Like rate", justify="right")
    for row in stats:
        table.add_row(
            row.text, str(row.likes), str(row.dislikes), str(row.total), f"{row.like_rate:.0%}"
        )
    console.print(table)


# ========================================
# INFO COMMANDS
# ========================================


@app.command("categories")
def show_categories() -> None:
    """List question categories and deck phases."""
    table = Table(title="Categories")
    table.add_column("Category", style="cyan")
    table.add_column("Description")
    for category in ALL_CATEGORIES:
        table.add_row(category.value, category.description)
    console.print(table)

    table = Table(title="Deck Phases")
    table.add_column("Phase", style="magenta")
    table.add_column("Description")
    for phase in ALL_PHASES:
        table.add_row(phase.value, phase.description)
    console.print(table)


@app.command("info")
def show_info() -> None:
    """Show configuration."""
    settings = get_settings()

    table = Table(title="entalk Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Database URL", settings.database_url)
    table.add_row("Gemini API Key", "***" if settings.gemini_api_key else "Not set")
    table.add_row("AI Model", settings.ai_model)
    table.add_row("AI Timeout (s)", str(settings.ai_timeout_seconds))
    for key, value in settings.get_deck_config().items():
        table.add_row(f"Deck {key}", str(value))
    for key, value in settings.get_score_config().items():
        table.add_row(f"Score {key}", str(value))
    table.add_row("Log Level", settings.log_level)

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
