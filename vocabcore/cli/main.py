"""
CLI entry point for vocabcore.
"""

# Standard library imports
import os
from pathlib import Path
from typing import List, Optional

# Third-party imports
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Local application imports
from vocabcore.config import settings
from vocabcore.db.database import VocabularyDatabase
from vocabcore.exceptions import DatabaseError, DuplicateWordIdError, ReviewError
from vocabcore.logging_config import setup_logging
from vocabcore.models import Bucket, Collection
from vocabcore.parser import load_collection_files
from vocabcore.review_manager import ReviewManager
from vocabcore.cli.match_ui import start_match_flow
from vocabcore.cli.review_ui import start_review_flow


console = Console()

app = typer.Typer(
    name="vocabcore",
    help="Vocabcore: bucket-based spaced repetition for vocabulary.",
    add_completion=False,
    rich_markup_mode="markdown",
)


@app.callback()
def _configure(
    log_level: Optional[str] = typer.Option(  # noqa: B008
        None,
        "--log-level",
        help="Logging level (defaults to VOCABCORE_LOG_LEVEL or WARNING).",
    ),
):
    setup_logging(log_level)


# ---------------------------------------------------------------------------
# Helpers for resolving the --db path (flag, VOCABCORE_DB, then settings)
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path]) -> Path:
    """Resolve db path from CLI flag, VOCABCORE_DB envvar or settings."""
    if db is not None:
        return db
    env_val = os.environ.get("VOCABCORE_DB")
    if env_val:
        return Path(env_val)
    return settings.db_path


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to VOCABCORE_DB env var, then ~/.vocabcore/vocab.db.",
    envvar="VOCABCORE_DB",
)

_limit_option = typer.Option(  # noqa: B008
    None,
    "--limit",
    "-l",
    min=1,
    help="Maximum number of words in the session "
    f"(default {settings.session_limit}).",
)


def _open_manager(db_inst: VocabularyDatabase) -> ReviewManager:
    manager = ReviewManager(db_inst)
    manager.load()
    return manager


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------


def _expand_paths(paths: List[Path]) -> List[Path]:
    """Replace directories by the YAML files they contain."""
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(
                sorted(list(path.rglob("*.yaml")) + list(path.rglob("*.yml")))
            )
        else:
            files.append(path)
    return files


def _report_ingestion_summary(collections: List[Collection], stored: int):
    console.print("[bold green]Ingestion complete![/bold green]")
    console.print(
        f"- [green]{len(collections)}[/green] collections stored "
        f"with [green]{stored}[/green] words."
    )


@app.command()
def ingest(
    files: List[Path] = typer.Argument(  # noqa: B008
        ..., help="YAML collection files or directories containing them."
    ),
    db: Optional[Path] = _db_option,
    reset_progress: bool = typer.Option(  # noqa: B008
        False,
        "--reset-progress",
        help="Store words as new instead of keeping their review progress.",
    ),
):
    """
    Load YAML collection files into the database.

    Words already stored in a collection keep their review progress unless
    `--reset-progress` is given.
    A collection reusing a word id stored in another collection is skipped
    and the command exits with code 1.
    """
    db_path = _resolve_db_path(db)
    yaml_files = _expand_paths(files)
    if not yaml_files:
        console.print("[yellow]No collection files found. Exiting.[/yellow]")
        raise typer.Exit(code=0)

    collections, errors = load_collection_files(yaml_files)
    if errors:
        console.print(
            "[bold red]Errors encountered during YAML processing:[/bold red]"
        )
        for error in errors:
            console.print(f"- {escape(str(error))}")
    if not collections:
        raise typer.Exit(code=1)

    stored_collections: List[Collection] = []
    rejected: List[DuplicateWordIdError] = []
    stored = 0
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            for collection in collections:
                try:
                    stored += db_inst.upsert_collection(
                        collection, preserve_retention=not reset_progress
                    )
                except DuplicateWordIdError as e:
                    rejected.append(e)
                    continue
                stored_collections.append(collection)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    for error in rejected:
        console.print(f"[bold red]Skipped:[/bold red] {escape(str(error))}")
    _report_ingestion_summary(stored_collections, stored)
    if rejected:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Stats helpers & command
# ---------------------------------------------------------------------------


def _display_bucket_stats(cons: Console, manager: ReviewManager):
    counts = manager.bucket_counts()
    table = Table(title="Words by Bucket", show_header=False)
    table.add_column("Bucket", style="cyan")
    table.add_column("Count", style="magenta")
    for bucket in Bucket:
        table.add_row(bucket.name, str(counts[bucket]))
    table.add_row("Due now", str(manager.due_count()), style="bold yellow")
    cons.print(table)


def _display_collection_stats(cons: Console, manager: ReviewManager):
    table = Table(title="Collections")
    table.add_column("Collection", style="cyan")
    table.add_column("Id", style="dim")
    table.add_column("List", style="green")
    table.add_column("Words", style="magenta")
    for collection in manager.repository:
        table.add_row(
            collection.title or collection.id,
            collection.id,
            collection.list_id or "-",
            str(len(collection.words)),
        )
    cons.print(table)


@app.command()
def stats(
    db: Optional[Path] = _db_option,
):
    """Display bucket counts, the due count and the stored collections."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            manager = _open_manager(db_inst)
            if not len(manager.repository):
                console.print(
                    "[yellow]No collections found in the database.[/yellow]"
                )
                return
            _display_bucket_stats(console, manager)
            _display_collection_stats(console, manager)
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


def _parse_bucket(value: Optional[str]) -> Optional[Bucket]:
    if value is None:
        return None
    for bucket in Bucket:
        if bucket.name.lower() == value.strip().lower():
            return bucket
    console.print(
        f"[bold red]Error: unknown bucket '{value}'. "
        "Use hard, medium, easy or new.[/bold red]"
    )
    raise typer.Exit(code=1)


@app.command()
def review(
    db: Optional[Path] = _db_option,
    limit: Optional[int] = _limit_option,
    bucket: Optional[str] = typer.Option(  # noqa: B008
        None,
        "--bucket",
        "-b",
        help="Drill every word of one bucket (hard, medium, easy, new).",
    ),
):
    """Review due words one card at a time."""
    db_path = _resolve_db_path(db)
    drill_bucket = _parse_bucket(bucket)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            manager = _open_manager(db_inst)
            if drill_bucket is not None:
                console.print(
                    "[bold cyan]Starting drill for bucket "
                    f"{drill_bucket.name}...[/bold cyan]"
                )
                session = manager.start_bucket_drill(drill_bucket)
            else:
                console.print(
                    "[bold cyan]Starting review session "
                    "for all due words...[/bold cyan]"
                )
                session = manager.start_review(limit=limit)
            start_review_flow(manager, session)
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e
    except ReviewError as e:
        console.print(f"[bold red]Review error:[/bold red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def match(
    db: Optional[Path] = _db_option,
    pairs: Optional[int] = typer.Option(  # noqa: B008
        None,
        "--pairs",
        "-p",
        min=1,
        help="Word pairs per game "
        f"(default {settings.pairs_per_game}).",
    ),
    limit: Optional[int] = typer.Option(  # noqa: B008
        None,
        "--limit",
        "-l",
        min=1,
        help="Stop offering new games after this many words.",
    ),
):
    """Play the memory-matching game on due words, then rate the found words."""
    db_path = _resolve_db_path(db)
    try:
        with VocabularyDatabase(db_path=db_path) as db_inst:
            manager = _open_manager(db_inst)
            start_match_flow(manager, pairs=pairs, limit=limit)
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e
    except ReviewError as e:
        console.print(f"[bold red]Review error:[/bold red] {e}")
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
