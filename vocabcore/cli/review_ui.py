"""
Command-line interface for reviewing words one card at a time.
"""

import logging
from typing import List, Optional

from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vocabcore.exceptions import InvalidRatingError
from vocabcore.models import Conjugation, Rating
from vocabcore.review_manager import ReviewManager
from vocabcore.review_session import CardView, SequentialReviewSession

logger = logging.getLogger(__name__)
console = Console()

_SHORTCUTS = {"h": "hard", "m": "medium", "e": "easy"}
QUIT = "q"


def get_user_rating() -> Optional[Rating]:
    """
    Prompt until a valid rating is entered.

    Accepts 1-3, a rating name or its first letter. Returns None when the
    user asks to quit.
    """
    while True:
        answer = console.input(
            "[bold]Rating (1:Hard, 2:Medium, 3:Easy, q:Quit): [/bold]"
        ).strip().lower()
        if answer == QUIT:
            return None
        try:
            return Rating.parse(_SHORTCUTS.get(answer, answer))
        except InvalidRatingError:
            console.print(
                "[bold red]Invalid rating. Enter 1, 2 or 3 "
                "(or h, m, e).[/bold red]"
            )


def conjugation_table(conjugation: Conjugation) -> Table:
    title = conjugation.infinitive or "Conjugation"
    if conjugation.translation:
        title = f"{title} ({conjugation.translation})"
    table = Table(title=escape(title), show_header=False)
    table.add_column("Person", style="cyan")
    table.add_column("Form", style="magenta")
    for section in conjugation.sections:
        table.add_row(f"[bold]{escape(section.title)}[/bold]", "")
        for left, right in section.rows:
            table.add_row(escape(left), escape(right))
    return table


def _render_back(view: CardView) -> Panel:
    parts: List[RenderableType] = [f"[bold]{escape(view.target or '')}[/bold]"]
    if view.explanation:
        parts.append(escape(view.explanation))
    if view.example:
        parts.append(f"[italic]{escape(view.example)}[/italic]")
    if view.conjugation is not None:
        parts.append(conjugation_table(view.conjugation))
    return Panel(Group(*parts), title=escape(view.source), border_style="blue")


def start_review_flow(
    manager: ReviewManager, session: SequentialReviewSession
) -> None:
    """
    Run a started session card by card.

    Writes run synchronously on this thread: a rating is saved once the
    next card's front is on screen, the last ones when the summary is
    printed. Storage failures are retried and reported, never raised.

    Args:
        manager: Owner of the write queue that persists the ratings.
        session: A session returned by one of the manager's start methods.
    """
    if session.is_done:
        console.print("[bold yellow]No words are due for review.[/bold yellow]")
        console.print("[bold cyan]Review session finished.[/bold cyan]")
        return

    while not session.is_done:
        console.rule(
            f"[bold]Card {session.position + 1} of {session.total}[/bold]"
        )
        front = session.front()
        console.print(
            Panel(escape(front.source), title="Front", border_style="green")
        )
        manager.flush()
        console.input("[italic]Press Enter to see the answer...[/italic]")
        console.print(_render_back(session.reveal()))

        rating = get_user_rating()
        if rating is None:
            session.close()
            break

        result = session.rate(rating)
        console.print(
            f"[green]Rated {result.rating.name}.[/green] Now in bucket "
            f"[bold]{result.after.bucket.name}[/bold], next review "
            f"{result.after.next_review_at:%Y-%m-%d %H:%M} UTC."
        )
        console.print("")

    _print_summary(manager, session)


def _print_summary(manager: ReviewManager, session: SequentialReviewSession):
    stats = session.stats()
    console.print(
        f"[bold cyan]Review session finished.[/bold cyan] "
        f"Reviewed {stats['reviewed']} of {stats['total']} "
        f"(hard {stats['hard']}, medium {stats['medium']}, easy {stats['easy']})."
    )
    report_unsaved(manager)


def report_unsaved(manager: ReviewManager) -> None:
    """Retry queued writes until they succeed or run out of attempts."""
    manager.write_queue.drain()
    failed = [job.collection_id for job in manager.write_queue.failed]
    if failed:
        logger.error(f"Unsaved collections after review: {failed}")
        console.print(
            "[bold red]Progress for these collections could not be saved: "
            f"{', '.join(failed)}[/bold red]"
        )
