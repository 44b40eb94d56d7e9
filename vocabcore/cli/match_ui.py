"""
Command-line interface for the memory-matching game.
"""

import logging
import time
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vocabcore.cli.review_ui import get_user_rating, report_unsaved
from vocabcore.exceptions import UnknownCardError
from vocabcore.matching import CardState, FlipResult, MatchingSession
from vocabcore.review_manager import ReviewManager

logger = logging.getLogger(__name__)
console = Console()

BOARD_COLUMNS = 4


def render_board(session: MatchingSession) -> Table:
    """Cards numbered from 1, laid out in rows of BOARD_COLUMNS."""
    table = Table(show_header=False, show_lines=True)
    for _ in range(BOARD_COLUMNS):
        table.add_column(justify="center", min_width=12)

    cells = []
    for number, (card, state) in enumerate(session.board(), start=1):
        if state is CardState.FACE_UP:
            cells.append(f"[bold yellow]{number}. {escape(card.text)}[/bold yellow]")
        elif state is CardState.CLEARED:
            cells.append(f"[dim]{number}. {escape(card.text)}[/dim]")
        else:
            cells.append(f"{number}. ?")
    for start in range(0, len(cells), BOARD_COLUMNS):
        row = cells[start : start + BOARD_COLUMNS]
        row += [""] * (BOARD_COLUMNS - len(row))
        table.add_row(*row)
    return table


def _card_key(session: MatchingSession, answer: str) -> Optional[str]:
    try:
        number = int(answer)
    except ValueError:
        return None
    if 1 <= number <= len(session.deck):
        return session.deck[number - 1].key
    return None


def play_game(
    session: MatchingSession, sleep: Callable[[float], None] = time.sleep
) -> bool:
    """
    Let the player flip cards until every pair is found.

    Returns:
        bool: False if the player quit before winning.
    """
    while not session.is_won:
        console.print(render_board(session))
        answer = console.input(
            f"[bold]Card number (moves: {session.moves}, q:Quit): [/bold]"
        ).strip().lower()
        if answer == "q":
            return False
        key = _card_key(session, answer)
        if key is None:
            console.print("[bold red]Enter the number of a card.[/bold red]")
            continue
        try:
            result = session.flip(key)
        except UnknownCardError as e:
            logger.error(f"Board out of sync: {e}")
            continue

        if result is FlipResult.IGNORED:
            console.print("[yellow]That card cannot be flipped now.[/yellow]")
        elif result is FlipResult.MATCH:
            pair = session.found_pairs()[-1]
            console.print(
                f"[green]Match![/green] {escape(pair.source)} = {escape(pair.target)}"
            )
        elif result is FlipResult.MISMATCH:
            console.print(render_board(session))
            console.print("[red]No match.[/red]")
            sleep(session.mismatch_delay.total_seconds())
            session.resolve_pending(force=True)

    console.print(
        f"[bold green]All {len(session.found)} pairs found "
        f"in {session.moves} moves![/bold green]"
    )
    return True


def rating_round(manager: ReviewManager, session: MatchingSession) -> None:
    """
    Ask for one rating per found word, in the order they were found.

    The previous rating is saved once the next word is on screen.
    """
    for pair_key in session.found:
        if session.is_rated(pair_key):
            continue
        pair = session.entries[pair_key].word_pair
        body = escape(pair.target)
        if pair.explanation:
            body = f"{body}\n{escape(pair.explanation)}"
        console.print(Panel(body, title=escape(pair.source), border_style="blue"))
        manager.flush()
        rating = get_user_rating()
        if rating is None:
            return
        result = session.rate(pair_key, rating)
        console.print(
            f"[green]Rated {result.rating.name}.[/green] Now in bucket "
            f"[bold]{result.after.bucket.name}[/bold]."
        )


def start_match_flow(
    manager: ReviewManager,
    pairs: Optional[int] = None,
    limit: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Play games on the due set until the player stops or nothing is due.

    Args:
        manager: Source of due words and owner of the write queue.
        pairs: Word pairs per game; defaults to the configured size.
        limit: Stop offering games after this many words were played.
        sleep: How a displayed mismatch waits out its delay.

    Raises:
        ValueError: If ``pairs`` or ``limit`` is below 1.
    """
    if (pairs is not None and pairs < 1) or (limit is not None and limit < 1):
        raise ValueError("pairs and limit must be at least 1.")
    game_size = pairs or manager.settings.pairs_per_game
    played = 0
    while True:
        size = game_size if limit is None else min(game_size, limit - played)
        session = manager.start_matching(limit=size)
        if not session.entries:
            console.print("[bold yellow]No words are due for review.[/bold yellow]")
            break

        if not play_game(session, sleep):
            console.print("[yellow]Game abandoned.[/yellow]")
            break
        rating_round(manager, session)
        manager.flush()
        if not session.is_complete:
            break

        played += len(session.entries)
        remaining = manager.due_count()
        if remaining == 0 or (limit is not None and played >= limit):
            break
        if not typer.confirm(
            f"{remaining} words are still due. Play another game?",
            default=True,
        ):
            break

    report_unsaved(manager)
    console.print("[bold cyan]Matching finished. Well done![/bold cyan]")
