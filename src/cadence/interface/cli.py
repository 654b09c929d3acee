"""Cadence CLI: deck scheduling commands and the interactive review loop."""

import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Annotated

import typer

from cadence.application.config import resolve_config
from cadence.application.deck_scheduler import DeckScheduler, count_by_state
from cadence.application.difficulty import Difficulty, DifficultyAnalyzer, calculate_retention
from cadence.application.grader import ReviewGrader
from cadence.application.session import ReviewSession, SessionPhase, SessionStats
from cadence.domain.errors import SchedulingError, ValidationError
from cadence.domain.srs.models import CardState, LearningState, ReviewRating
from cadence.interface._common import _open_repository, fail

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cadence: SM-2 spaced-repetition scheduler.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage cadence configuration.")
app.add_typer(config_app, name="config")

DeckOption = Annotated[
    Path | None,
    typer.Option("--deck", "-d", help="Path to the YAML deck file. Defaults to config."),
]

RATING_PROMPT = "Rating (1=Again, 2=Hard, 3=Good, 4=Easy)"


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for cadence."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


def _verbosity(ctx: typer.Context) -> int:
    return (ctx.obj or {}).get("verbose_bonus", 1)


def _services(config) -> tuple[ReviewGrader, DeckScheduler, DifficultyAnalyzer]:
    tuning = config.tuning()
    grader = ReviewGrader(tuning)
    return grader, DeckScheduler(grader), DifficultyAnalyzer(tuning)


# ---------------------------------------------------------------------------
# Deck commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    card_ids: Annotated[list[str], typer.Argument(help="Ids of the cards to create.")],
    deck: DeckOption = None,
):
    """Create [bold green]new[/bold green] cards, due today."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    today = date.today()
    try:
        new_cards = [
            CardState.new(cid, today=today, ease_factor=config.default_ease_factor)
            for cid in card_ids
        ]
        added = repo.add_cards(new_cards)
    except SchedulingError as e:
        fail(e)

    typer.secho(f"Added {len(added)} card(s) to {config.deck_path}.", fg="green")
    skipped = len(card_ids) - len(added)
    if skipped:
        typer.secho(f"Skipped {skipped} existing card(s).", fg="yellow")


@app.command()
def due(
    ctx: typer.Context,
    deck: DeckOption = None,
    limit: Annotated[int | None, typer.Option(help="Maximum cards to list.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List cards due today in study order."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    _, scheduler, _ = _services(config)
    try:
        cards = repo.load_cards()
    except SchedulingError as e:
        fail(e)

    queue = scheduler.due_cards(cards, limit=limit or config.due_limit)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": c.id,
                        "state": c.learning_state.value,
                        "due_date": c.due_date.isoformat() if c.due_date else None,
                        "interval": c.interval,
                    }
                    for c in queue
                ],
                indent=2,
            )
        )
        return

    if not queue:
        typer.secho("No cards due.", fg="green")
        return

    counts = count_by_state(queue)
    typer.echo(
        "Due: "
        + "  ".join(f"{state.value}={n}" for state, n in counts.items() if n)
    )
    for i, card in enumerate(queue, start=1):
        due_str = card.due_date.isoformat() if card.due_date else "now"
        typer.echo(f"{i:>3}. {card.id}  [{card.learning_state.value}]  due {due_str}")


@app.command()
def grade(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to grade.")],
    rating: Annotated[str, typer.Argument(help="1-4 or again/hard/good/easy.")],
    deck: DeckOption = None,
):
    """Grade a single card and persist its next schedule."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    grader, _, _ = _services(config)
    try:
        parsed = ReviewRating.parse(rating)
        card = repo.get_card(card_id)
        session = ReviewSession([card], grader=grader, repository=repo)
        session.flip()
        graded = session.rate(parsed)
    except SchedulingError as e:
        fail(e)

    typer.echo(
        f"{graded.id}: {parsed.name.title()} -> next review {graded.due_date.isoformat()} "
        f"(interval {graded.interval}d, ease {graded.ease_factor:.2f}, "
        f"{graded.learning_state.value})"
    )


@app.command()
def review(
    ctx: typer.Context,
    deck: DeckOption = None,
    limit: Annotated[int | None, typer.Option(help="Maximum cards in this session.")] = None,
):
    """Run an [bold]interactive[/bold] review session over today's due cards."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    grader, scheduler, _ = _services(config)
    try:
        queue = scheduler.due_cards(repo.load_cards(), limit=limit or config.due_limit)
    except SchedulingError as e:
        fail(e)

    if not queue:
        typer.secho("Nothing to review. Come back later!", fg="green")
        return

    session = ReviewSession(queue, grader=grader, repository=repo)

    while session.phase != SessionPhase.COMPLETE:
        card = session.current_card
        typer.echo(f"\n[{session.index + 1}/{len(queue)}] {card.id}  ({card.learning_state.value})")

        action = typer.prompt(
            "Enter to reveal, n/p to navigate, q to quit", default="", show_default=False
        ).strip().lower()

        if action == "q":
            typer.secho(f"Session stopped. {len(session.ratings)} card(s) saved.", fg="yellow")
            raise typer.Exit()
        if action == "n":
            session.next()
            continue
        if action == "p":
            session.previous()
            continue
        if card.id in session.ratings:
            typer.secho("Already rated in this session. Use n/p to move on.", fg="yellow")
            continue

        session.flip()
        while True:
            try:
                rating = ReviewRating.parse(typer.prompt(RATING_PROMPT))
                break
            except ValidationError as e:
                typer.secho(str(e), fg="red")

        graded = session.rate(rating)
        typer.echo(f"  next review {graded.due_date.isoformat()} ({graded.interval}d)")

    _print_stats(session.stats)


def _print_stats(stats: SessionStats) -> None:
    typer.secho("\nReview complete!", fg="green", bold=True)
    typer.echo(f"Reviewed: {stats.total_reviewed}")
    typer.echo(f"Average rating: {stats.average_rating:.1f}")
    typer.echo(f"Accuracy: {stats.accuracy:.0f}% ({stats.correct_count} Good or better)")
    typer.echo(f"Time: {int(stats.elapsed.total_seconds())}s")
    for rating, count in stats.histogram.items():
        typer.echo(f"  {rating.value}: {rating.name.title():<6} {count}")


@app.command()
def forecast(
    ctx: typer.Context,
    deck: DeckOption = None,
    days: Annotated[int | None, typer.Option(help="Forecast horizon in days.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show how many reviews fall due on each upcoming day."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    _, scheduler, _ = _services(config)
    try:
        cards = repo.load_cards()
    except SchedulingError as e:
        fail(e)

    workload = scheduler.forecast_workload(cards, days or config.forecast_days)

    if json_output:
        typer.echo(json.dumps({d.isoformat(): n for d, n in workload.items()}, indent=2))
        return

    for day, count in workload.items():
        typer.echo(f"{day.isoformat()}  {count:>4}  {'#' * min(count, 50)}")


@app.command()
def plan(
    ctx: typer.Context,
    deck: DeckOption = None,
    new_cards: Annotated[
        int | None,
        typer.Option("--new-cards", help="New cards to study. Defaults to the recommendation."),
    ] = None,
):
    """Suggest today's new-card count and study sessions."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    _, scheduler, _ = _services(config)
    try:
        cards = repo.load_cards()
    except SchedulingError as e:
        fail(e)

    reviews_due = sum(
        1 for c in scheduler.due_cards(cards) if c.learning_state != LearningState.NEW
    )
    recommended = scheduler.get_recommended_new_cards(
        reviews_due, config.target_daily_minutes, config.avg_minutes_per_card
    )
    target = recommended if new_cards is None else new_cards
    study = scheduler.suggest_study_time(reviews_due, target, config.avg_minutes_per_card)

    typer.echo(f"Reviews due: {reviews_due}")
    typer.echo(f"Recommended new cards: {recommended}")
    typer.echo(f"Estimated time: {study.estimated_minutes:g} min")
    for session in study.sessions:
        typer.echo(f"  {session.start}  {session.duration:g} min")


@app.command()
def leeches(
    ctx: typer.Context,
    deck: DeckOption = None,
):
    """Flag leeches and cards that are struggling."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    _, _, analyzer = _services(config)
    try:
        cards = repo.load_cards()
    except SchedulingError as e:
        fail(e)

    leech_ids = set(analyzer.find_leeches(cards))
    struggling = 0
    for card in cards:
        report = analyzer.analyze_card(card)
        weak = report.difficulty in (Difficulty.HARD, Difficulty.VERY_HARD)
        if card.id not in leech_ids and not weak:
            continue
        struggling += 1
        colour = "red" if report.is_leech else "yellow"
        retention = calculate_retention(card.total_reviews, card.correct_reviews)
        typer.secho(
            f"{card.id}  [{report.difficulty.value}]  lapses={card.lapses}  "
            f"retention={retention:.0f}%",
            fg=colour,
        )
        typer.echo(f"  {report.recommendation}")

    if not struggling:
        typer.secho("No struggling cards.", fg="green")
    if leech_ids:
        raise typer.Exit(1)


@app.command()
def maturity(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to inspect.")],
    deck: DeckOption = None,
):
    """Estimate when a card matures and when to review it next."""
    config, repo = _open_repository(deck, _verbosity(ctx))
    _, scheduler, _ = _services(config)
    try:
        card = repo.get_card(card_id)
    except SchedulingError as e:
        fail(e)

    days = scheduler.estimate_maturity_time(card.params)
    typer.echo(f"{card.id}: mature in ~{days} day(s) if every review is Good")

    if card.last_reviewed is not None and card.interval > 0:
        window = scheduler.get_optimal_review_time(card.interval, today=card.last_reviewed.date())
        typer.echo(
            f"Best review: {window.optimal:%Y-%m-%d %H:%M} "
            f"(acceptable {window.start:%Y-%m-%d} to {window.end:%Y-%m-%d})"
        )


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Start the scheduling HTTP API."""
    import uvicorn

    uvicorn.run("cadence.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


def main():
    app()
