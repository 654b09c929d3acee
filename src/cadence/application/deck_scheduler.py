"""
Deck-level scheduling over a snapshot of card states.

Orders due cards into a study queue, forecasts the daily workload and
suggests how much to study. Every operation is read-only over the
caller's snapshot, so re-running against fresher data is always safe.
"""

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from cadence.application.grader import ReviewGrader, round_half_up
from cadence.domain import constants
from cadence.domain.errors import ValidationError
from cadence.domain.srs.models import CardState, LearningState, ReviewRating, SM2Parameters

logger = logging.getLogger(__name__)

# Cards mid-learning always come before reviews and new cards.
STATE_PRIORITY = {
    LearningState.LEARNING: 0,
    LearningState.RELEARNING: 1,
    LearningState.REVIEW: 2,
    LearningState.NEW: 3,
}


@dataclass(frozen=True)
class StudySession:
    start: str  # HH:MM
    duration: float  # minutes


@dataclass(frozen=True)
class StudyPlan:
    """Suggested split of the day's workload. Advisory only."""

    estimated_minutes: float
    sessions: list[StudySession]


@dataclass(frozen=True)
class ReviewWindow:
    optimal: datetime
    start: datetime
    end: datetime


class DeckScheduler:
    """
    Batch operations over many CardStates.

    Stateless; the grader is only used to simulate future reviews.
    """

    def __init__(self, grader: ReviewGrader | None = None):
        self.grader = grader or ReviewGrader()

    def prioritize(self, cards: Iterable[CardState]) -> list[str]:
        """
        Order cards for study and return their ids.

        Sort key is (state priority, due date). Cards with no due date sort
        first within their state. Ties keep input order.
        """
        ordered = sorted(cards, key=_priority_key)
        return [card.id for card in ordered]

    def due_cards(
        self,
        cards: Iterable[CardState],
        today: date | None = None,
        limit: int | None = None,
    ) -> list[CardState]:
        """
        Cards due on or before today, in priority order, capped at limit.
        """
        today = today or date.today()
        due = sorted((c for c in cards if c.is_due(today)), key=_priority_key)
        if limit is not None:
            due = due[: max(0, limit)]
        return due

    def forecast_workload(
        self,
        cards: Iterable[CardState],
        days: int = constants.DEFAULT_FORECAST_DAYS,
        today: date | None = None,
    ) -> dict[date, int]:
        """
        Count cards due on each of the next `days` days, today included.

        The map is dense: every day of the horizon is present, zero if
        nothing is due. Cards due outside the horizon are not counted.
        """
        today = today or date.today()
        forecast = {today + timedelta(days=i): 0 for i in range(max(0, days))}

        for card in cards:
            if card.due_date is None:
                continue
            if card.due_date in forecast:
                forecast[card.due_date] += 1

        return forecast

    def suggest_study_time(
        self,
        due_count: int,
        new_cards_target: int,
        avg_time_per_card: float = constants.DEFAULT_MINUTES_PER_CARD,
    ) -> StudyPlan:
        """
        Estimate study minutes and split them into sessions of at most 30 minutes.

        Up to 30 minutes is a single morning session; up to 60 adds an
        afternoon remainder; beyond that, at most five sessions at fixed
        times of day.
        """
        estimated = (due_count + new_cards_target) * avg_time_per_card
        limit = constants.MAX_SESSION_MINUTES
        times = constants.SESSION_START_TIMES
        sessions: list[StudySession] = []

        if estimated <= limit:
            sessions.append(StudySession(start=times[0], duration=estimated))
        elif estimated <= 2 * limit:
            sessions.append(StudySession(start=times[0], duration=limit))
            sessions.append(StudySession(start=times[2], duration=estimated - limit))
        else:
            session_count = math.ceil(estimated / limit)
            for i in range(min(session_count, len(times))):
                sessions.append(
                    StudySession(start=times[i], duration=min(limit, estimated - i * limit))
                )

        return StudyPlan(estimated_minutes=estimated, sessions=sessions)

    def get_recommended_new_cards(
        self,
        current_review_count: int,
        target_daily_time: float = constants.DEFAULT_TARGET_DAILY_MINUTES,
        avg_time_per_card: float = constants.DEFAULT_MINUTES_PER_CARD,
    ) -> int:
        """
        How many new cards fit in today's time budget after reviews.

        New cards are budgeted at twice the per-card time. Result is in [0, 20].
        """
        if avg_time_per_card <= 0:
            raise ValidationError(f"avg_time_per_card must be positive, got {avg_time_per_card}")

        review_time = current_review_count * avg_time_per_card
        remaining = max(0.0, target_daily_time - review_time)
        new_cards = math.floor(remaining / (avg_time_per_card * 2))

        return max(0, min(constants.MAX_NEW_CARDS_PER_DAY, new_cards))

    def estimate_maturity_time(self, params: SM2Parameters) -> int:
        """
        Days until the card reaches a mature interval if every review is Good.

        Replays the Good branch, summing intervals, until the interval reaches
        the mature threshold or the sum passes the safety cap. The Good branch
        is deterministic, so one run gives the average of any number of runs.
        """
        tuning = self.grader.tuning
        current = params
        days = 0
        today = date.today()

        while current.interval < tuning.mature_interval:
            current = self.grader.calculate(ReviewRating.GOOD, current, today=today)
            days += current.interval
            if days > tuning.maturity_cap_days:
                logger.debug(f"Maturity simulation hit the {tuning.maturity_cap_days}-day cap")
                break

        return days

    def get_optimal_review_time(self, interval: int, today: date | None = None) -> ReviewWindow:
        """
        Best moment to review a card scheduled `interval` days out.

        The optimal time is in the morning of the due day; the acceptable
        window spans 20% of the interval (at least one day) on either side.
        """
        today = today or date.today()
        optimal = datetime.combine(
            today + timedelta(days=interval), time(hour=constants.OPTIMAL_REVIEW_HOUR)
        )
        window = timedelta(days=max(1, round_half_up(interval * constants.REVIEW_WINDOW_RATIO)))
        return ReviewWindow(optimal=optimal, start=optimal - window, end=optimal + window)


def _priority_key(card: CardState) -> tuple[int, date]:
    priority = STATE_PRIORITY.get(card.learning_state, STATE_PRIORITY[LearningState.NEW])
    return priority, card.due_date or date.min


def count_by_state(cards: Sequence[CardState]) -> dict[LearningState, int]:
    counts = {state: 0 for state in LearningState}
    for card in cards:
        counts[card.learning_state] += 1
    return counts
