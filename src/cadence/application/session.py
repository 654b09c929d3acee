"""
Review session: one study pass over a pre-ordered queue of cards.

Phases:
    AWAITING_FLIP -> AWAITING_RATING -> (AWAITING_FLIP | COMPLETE)

The session grades each rated card through ReviewGrader and, when a
repository is attached, persists the new state before advancing so a
crash loses at most the card currently on screen.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from cadence.application.grader import ReviewGrader
from cadence.domain.errors import InvalidStateTransition
from cadence.domain.srs.models import CardState, ReviewRating, ReviewRecord
from cadence.domain.srs.ports import CardRepository

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    AWAITING_FLIP = "awaiting_flip"
    AWAITING_RATING = "awaiting_rating"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SessionStats:
    """
    Summary of a completed session. Ephemeral, never persisted.

    Attributes:
        total_reviewed: Number of cards rated.
        average_rating: Mean rating value (0.0 if nothing was rated).
        correct_count: Ratings of Good or better.
        accuracy: correct_count as a percentage of total_reviewed.
        elapsed: Wall-clock time since the session (re)started.
        histogram: Count per rating, every rating present.
    """

    total_reviewed: int
    average_rating: float
    correct_count: int
    accuracy: float
    elapsed: timedelta
    histogram: dict[ReviewRating, int]


class ReviewSession:
    """
    Single-owner state machine driving one pass over a study queue.

    Not safe for concurrent use; create one instance per learner session.
    """

    def __init__(
        self,
        cards: Sequence[CardState],
        grader: ReviewGrader | None = None,
        repository: CardRepository | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.cards = list(cards)
        self.grader = grader or ReviewGrader()
        self.repository = repository
        self._clock = clock
        self._stats: SessionStats | None = None
        self.graded: dict[str, CardState] = {}
        self.restart()

    # ---------- Read-only views ----------

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def index(self) -> int:
        return self._index

    @property
    def current_card(self) -> CardState | None:
        """The displayed card, reflecting its graded state if already rated."""
        if self._phase == SessionPhase.COMPLETE or not self.cards:
            return None
        card = self.cards[self._index]
        return self.graded.get(card.id, card)

    @property
    def is_last_card(self) -> bool:
        return self._index == len(self.cards) - 1

    @property
    def stats(self) -> SessionStats:
        if self._phase != SessionPhase.COMPLETE or self._stats is None:
            raise InvalidStateTransition("Stats are only available once the session is complete")
        return self._stats

    # ---------- Transitions ----------

    def flip(self) -> None:
        """Reveal the answer of the current card."""
        self._require(SessionPhase.AWAITING_FLIP, "flip")
        self._phase = SessionPhase.AWAITING_RATING

    def rate(self, rating: ReviewRating | int | str) -> CardState:
        """
        Grade the current card and advance.

        Returns:
            The new CardState produced by the grader.
        """
        self._require(SessionPhase.AWAITING_RATING, "rate")
        card = self.cards[self._index]
        if card.id in self.ratings:
            raise InvalidStateTransition(f"Card {card.id} was already rated in this session")

        rating = ReviewRating.parse(rating)
        now = self._clock()
        graded = self.grader.grade(card, rating, now=now)
        record = ReviewRecord(card_id=card.id, rating=rating, timestamp=now, resulting_state=graded)

        if self.repository is not None:
            self.repository.save_card(graded)
            self.repository.append_review(record)

        self.ratings[card.id] = rating
        self.graded[card.id] = graded
        self.records.append(record)

        spent = (now - self._card_started_at).total_seconds()
        logger.debug(f"Card {card.id} reviewed in {spent:.1f}s with rating {rating.name}")

        if self.is_last_card:
            self._complete(now)
        else:
            self._index += 1
            self._phase = SessionPhase.AWAITING_FLIP
            self._card_started_at = now

        return graded

    def previous(self) -> None:
        """Show the previous card without grading anything."""
        self._require_open("previous")
        if self._index > 0:
            self._index -= 1
            self._phase = SessionPhase.AWAITING_FLIP

    def next(self) -> None:
        """Show the next card without grading anything."""
        self._require_open("next")
        if self._index < len(self.cards) - 1:
            self._index += 1
            self._phase = SessionPhase.AWAITING_FLIP

    def restart(self) -> None:
        """
        Reset to a fresh pass over the same queue. Legal from any phase.

        Cards graded in the previous pass keep their new state, so a second
        rating builds on what was already persisted.
        """
        now = self._clock()
        self.cards = [self.graded.get(card.id, card) for card in self.cards]
        self._index = 0
        self.ratings: dict[str, ReviewRating] = {}
        self.graded = {}
        self.records: list[ReviewRecord] = []
        self._started_at = now
        self._card_started_at = now
        self._stats = None
        self._phase = SessionPhase.AWAITING_FLIP

        if not self.cards:
            self._complete(now)

    # ---------- Internals ----------

    def _require(self, phase: SessionPhase, action: str) -> None:
        if self._phase != phase:
            raise InvalidStateTransition(
                f"Cannot {action} while {self._phase.value}; expected {phase.value}"
            )

    def _require_open(self, action: str) -> None:
        if self._phase == SessionPhase.COMPLETE:
            raise InvalidStateTransition(f"Cannot {action}: session is complete")

    def _complete(self, now: datetime) -> None:
        self._stats = compute_stats(self.ratings.values(), now - self._started_at)
        self._phase = SessionPhase.COMPLETE
        logger.info(
            f"Session complete: {self._stats.total_reviewed} reviewed, "
            f"accuracy {self._stats.accuracy:.0f}%"
        )


def compute_stats(ratings, elapsed: timedelta) -> SessionStats:
    values = list(ratings)
    histogram = {rating: 0 for rating in ReviewRating}
    for rating in values:
        histogram[rating] += 1

    total = len(values)
    correct = sum(1 for r in values if r >= ReviewRating.GOOD)

    return SessionStats(
        total_reviewed=total,
        average_rating=sum(int(r) for r in values) / total if total else 0.0,
        correct_count=correct,
        accuracy=correct / total * 100 if total else 0.0,
        elapsed=elapsed,
        histogram=histogram,
    )
