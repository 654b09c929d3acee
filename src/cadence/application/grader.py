"""
Review grader: the SM-2 step function.

Given a card's current parameters and a rating, computes the next
parameters, learning state and due date. This is a pure computation
module with no I/O.
"""

import logging
import math
from dataclasses import replace
from datetime import date, datetime, timedelta

from cadence.domain.srs.models import (
    CardState,
    LearningState,
    ReviewRating,
    SchedulerTuning,
    SM2Parameters,
    SM2Result,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, not 2)."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


class ReviewGrader:
    """
    Computes the next scheduling state of a card from a rating.

    Stateless and side-effect free; safe to share between sessions.
    """

    def __init__(self, tuning: SchedulerTuning | None = None):
        self.tuning = tuning or SchedulerTuning()

    def initial_params(self) -> SM2Parameters:
        """Parameters of a card that has never been reviewed."""
        return SM2Parameters(
            repetitions=0,
            ease_factor=self.tuning.default_ease_factor,
            interval=0,
        )

    def calculate(
        self,
        rating: ReviewRating | int | str,
        current: SM2Parameters,
        today: date | None = None,
    ) -> SM2Result:
        """
        Run one SM-2 step.

        Args:
            rating: The learner's grade. Anything outside 1-4 raises ValidationError.
            current: Parameters before this review.
            today: Review day; defaults to the local date.

        Returns:
            SM2Result with the new parameters, learning state and due date.
        """
        rating = ReviewRating.parse(rating)
        today = today or date.today()

        if rating == ReviewRating.AGAIN:
            repetitions = 0
            interval = 1
            ease_factor = self._clamp_ease(current.ease_factor - self.tuning.again_ease_penalty)
        else:
            repetitions = current.repetitions + 1
            ease_factor = self._adjust_ease(current.ease_factor, rating)
            interval = self._next_interval(repetitions, current.interval, ease_factor, rating)

        state = self._determine_state(current.repetitions, repetitions, rating)

        return SM2Result(
            repetitions=repetitions,
            ease_factor=ease_factor,
            interval=interval,
            due_date=today + timedelta(days=interval),
            learning_state=state,
        )

    def grade(
        self,
        card: CardState,
        rating: ReviewRating | int | str,
        now: datetime | None = None,
    ) -> CardState:
        """
        Grade a full card record.

        Returns a new CardState; the input is left untouched. Lapses and the
        lifetime counters are updated alongside the SM-2 parameters.
        """
        rating = ReviewRating.parse(rating)
        now = now or datetime.now()
        result = self.calculate(rating, card.params, today=now.date())
        failed = rating == ReviewRating.AGAIN

        graded = replace(
            card,
            repetitions=result.repetitions,
            ease_factor=result.ease_factor,
            interval=result.interval,
            due_date=result.due_date,
            learning_state=result.learning_state,
            lapses=card.lapses + (1 if failed else 0),
            last_reviewed=now,
            total_reviews=card.total_reviews + 1,
            correct_reviews=card.correct_reviews + (0 if failed else 1),
        )
        logger.debug(
            f"Graded {card.id} as {rating.name}: interval {card.interval}->{graded.interval}d, "
            f"ease {card.ease_factor:.2f}->{graded.ease_factor:.2f}, "
            f"state={graded.learning_state.value}"
        )
        return graded

    def _clamp_ease(self, ease_factor: float) -> float:
        return max(self.tuning.min_ease_factor, ease_factor)

    def _adjust_ease(self, ease_factor: float, rating: ReviewRating) -> float:
        if rating == ReviewRating.HARD:
            ease_factor -= self.tuning.hard_ease_penalty
        elif rating == ReviewRating.EASY:
            ease_factor += self.tuning.easy_ease_bonus
        return self._clamp_ease(ease_factor)

    def _next_interval(
        self,
        repetitions: int,
        previous_interval: int,
        ease_factor: float,
        rating: ReviewRating,
    ) -> int:
        if repetitions == 1:
            interval = self.tuning.first_interval
        elif repetitions == 2:
            interval = self.tuning.second_interval
        else:
            # I(n) = I(n-1) * EF
            interval = round_half_up(previous_interval * ease_factor)

        if rating == ReviewRating.HARD:
            interval = max(1, round_half_up(interval * self.tuning.hard_interval_multiplier))
        elif rating == ReviewRating.EASY:
            interval = round_half_up(interval * self.tuning.easy_interval_multiplier)

        return max(1, interval)

    def _determine_state(
        self,
        previous_repetitions: int,
        repetitions: int,
        rating: ReviewRating,
    ) -> LearningState:
        if rating == ReviewRating.AGAIN:
            if previous_repetitions == 0:
                return LearningState.LEARNING
            return LearningState.RELEARNING

        if repetitions <= 2:
            return LearningState.LEARNING

        return LearningState.REVIEW
