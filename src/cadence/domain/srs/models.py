"""
Domain models for SM-2 scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum, IntEnum

from cadence.domain import constants
from cadence.domain.errors import ValidationError


class ReviewRating(IntEnum):
    """The four grading buttons. The only legal grading inputs."""

    AGAIN = 1  # Forgotten
    HARD = 2  # Recalled with serious difficulty
    GOOD = 3  # Recalled with moderate effort
    EASY = 4  # Recalled effortlessly

    @classmethod
    def parse(cls, value: "ReviewRating | int | str") -> "ReviewRating":
        """
        Coerce a raw rating into a ReviewRating.

        Accepts an enum member, an integer 1-4, a numeric string, or a
        case-insensitive name ("good"). Anything else is a programming error.
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, bool):
            raise ValidationError(f"Invalid rating: {value!r}")

        if isinstance(value, str):
            text = value.strip()
            if text.isdecimal() and text.isascii():
                value = int(text)
            else:
                try:
                    return cls[text.upper()]
                except KeyError:
                    raise ValidationError(f"Invalid rating: {value!r}") from None

        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValidationError(
                    f"Invalid rating: {value!r} (expected 1=Again, 2=Hard, 3=Good, 4=Easy)"
                ) from None

        raise ValidationError(f"Invalid rating: {value!r}")


class LearningState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass(frozen=True)
class SchedulerTuning:
    """
    Tunable constants of the SM-2 engine.

    Passed into the grader, analyzer and scheduler so alternate tunings
    can be tested without touching module state.
    """

    min_ease_factor: float = constants.MIN_EASE_FACTOR
    default_ease_factor: float = constants.DEFAULT_EASE_FACTOR
    again_ease_penalty: float = constants.AGAIN_EASE_PENALTY
    hard_ease_penalty: float = constants.HARD_EASE_PENALTY
    easy_ease_bonus: float = constants.EASY_EASE_BONUS
    first_interval: int = constants.FIRST_INTERVAL
    second_interval: int = constants.SECOND_INTERVAL
    hard_interval_multiplier: float = constants.HARD_INTERVAL_MULTIPLIER
    easy_interval_multiplier: float = constants.EASY_INTERVAL_MULTIPLIER
    mature_interval: int = constants.MATURE_INTERVAL
    maturity_cap_days: int = constants.MATURITY_CAP_DAYS
    leech_threshold: int = constants.LEECH_THRESHOLD


@dataclass(frozen=True)
class SM2Parameters:
    """
    The inputs of one SM-2 step.

    Attributes:
        repetitions: Consecutive successful reviews since the last lapse.
        ease_factor: Interval growth multiplier (>= 1.3 after grading).
        interval: Current interval in days (0 before the first review).
    """

    repetitions: int
    ease_factor: float
    interval: int


@dataclass(frozen=True)
class SM2Result(SM2Parameters):
    """SM2Parameters plus the schedule derived from them."""

    due_date: date
    learning_state: LearningState


@dataclass(frozen=True)
class CardState:
    """
    The persisted scheduling record for one flashcard.

    Owned by the storage collaborator; the grader only computes its next value.
    """

    id: str
    repetitions: int = 0
    ease_factor: float = constants.DEFAULT_EASE_FACTOR
    interval: int = 0
    due_date: date | None = None
    learning_state: LearningState = LearningState.NEW
    lapses: int = 0
    last_reviewed: datetime | None = None

    # Lifetime counters
    total_reviews: int = 0
    correct_reviews: int = 0

    @classmethod
    def new(
        cls,
        card_id: str,
        today: date | None = None,
        ease_factor: float = constants.DEFAULT_EASE_FACTOR,
    ) -> "CardState":
        """Initial state for a freshly authored card, due immediately."""
        return cls(id=card_id, ease_factor=ease_factor, due_date=today or date.today())

    @property
    def params(self) -> SM2Parameters:
        return SM2Parameters(
            repetitions=self.repetitions,
            ease_factor=self.ease_factor,
            interval=self.interval,
        )

    def is_due(self, today: date | None = None) -> bool:
        if self.due_date is None:
            return True
        return self.due_date <= (today or date.today())


@dataclass(frozen=True)
class ReviewRecord:
    """
    A single entry of the append-only review log.

    Attributes:
        card_id: The card that was reviewed.
        rating: Button pressed.
        timestamp: When the review happened.
        resulting_state: The card state produced by this review.
    """

    card_id: str
    rating: ReviewRating
    timestamp: datetime
    resulting_state: CardState
