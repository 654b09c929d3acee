"""
Difficulty analysis for individual cards.

Read-only: classifies a card from its lapse history and ease, flags
leeches, and never mutates any state.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from cadence.domain.srs.models import CardState, ReviewRating, ReviewRecord, SchedulerTuning

LEECH_RECOMMENDATION = "Leech detected! Suspend and reformulate this card."


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    VERY_HARD = "very-hard"


_RECOMMENDATIONS = {
    Difficulty.EASY: "This card is well-learned. Consider increasing intervals.",
    Difficulty.MEDIUM: "Card is progressing normally.",
    Difficulty.HARD: "Consider breaking this into smaller cards.",
    Difficulty.VERY_HARD: "This card needs reformulation or additional context.",
}


@dataclass(frozen=True)
class DifficultyReport:
    difficulty: Difficulty
    is_leech: bool
    recommendation: str
    lapse_rate: float


class DifficultyAnalyzer:
    """
    Classifies card difficulty and detects leeches.

    Stateless and side-effect free.
    """

    def __init__(self, tuning: SchedulerTuning | None = None):
        self.tuning = tuning or SchedulerTuning()

    def analyze(self, lapses: int, total_reviews: int, ease_factor: float) -> DifficultyReport:
        """
        Classify a card.

        Args:
            lapses: Number of Again ratings ever recorded.
            total_reviews: Number of reviews ever recorded.
            ease_factor: Current ease factor.

        Returns:
            DifficultyReport. Leeches always get the suspend recommendation.
        """
        lapse_rate = lapses / total_reviews if total_reviews > 0 else 0.0
        is_leech = lapses >= self.tuning.leech_threshold

        if ease_factor >= 2.5 and lapse_rate < 0.1:
            difficulty = Difficulty.EASY
        elif ease_factor >= 2.0 and lapse_rate < 0.2:
            difficulty = Difficulty.MEDIUM
        elif ease_factor >= 1.5 or lapse_rate < 0.4:
            difficulty = Difficulty.HARD
        else:
            difficulty = Difficulty.VERY_HARD

        recommendation = LEECH_RECOMMENDATION if is_leech else _RECOMMENDATIONS[difficulty]

        return DifficultyReport(
            difficulty=difficulty,
            is_leech=is_leech,
            recommendation=recommendation,
            lapse_rate=lapse_rate,
        )

    def analyze_card(self, card: CardState) -> DifficultyReport:
        return self.analyze(card.lapses, card.total_reviews, card.ease_factor)

    def analyze_history(self, records: Sequence[ReviewRecord]) -> DifficultyReport:
        """
        Classify a card from its review log.

        The ease factor is taken from the most recent resulting state; an
        empty log is analyzed as a fresh card.
        """
        if not records:
            return self.analyze(0, 0, self.tuning.default_ease_factor)

        ordered = sorted(records, key=lambda r: r.timestamp)
        lapses = sum(1 for r in ordered if r.rating == ReviewRating.AGAIN)
        return self.analyze(lapses, len(ordered), ordered[-1].resulting_state.ease_factor)

    def find_leeches(self, cards: Iterable[CardState]) -> list[str]:
        return [card.id for card in cards if card.lapses >= self.tuning.leech_threshold]


def calculate_retention(total_reviews: int, correct_reviews: int) -> float:
    """Percentage of reviews that were not lapses (0-100)."""
    if total_reviews == 0:
        return 0.0
    return correct_reviews / total_reviews * 100
