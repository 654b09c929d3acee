from datetime import date, datetime, timedelta

import pytest

from cadence.application.grader import ReviewGrader, round_half_up
from cadence.domain.errors import ValidationError
from cadence.domain.srs.models import (
    CardState,
    LearningState,
    ReviewRating,
    SchedulerTuning,
    SM2Parameters,
)

TODAY = date(2026, 1, 10)


@pytest.fixture
def grader():
    return ReviewGrader()


def new_params():
    return SM2Parameters(repetitions=0, ease_factor=2.5, interval=0)


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4) == 2
    assert round_half_up(1.3) == 1


def test_initial_params(grader):
    assert grader.initial_params() == new_params()


def test_three_good_reviews_yield_1_6_15(grader):
    params = new_params()
    intervals = []
    states = []
    for _ in range(3):
        params = grader.calculate(ReviewRating.GOOD, params, today=TODAY)
        intervals.append(params.interval)
        states.append(params.learning_state)

    assert intervals == [1, 6, 15]
    assert states == [LearningState.LEARNING, LearningState.LEARNING, LearningState.REVIEW]
    assert params.ease_factor == pytest.approx(2.5)
    assert params.repetitions == 3


def test_first_easy_floors_interval_to_one_day(grader):
    result = grader.calculate(ReviewRating.EASY, new_params(), today=TODAY)

    assert result.interval == 1
    assert result.ease_factor == pytest.approx(2.6)
    assert result.repetitions == 1
    assert result.learning_state == LearningState.LEARNING


def test_first_hard_still_counts_as_repetition(grader):
    result = grader.calculate(ReviewRating.HARD, new_params(), today=TODAY)

    assert result.repetitions == 1
    assert result.interval == 1
    assert result.ease_factor == pytest.approx(2.35)


def test_hard_multiplier_on_third_review(grader):
    params = SM2Parameters(repetitions=2, ease_factor=2.5, interval=6)
    result = grader.calculate(ReviewRating.HARD, params, today=TODAY)

    # round(6 * 2.35) = 14, then 14 * 1.2 = 16.8 -> 17
    assert result.interval == 17
    assert result.learning_state == LearningState.REVIEW


def test_easy_multiplier_on_third_review(grader):
    params = SM2Parameters(repetitions=2, ease_factor=2.5, interval=6)
    result = grader.calculate(ReviewRating.EASY, params, today=TODAY)

    # round(6 * 2.6) = 16, then 16 * 1.3 = 20.8 -> 21
    assert result.interval == 21


def test_interval_rounds_half_up(grader):
    params = SM2Parameters(repetitions=3, ease_factor=2.5, interval=5)
    result = grader.calculate(ReviewRating.GOOD, params, today=TODAY)
    assert result.interval == 13


def test_again_resets_and_relearns(grader):
    params = SM2Parameters(repetitions=3, ease_factor=2.5, interval=15)
    result = grader.calculate(ReviewRating.AGAIN, params, today=TODAY)

    assert result.repetitions == 0
    assert result.interval == 1
    assert result.ease_factor == pytest.approx(2.3)
    assert result.learning_state == LearningState.RELEARNING
    assert result.due_date == TODAY + timedelta(days=1)


def test_again_on_new_card_is_learning(grader):
    result = grader.calculate(ReviewRating.AGAIN, new_params(), today=TODAY)
    assert result.learning_state == LearningState.LEARNING


def test_due_date_is_interval_days_after_review(grader):
    params = SM2Parameters(repetitions=2, ease_factor=2.5, interval=6)
    result = grader.calculate(ReviewRating.GOOD, params, today=TODAY)
    assert result.due_date == TODAY + timedelta(days=result.interval)


def test_corrupted_ease_is_clamped_not_rejected(grader):
    params = SM2Parameters(repetitions=5, ease_factor=0.9, interval=10)
    result = grader.calculate(ReviewRating.GOOD, params, today=TODAY)

    assert result.ease_factor == 1.3
    assert result.interval == 13


@pytest.mark.parametrize("length", [1, 2, 5, 13, 50])
@pytest.mark.parametrize("start_ease", [1.3, 1.45, 2.5, 5.0])
def test_repeated_again_never_drops_ease_below_floor(grader, length, start_ease):
    params = SM2Parameters(repetitions=4, ease_factor=start_ease, interval=30)
    for _ in range(length):
        params = grader.calculate(ReviewRating.AGAIN, params, today=TODAY)
        assert params.ease_factor >= 1.3
        assert params.repetitions == 0
        assert params.interval == 1


@pytest.mark.parametrize(
    "sequence",
    [
        [1, 3, 3, 4, 2, 1, 1, 3],
        [4, 4, 4, 4],
        [2, 2, 2, 2, 2, 2],
        [3, 1, 2, 1, 4, 3],
    ],
)
def test_interval_at_least_one_once_reviewed(grader, sequence):
    params = new_params()
    for value in sequence:
        params = grader.calculate(value, params, today=TODAY)
        if params.repetitions >= 1:
            assert params.interval >= 1
        assert params.ease_factor >= 1.3


@pytest.mark.parametrize("bad", [0, 5, -1, "meh", "", None, 3.5, True])
def test_invalid_rating_rejected(grader, bad):
    with pytest.raises(ValidationError):
        grader.calculate(bad, new_params(), today=TODAY)


def test_accepts_raw_ints_and_names(grader):
    by_int = grader.calculate(3, new_params(), today=TODAY)
    by_name = grader.calculate("good", new_params(), today=TODAY)
    assert by_int == by_name


def test_custom_tuning():
    grader = ReviewGrader(SchedulerTuning(min_ease_factor=1.5, second_interval=4))
    params = SM2Parameters(repetitions=1, ease_factor=1.6, interval=1)

    failed = grader.calculate(ReviewRating.AGAIN, params, today=TODAY)
    assert failed.ease_factor == 1.5

    passed = grader.calculate(ReviewRating.GOOD, params, today=TODAY)
    assert passed.interval == 4


class TestGradeCard:
    def test_again_increments_lapses(self, grader):
        card = CardState(
            id="c1", repetitions=3, interval=15, lapses=2, total_reviews=5, correct_reviews=4,
            learning_state=LearningState.REVIEW,
        )
        now = datetime(2026, 1, 10, 9, 30)

        graded = grader.grade(card, ReviewRating.AGAIN, now=now)

        assert graded.lapses == 3
        assert graded.repetitions == 0
        assert graded.interval == 1
        assert graded.total_reviews == 6
        assert graded.correct_reviews == 4
        assert graded.last_reviewed == now
        assert graded.due_date == date(2026, 1, 11)
        assert graded.learning_state == LearningState.RELEARNING

    def test_success_keeps_lapses(self, grader):
        card = CardState.new("c1", today=TODAY)
        graded = grader.grade(card, "good", now=datetime(2026, 1, 10, 12, 0))

        assert graded.lapses == 0
        assert graded.correct_reviews == 1
        assert graded.interval == 1
        assert graded.due_date == date(2026, 1, 11)

    def test_input_card_unchanged(self, grader):
        card = CardState.new("c1", today=TODAY)
        grader.grade(card, ReviewRating.EASY, now=datetime(2026, 1, 10))
        assert card == CardState.new("c1", today=TODAY)

    def test_invalid_rating(self, grader):
        with pytest.raises(ValidationError):
            grader.grade(CardState.new("c1", today=TODAY), 9)
