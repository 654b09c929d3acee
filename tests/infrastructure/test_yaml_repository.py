from datetime import date, datetime

import pytest

from cadence.domain.errors import CardNotFoundError, ValidationError
from cadence.domain.srs.models import CardState, LearningState, ReviewRating, ReviewRecord
from cadence.infrastructure.yaml_repository import YamlCardRepository, card_from_dict


@pytest.fixture
def repo(deck_path):
    return YamlCardRepository(deck_path)


def test_missing_file_is_empty_deck(repo):
    assert repo.load_cards() == []
    assert repo.get_reviews("anything") == []


def test_add_cards_skips_existing(repo):
    today = date(2026, 1, 10)
    assert repo.add_cards([CardState.new("a", today), CardState.new("b", today)]) == ["a", "b"]
    assert repo.add_cards([CardState.new("b", today), CardState.new("c", today)]) == ["c"]
    assert [c.id for c in repo.load_cards()] == ["a", "b", "c"]


def test_save_card_replaces_in_place(repo):
    today = date(2026, 1, 10)
    repo.add_cards([CardState.new("a", today), CardState.new("b", today)])

    updated = CardState(
        id="a",
        repetitions=2,
        ease_factor=2.35,
        interval=6,
        due_date=date(2026, 1, 16),
        learning_state=LearningState.LEARNING,
        lapses=1,
        last_reviewed=datetime(2026, 1, 10, 8, 30),
        total_reviews=3,
        correct_reviews=2,
    )
    repo.save_card(updated)

    cards = repo.load_cards()
    assert [c.id for c in cards] == ["a", "b"]
    assert cards[0] == updated
    assert repo.get_card("a") == updated


def test_save_unknown_card_appends(repo):
    repo.save_card(CardState(id="z"))
    assert repo.get_card("z").id == "z"


def test_get_card_missing(repo):
    with pytest.raises(CardNotFoundError):
        repo.get_card("nope")


def test_review_log(repo):
    state = CardState(id="a", repetitions=1, interval=1)
    later = ReviewRecord("a", ReviewRating.GOOD, datetime(2026, 1, 11, 9), state)
    earlier = ReviewRecord("a", ReviewRating.AGAIN, datetime(2026, 1, 10, 9), state)
    other = ReviewRecord("b", ReviewRating.EASY, datetime(2026, 1, 10, 9), state)

    for record in (later, earlier, other):
        repo.append_review(record)

    assert repo.get_reviews("a") == [earlier, later]
    assert repo.get_reviews("b") == [other]


def test_no_temp_file_left_behind(repo, deck_path):
    repo.save_card(CardState(id="a"))
    assert deck_path.exists()
    assert not deck_path.with_name(deck_path.name + ".tmp").exists()


def test_unquoted_yaml_dates(repo, deck_path):
    deck_path.write_text(
        "cards:\n"
        "  - id: a\n"
        "    due_date: 2026-01-12\n"
        "    last_reviewed: 2026-01-10 08:00:00\n"
        "    learning_state: review\n"
        "    interval: 2\n"
        "    repetitions: 3\n"
    )
    card = repo.get_card("a")
    assert card.due_date == date(2026, 1, 12)
    assert card.last_reviewed == datetime(2026, 1, 10, 8, 0)
    assert card.learning_state == LearningState.REVIEW


def test_numeric_ids_become_strings(repo, deck_path):
    deck_path.write_text("cards:\n  - id: 42\n")
    assert repo.get_card("42").id == "42"


@pytest.mark.parametrize(
    "text",
    [
        "cards: [unclosed\n",
        "- just\n- a list\n",
        "cards:\n  - id: a\n    id: b\n",
        "cards:\n  - id: a\n    interval: -3\n",
        "cards:\n  - id: a\n    learning_state: graduated\n",
        "cards:\n  - repetitions: 1\n",
        "cards: nope\n",
    ],
)
def test_malformed_deck(repo, deck_path, text):
    deck_path.write_text(text)
    with pytest.raises(ValidationError):
        repo.load_cards()


def test_card_from_dict_defaults():
    card = card_from_dict({"id": "a"})
    assert card == CardState(id="a")
