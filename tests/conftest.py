from datetime import date, datetime, timedelta

import pytest

from cadence.domain.srs.models import CardState, LearningState


@pytest.fixture
def today():
    return date(2026, 1, 10)


@pytest.fixture
def make_card(today):
    """Factory for CardState with sensible defaults relative to `today`."""

    def _make(card_id="c1", state=LearningState.REVIEW, due_in=0, **kwargs):
        kwargs.setdefault("due_date", today + timedelta(days=due_in))
        return CardState(id=card_id, learning_state=state, **kwargs)

    return _make


@pytest.fixture
def deck_path(tmp_path):
    return tmp_path / "deck.yaml"


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    for var in ("CADENCE_DECK_PATH", "CADENCE_LEECH_THRESHOLD", "CADENCE_FORECAST_DAYS"):
        monkeypatch.delenv(var, raising=False)
    return home


class FakeClock:
    """Deterministic stand-in for datetime.now."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 10, 8, 0, 0))
