"""
YAML deck repository: Infrastructure adapter for a deck file on disk.

Implements CardRepository over a single YAML document:

    cards:
      - id: capital-of-france
        repetitions: 2
        ease_factor: 2.5
        interval: 6
        due_date: '2026-10-25'
        learning_state: learning
        lapses: 0
        last_reviewed: '2026-10-19T08:30:00'
    reviews:
      - card_id: capital-of-france
        rating: 3
        timestamp: '2026-10-19T08:30:00'
        resulting_state: {...}
"""

import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml
import yaml.constructor

from cadence.domain.errors import CardNotFoundError, ValidationError
from cadence.domain.srs.models import CardState, LearningState, ReviewRating, ReviewRecord
from cadence.domain.srs.ports import CardRepository

logger = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """Safe YAML loader that forbids duplicate keys."""

    def construct_mapping(self, node, deep=False):
        mapping = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in mapping:
                raise yaml.constructor.ConstructorError(
                    None, None, f"found duplicate key '{key}'", key_node.start_mark
                )
            mapping.add(key)
        return super().construct_mapping(node, deep)


class YamlCardRepository(CardRepository):
    """
    Stores a deck and its review log in one YAML file.

    Every write rewrites the file through a temporary sibling and an atomic
    rename, so a crash never leaves a half-written deck behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_cards(self) -> list[CardState]:
        doc = self._read()
        cards = [card_from_dict(raw) for raw in doc["cards"]]
        logger.debug(f"Loaded {len(cards)} cards from {self.path}")
        return cards

    def get_card(self, card_id: str) -> CardState:
        for card in self.load_cards():
            if card.id == card_id:
                return card
        raise CardNotFoundError(card_id)

    def save_card(self, card: CardState) -> None:
        doc = self._read()
        raw = card_to_dict(card)

        for i, existing in enumerate(doc["cards"]):
            if str(existing.get("id")) == card.id:
                doc["cards"][i] = raw
                break
        else:
            doc["cards"].append(raw)

        self._write(doc)
        logger.debug(f"Saved card {card.id} (due {card.due_date}) to {self.path}")

    def add_cards(self, cards: list[CardState]) -> list[str]:
        """
        Insert new cards, skipping ids that already exist.

        Returns:
            Ids that were actually added.
        """
        doc = self._read()
        existing = {str(raw.get("id")) for raw in doc["cards"]}
        added = []
        for card in cards:
            if card.id in existing:
                logger.info(f"Card {card.id} already exists, skipping")
                continue
            doc["cards"].append(card_to_dict(card))
            existing.add(card.id)
            added.append(card.id)

        if added:
            self._write(doc)
        return added

    def append_review(self, record: ReviewRecord) -> None:
        doc = self._read()
        doc["reviews"].append(record_to_dict(record))
        self._write(doc)

    def get_reviews(self, card_id: str) -> list[ReviewRecord]:
        doc = self._read()
        records = [record_from_dict(raw) for raw in doc["reviews"]]
        records = [r for r in records if r.card_id == card_id]
        return sorted(records, key=lambda r: r.timestamp)

    def _read(self) -> dict[str, list[dict[str, Any]]]:
        if not self.path.exists():
            return {"cards": [], "reviews": []}

        try:
            doc = yaml.load(self.path.read_text(encoding="utf-8"), Loader=UniqueKeyLoader) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Malformed deck file {self.path}: {e}") from e

        if not isinstance(doc, dict):
            raise ValidationError(f"Deck file {self.path} must contain a mapping")

        cards = doc.get("cards") or []
        reviews = doc.get("reviews") or []
        if not isinstance(cards, list) or not isinstance(reviews, list):
            raise ValidationError(f"Deck file {self.path}: 'cards' and 'reviews' must be lists")

        return {"cards": cards, "reviews": reviews}

    def _write(self, doc: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(doc, sort_keys=False, allow_unicode=True, default_flow_style=False)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, self.path)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def card_to_dict(card: CardState) -> dict[str, Any]:
    return {
        "id": card.id,
        "repetitions": card.repetitions,
        "ease_factor": card.ease_factor,
        "interval": card.interval,
        "due_date": card.due_date.isoformat() if card.due_date else None,
        "learning_state": card.learning_state.value,
        "lapses": card.lapses,
        "last_reviewed": card.last_reviewed.isoformat() if card.last_reviewed else None,
        "total_reviews": card.total_reviews,
        "correct_reviews": card.correct_reviews,
    }


def card_from_dict(raw: Any) -> CardState:
    if not isinstance(raw, dict) or "id" not in raw:
        raise ValidationError(f"Card entry must be a mapping with an 'id': {raw!r}")

    try:
        return CardState(
            id=str(raw["id"]),
            repetitions=_non_negative(raw, "repetitions", 0),
            ease_factor=float(raw.get("ease_factor", 2.5)),
            interval=_non_negative(raw, "interval", 0),
            due_date=_parse_date(raw.get("due_date")),
            learning_state=LearningState(raw.get("learning_state", LearningState.NEW.value)),
            lapses=_non_negative(raw, "lapses", 0),
            last_reviewed=_parse_datetime(raw.get("last_reviewed")),
            total_reviews=_non_negative(raw, "total_reviews", 0),
            correct_reviews=_non_negative(raw, "correct_reviews", 0),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid card entry {raw.get('id')!r}: {e}") from e


def record_to_dict(record: ReviewRecord) -> dict[str, Any]:
    return {
        "card_id": record.card_id,
        "rating": int(record.rating),
        "timestamp": record.timestamp.isoformat(),
        "resulting_state": card_to_dict(record.resulting_state),
    }


def record_from_dict(raw: Any) -> ReviewRecord:
    if not isinstance(raw, dict):
        raise ValidationError(f"Review entry must be a mapping: {raw!r}")

    try:
        timestamp = _parse_datetime(raw.get("timestamp"))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid review timestamp: {raw.get('timestamp')!r}") from e
    if timestamp is None:
        raise ValidationError(f"Review entry is missing a timestamp: {raw!r}")

    return ReviewRecord(
        card_id=str(raw.get("card_id")),
        rating=ReviewRating.parse(raw.get("rating")),
        timestamp=timestamp,
        resulting_state=card_from_dict(raw.get("resulting_state")),
    )


def _non_negative(raw: dict[str, Any], key: str, default: int) -> int:
    value = int(raw.get(key, default))
    if value < 0:
        raise ValueError(f"{key} must be >= 0, got {value}")
    return value


def _parse_date(value: Any) -> date | None:
    # PyYAML turns unquoted ISO dates into date/datetime objects
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    return datetime.fromisoformat(str(value))
