"""
Ports (interfaces) for card storage.

These define the contract that infrastructure adapters must implement.
The scheduling core never fetches or stores data itself; callers load a
snapshot through this port and hand graded states back one at a time.
"""

from abc import ABC, abstractmethod

from .models import CardState, ReviewRecord


class CardRepository(ABC):
    """
    Port for loading and persisting card scheduling records.

    Implementations:
        - YamlCardRepository: Reads and writes a YAML deck file.
    """

    @abstractmethod
    def load_cards(self) -> list[CardState]:
        """
        Load every card of the deck.

        Returns:
            List of CardState in storage order.
        """
        pass

    @abstractmethod
    def get_card(self, card_id: str) -> CardState:
        """
        Fetch a single card.

        Raises:
            CardNotFoundError: If no card has this id.
        """
        pass

    @abstractmethod
    def save_card(self, card: CardState) -> None:
        """
        Durably persist one card, replacing any previous state with the same id.
        """
        pass

    @abstractmethod
    def append_review(self, record: ReviewRecord) -> None:
        """Append a record to the review log. Past records are never rewritten."""
        pass

    @abstractmethod
    def get_reviews(self, card_id: str) -> list[ReviewRecord]:
        """
        Fetch the review log of a card, sorted by timestamp ascending.
        """
        pass
