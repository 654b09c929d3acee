"""Exception hierarchy for the scheduling core."""


class SchedulingError(Exception):
    """Base class for all errors raised by Cadence."""


class ValidationError(SchedulingError, ValueError):
    """An input is outside its legal domain (e.g. a rating that is not 1-4)."""


class InvalidStateTransition(SchedulingError):
    """A review session operation was called in a phase that does not allow it."""


class CardNotFoundError(SchedulingError, KeyError):
    """The storage collaborator has no card with the requested id."""

    def __init__(self, card_id: str):
        super().__init__(card_id)
        self.card_id = card_id

    def __str__(self) -> str:
        return f"Card not found: {self.card_id}"
