# Domain SRS Package
from .models import (
    CardState,
    LearningState,
    ReviewRating,
    ReviewRecord,
    SchedulerTuning,
    SM2Parameters,
    SM2Result,
)
from .ports import CardRepository

__all__ = [
    "CardState",
    "LearningState",
    "ReviewRating",
    "ReviewRecord",
    "SchedulerTuning",
    "SM2Parameters",
    "SM2Result",
    "CardRepository",
]
