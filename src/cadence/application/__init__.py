# Application Package
from .deck_scheduler import DeckScheduler, ReviewWindow, StudyPlan, StudySession
from .difficulty import Difficulty, DifficultyAnalyzer, DifficultyReport, calculate_retention
from .grader import ReviewGrader
from .session import ReviewSession, SessionPhase, SessionStats

__all__ = [
    "ReviewGrader",
    "DifficultyAnalyzer",
    "DifficultyReport",
    "Difficulty",
    "calculate_retention",
    "DeckScheduler",
    "StudyPlan",
    "StudySession",
    "ReviewWindow",
    "ReviewSession",
    "SessionPhase",
    "SessionStats",
]
