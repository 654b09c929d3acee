import logging
import time
from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel

from cadence.application.config import AppConfig, resolve_config
from cadence.application.deck_scheduler import DeckScheduler
from cadence.application.difficulty import DifficultyAnalyzer, calculate_retention
from cadence.application.grader import ReviewGrader
from cadence.application.session import ReviewSession
from cadence.consts import VERSION
from cadence.domain.errors import CardNotFoundError, ValidationError
from cadence.domain.srs.models import CardState, LearningState, ReviewRating
from cadence.domain.srs.ports import CardRepository
from cadence.infrastructure.yaml_repository import YamlCardRepository

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cadence.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Cadence Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Cadence Server shutting down...")


app = FastAPI(
    title="Cadence Server",
    description="Spaced-repetition scheduling API over a YAML deck.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_config() -> AppConfig:
    return resolve_config()


def get_repository(config: Annotated[AppConfig, Depends(get_config)]) -> CardRepository:
    return YamlCardRepository(config.deck_path)


ConfigDep = Annotated[AppConfig, Depends(get_config)]
RepoDep = Annotated[CardRepository, Depends(get_repository)]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardResponse(BaseModel):
    id: str
    repetitions: int
    ease_factor: float
    interval: int
    due_date: date | None
    learning_state: str
    lapses: int
    total_reviews: int
    correct_reviews: int

    @classmethod
    def from_card(cls, card: CardState) -> "CardResponse":
        return cls(
            id=card.id,
            repetitions=card.repetitions,
            ease_factor=card.ease_factor,
            interval=card.interval,
            due_date=card.due_date,
            learning_state=card.learning_state.value,
            lapses=card.lapses,
            total_reviews=card.total_reviews,
            correct_reviews=card.correct_reviews,
        )


class DueCardsResponse(BaseModel):
    success: bool
    cards: list[CardResponse]
    count: int


class ReviewRequest(BaseModel):
    # Validated by ReviewRating.parse so a bad value maps to our own 400
    rating: int | str


class ReviewResponse(BaseModel):
    success: bool
    next_review: date
    new_interval: int
    new_ease_factor: float
    learning_state: str


class DifficultyResponse(BaseModel):
    card_id: str
    difficulty: str
    is_leech: bool
    recommendation: str
    lapse_rate: float
    retention: float
    reviews_logged: int
    history_difficulty: str | None = None


class StudySessionModel(BaseModel):
    start: str
    duration: float


class PlanResponse(BaseModel):
    reviews_due: int
    recommended_new_cards: int
    estimated_minutes: float
    sessions: list[StudySessionModel]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/cards/due", response_model=DueCardsResponse)
def get_due_cards(
    repo: RepoDep,
    config: ConfigDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
):
    """Cards due today, in study order."""
    scheduler = DeckScheduler(ReviewGrader(config.tuning()))
    cards = scheduler.due_cards(_load(repo), limit=limit or config.due_limit)
    return DueCardsResponse(
        success=True,
        cards=[CardResponse.from_card(c) for c in cards],
        count=len(cards),
    )


@app.post("/cards/{card_id}/review", response_model=ReviewResponse)
def review_card(card_id: str, req: ReviewRequest, repo: RepoDep, config: ConfigDep):
    """Grade a card and persist its next schedule."""
    try:
        rating = ReviewRating.parse(req.rating)
        card = repo.get_card(card_id)
        session = ReviewSession([card], grader=ReviewGrader(config.tuning()), repository=repo)
        session.flip()
        graded = session.rate(rating)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info(f"Reviewed {card_id} as {rating.name}, next review {graded.due_date}")
    return ReviewResponse(
        success=True,
        next_review=graded.due_date,
        new_interval=graded.interval,
        new_ease_factor=graded.ease_factor,
        learning_state=graded.learning_state.value,
    )


@app.get("/cards/{card_id}/difficulty", response_model=DifficultyResponse)
def card_difficulty(card_id: str, repo: RepoDep, config: ConfigDep):
    try:
        card = repo.get_card(card_id)
        history = repo.get_reviews(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    analyzer = DifficultyAnalyzer(config.tuning())
    report = analyzer.analyze_card(card)
    history_report = analyzer.analyze_history(history) if history else None
    return DifficultyResponse(
        card_id=card.id,
        difficulty=report.difficulty.value,
        is_leech=report.is_leech,
        recommendation=report.recommendation,
        lapse_rate=report.lapse_rate,
        retention=calculate_retention(card.total_reviews, card.correct_reviews),
        reviews_logged=len(history),
        history_difficulty=history_report.difficulty.value if history_report else None,
    )


@app.get("/forecast")
def get_forecast(
    repo: RepoDep,
    config: ConfigDep,
    days: Annotated[int | None, Query(ge=1, le=365)] = None,
) -> dict[str, int]:
    """Reviews due per day over the horizon, zero-filled."""
    scheduler = DeckScheduler(ReviewGrader(config.tuning()))
    workload = scheduler.forecast_workload(_load(repo), days or config.forecast_days)
    return {d.isoformat(): n for d, n in workload.items()}


@app.get("/plan", response_model=PlanResponse)
def get_plan(repo: RepoDep, config: ConfigDep):
    scheduler = DeckScheduler(ReviewGrader(config.tuning()))
    due = scheduler.due_cards(_load(repo))
    reviews_due = sum(1 for c in due if c.learning_state != LearningState.NEW)
    recommended = scheduler.get_recommended_new_cards(
        reviews_due, config.target_daily_minutes, config.avg_minutes_per_card
    )
    study = scheduler.suggest_study_time(reviews_due, recommended, config.avg_minutes_per_card)
    return PlanResponse(
        reviews_due=reviews_due,
        recommended_new_cards=recommended,
        estimated_minutes=study.estimated_minutes,
        sessions=[StudySessionModel(start=s.start, duration=s.duration) for s in study.sessions],
    )


def _load(repo: CardRepository) -> list[CardState]:
    try:
        return repo.load_cards()
    except ValidationError as e:
        logger.error(f"Failed to load deck: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e
