import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel

from fluentia.application.reconciler import SyncReconciler
from fluentia.consts import VERSION
from fluentia.domain.models import Attempt, ProgressRecord

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("fluentia.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    from fluentia.application.config import resolve_config
    from fluentia.application.factory import build_reconciler_pool

    logger.info(f"Fluentia Server v{VERSION} starting up...")
    if getattr(app.state, "reconcilers", None) is None:
        app.state.reconcilers = build_reconciler_pool(resolve_config())
    yield
    results = await app.state.reconcilers.drain_pushes()
    await app.state.reconcilers.aclose()
    failed = [r for r in results if not r.ok]
    if failed:
        logger.warning(f"{len(failed)} progress pushes failed before shutdown")
    logger.info("Fluentia Server shutting down...")


app = FastAPI(
    title="Fluentia Server",
    description="Progress sync and review scheduling for Fluentia clients.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


def get_reconciler(request: Request, user_id: str) -> SyncReconciler:
    return request.app.state.reconcilers.for_user(user_id)


Reconciler = Annotated[SyncReconciler, Depends(get_reconciler)]


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ProgressResponse(BaseModel):
    completed: list[str]
    updated_at: int
    version: int

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "ProgressResponse":
        return cls(
            completed=list(record.completed),
            updated_at=record.updated_at,
            version=record.version,
        )


class SummaryResponse(BaseModel):
    xp: int
    streak: int
    level: int
    updated_at: int


class CompleteRequest(BaseModel):
    item_id: str


class AttemptRequest(BaseModel):
    item_id: str
    correct: bool
    latency_ms: int | None = None
    score: float | None = None


class ScheduleResponse(BaseModel):
    item_id: str
    interval_days: int
    ease_factor: float
    repetitions: int
    next_due: datetime


class DueResponse(BaseModel):
    items: list[str]


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/progress/{user_id}", response_model=ProgressResponse)
async def get_progress(user_id: str, reconciler: Reconciler):
    record = await reconciler.resolve(user_id)
    return ProgressResponse.from_record(record)


@app.post("/progress/{user_id}/complete", response_model=ProgressResponse)
async def complete_item(user_id: str, req: CompleteRequest, reconciler: Reconciler):
    """Mark an item completed. Repeating the call is harmless."""
    record = await reconciler.mark_item_completed(req.item_id, user_id)
    return ProgressResponse.from_record(record)


@app.post("/progress/{user_id}/reset", response_model=ProgressResponse)
async def reset_progress(user_id: str, reconciler: Reconciler):
    logger.info(f"Progress reset requested via API for user={user_id}")
    record = await reconciler.reset_progress(user_id)
    return ProgressResponse.from_record(record)


@app.get("/progress/{user_id}/summary", response_model=SummaryResponse)
async def get_summary(user_id: str, reconciler: Reconciler):
    summary = await reconciler.get_progress_summary(user_id)
    return SummaryResponse(
        xp=summary.xp, streak=summary.streak, level=summary.level, updated_at=summary.updated_at
    )


@app.post("/review/{user_id}/attempt", response_model=ScheduleResponse)
async def record_attempt(user_id: str, req: AttemptRequest, reconciler: Reconciler):
    """
    Record an answer and return when the item is due next.
    """
    attempt = Attempt(
        item_id=req.item_id, correct=req.correct, latency_ms=req.latency_ms, score=req.score
    )
    result = await reconciler.record_attempt(attempt, user_id)
    return ScheduleResponse(
        item_id=req.item_id,
        interval_days=result.state.interval_days,
        ease_factor=result.state.ease_factor,
        repetitions=result.state.repetitions,
        next_due=result.next_due,
    )


@app.get("/review/{user_id}/due", response_model=DueResponse)
async def get_due(user_id: str, reconciler: Reconciler):
    """Items due for review, most overdue first."""
    return DueResponse(items=await reconciler.get_review_queue(user_id))
