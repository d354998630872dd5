"""Local query API for UI code."""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import FileResponse

from .api_models import (
    AchievementResponse,
    ResumeSyncRequest,
    StatusResponse,
    ToggleResponse,
)
from .config import settings
from .dashboard.renderer import CalendarRenderer
from .dates import try_day_key
from .engine.achievements import DEFAULT_ACHIEVEMENTS
from .remote.errors import AuthError, RemoteError
from .tracker import HabitTracker

VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize components
tracker = HabitTracker.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the ledger before serving, flush it on shutdown."""
    await tracker.init()
    yield
    await tracker.dispose()


app = FastAPI(
    title="HabitFlow",
    description="Habit completion statistics for the HabitFlow app",
    version=VERSION,
    lifespan=lifespan,
)


def get_tracker() -> HabitTracker:
    return tracker


def get_renderer() -> CalendarRenderer:
    return CalendarRenderer(settings.calendar_output_dir)


def parse_day_param(value: Optional[str], name: str = "date") -> Optional[str]:
    """Validate an optional day query parameter."""
    if value is None:
        return None
    day = try_day_key(value)
    if day is None:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value}")
    return day


def check_month(year: int, month: int):
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise HTTPException(status_code=400, detail=f"Invalid month: {year}-{month}")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "HabitFlow",
        "version": VERSION,
        "endpoints": {
            "day": "/stats/day",
            "period": "/stats/period",
            "summary": "/stats/summary",
            "calendar": "/calendar/{year}/{month}",
            "achievements": "/achievements",
            "toggle": "/habits/{habit_id}/toggle",
            "resume_sync": "/sync/resume",
            "status": "/status",
        },
    }


@app.get("/status", response_model=StatusResponse)
async def status(tracker: HabitTracker = Depends(get_tracker)):
    """Tracker status endpoint."""
    return StatusResponse(
        version=VERSION,
        today=tracker.today(),
        habits=len(tracker.habits),
        ledger_ready=tracker.ledger.initialized,
        sync_paused=tracker.coordinator.sync_paused,
    )


@app.get("/stats/day")
async def day_stats(date: Optional[str] = None, tracker: HabitTracker = Depends(get_tracker)):
    """Completion numbers for one day (today by default)."""
    day = parse_day_param(date)
    return asdict(tracker.get_stats(day))


@app.get("/stats/period")
async def period_stats(start: str, end: str, tracker: HabitTracker = Depends(get_tracker)):
    """Completion numbers for an inclusive date range."""
    start_day = parse_day_param(start, "start")
    end_day = parse_day_param(end, "end")
    if start_day > end_day:
        raise HTTPException(status_code=400, detail="start must not be after end")

    report = tracker.get_stats(start_day, end_day)
    result = asdict(report)
    result["totals"]["success_rate"] = report.totals.success_rate
    return result


@app.get("/stats/summary")
async def summary(tracker: HabitTracker = Depends(get_tracker)):
    """Home screen numbers plus the last seven days and the category breakdown."""
    engine = tracker.stats()
    daily = engine.daily_summary()
    return {
        "summary": asdict(daily),
        "week_success_rate": daily.week.success_rate,
        "month_success_rate": daily.month.success_rate,
        "recent_days": [asdict(d) for d in engine.recent_days(7)],
        "categories": [asdict(c) for c in engine.category_breakdown(tracker.categories)],
    }


@app.get("/calendar/{year}/{month}")
async def calendar_month(year: int, month: int, tracker: HabitTracker = Depends(get_tracker)):
    """Per-day heat-map data for a month."""
    check_month(year, month)
    engine = tracker.stats()
    stats = engine.monthly_calendar_stats(year, month)
    return {
        **asdict(stats),
        "grid": engine.calendar_grid(year, month),
    }


@app.get("/calendar/{year}/{month}/image")
async def calendar_image(
    year: int,
    month: int,
    tracker: HabitTracker = Depends(get_tracker),
    renderer: CalendarRenderer = Depends(get_renderer),
):
    """Render the month heat-map to PNG."""
    check_month(year, month)
    engine = tracker.stats()
    stats = engine.monthly_calendar_stats(year, month)
    _, file_path = renderer.render(stats, today=engine.today)
    return FileResponse(file_path, media_type="image/png")


@app.get("/achievements", response_model=list[AchievementResponse])
async def achievements(tracker: HabitTracker = Depends(get_tracker)):
    """Progress for the built-in achievements."""
    results = tracker.stats().achievement_progress(DEFAULT_ACHIEVEMENTS)
    return [AchievementResponse(**asdict(a)) for a in results]


@app.post("/habits/{habit_id}/toggle", response_model=ToggleResponse)
async def toggle_habit(
    habit_id: str, date: Optional[str] = None, tracker: HabitTracker = Depends(get_tracker)
):
    """
    Flip a habit's completion for a day.

    The local state changes even when the server sync fails; the response
    says which happened.
    """
    logger.info(f"Toggle request for habit {habit_id} on {date or 'today'}")
    result = await tracker.toggle(habit_id, date)

    return ToggleResponse(
        habit_id=result.habit_id,
        date=result.day,
        status=result.status.value,
        completed=result.completed,
        applied=result.applied,
        error=str(result.error) if result.error else None,
    )


@app.post("/refresh")
async def refresh(tracker: HabitTracker = Depends(get_tracker)):
    """Reload habits from the server."""
    logger.info("Manual refresh requested")
    try:
        habits = await tracker.refresh()
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except RemoteError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {"status": "success", "habits": len(habits)}


@app.post("/sync/resume", response_model=StatusResponse)
async def resume_sync(
    request: Optional[ResumeSyncRequest] = None, tracker: HabitTracker = Depends(get_tracker)
):
    """Re-enable syncing after logging in again, optionally with a new token."""
    logger.info("Sync resume requested")
    tracker.resume_sync(request.api_token if request else None)
    return await status(tracker)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
