"""Observability API routes."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...models import MatchingRunResult, ProfileStatistics


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


class PairResponse(BaseModel):
    user_id_1: int
    user_id_2: int
    score: float


class MatchingRunResponse(BaseModel):
    """Response model for a matching run."""

    id: int | None
    executed_at: datetime
    status: str
    pairs: list[PairResponse]
    unpaired_user_ids: list[int]
    fallback_user_id: int | None
    error: str | None


class StatisticsResponse(BaseModel):
    """Response model for a statistics snapshot."""

    date: date
    total: int
    visible: int
    banned: int
    bot_blocked: int
    eligible: int


def run_to_response(result: MatchingRunResult) -> dict:
    return {
        "id": result.id,
        "executed_at": result.executed_at,
        "status": result.status.value,
        "pairs": [
            {"user_id_1": p.user_id_1, "user_id_2": p.user_id_2, "score": p.score}
            for p in result.pairs
        ],
        "unpaired_user_ids": list(result.unpaired_user_ids),
        "fallback_user_id": result.fallback_user_id,
        "error": result.error,
    }


def statistics_to_response(stats: ProfileStatistics) -> dict:
    return {
        "date": stats.date,
        "total": stats.total,
        "visible": stats.visible,
        "banned": stats.banned,
        "bot_blocked": stats.bot_blocked,
        "eligible": stats.eligible,
    }


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Filter by event type"),
        actor: str | None = Query(None, description="Filter by actor"),
    ) -> list[dict]:
        """Get trace events with optional filters."""
        try:
            after_dt = None
            if after:
                try:
                    after_dt = datetime.fromisoformat(after)
                except ValueError:
                    raise HTTPException(
                        status_code=400, detail="Invalid after timestamp format"
                    )

            event_types = [event_type] if event_type else None

            events = await app.storage.get_trace_events(
                after=after_dt,
                event_types=event_types,
                actor=actor,
                limit=limit,
            )

            return [
                {
                    "id": e.id,
                    "event_type": e.event_type,
                    "actor": e.actor,
                    "data": e.data,
                    "timestamp": e.timestamp.isoformat(),
                }
                for e in events
            ]

        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/matching/runs", response_model=list[MatchingRunResponse])
    async def get_matching_runs(limit: int = Query(20, ge=1, le=200)) -> list[dict]:
        """Recorded matching runs, newest first."""
        try:
            runs = await app.storage.list_matching_results(limit=limit)
            return [run_to_response(r) for r in runs]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/statistics", response_model=list[StatisticsResponse])
    async def get_statistics(limit: int = Query(30, ge=1, le=365)) -> list[dict]:
        """Daily profile statistics, newest first."""
        try:
            snapshots = await app.storage.list_profile_statistics(limit=limit)
            return [statistics_to_response(s) for s in snapshots]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
