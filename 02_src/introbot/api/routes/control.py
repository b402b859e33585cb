"""Control API routes."""

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...logging_config import get_logger
from .observability import (
    MatchingRunResponse,
    StatisticsResponse,
    run_to_response,
    statistics_to_response,
)

logger = get_logger(__name__)


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class BroadcastRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4096)


class BroadcastQueuedResponse(BaseModel):
    id: int


class BroadcastRunResponse(BaseModel):
    delivered: int


class BanRequest(BaseModel):
    banned: bool = True


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Drop all data and dialog sessions."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/matching/run", response_model=MatchingRunResponse)
    async def run_matching() -> dict:
        """Run matching now, outside the weekly schedule."""
        try:
            result = await app.run_matching()
            return run_to_response(result)
        except Exception as e:
            logger.error(f"Manual matching run failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/broadcast", response_model=BroadcastQueuedResponse)
    async def queue_broadcast(request: BroadcastRequest) -> dict:
        """Queue a message for the daily broadcast."""
        try:
            message_id = await app.storage.add_daily_message(
                request.text, app.clock.now()
            )
            return {"id": message_id}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/broadcast/run", response_model=BroadcastRunResponse)
    async def run_broadcast() -> dict:
        """Send the next queued daily message now."""
        try:
            return {"delivered": await app.broadcast.run()}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/statistics/run", response_model=StatisticsResponse)
    async def run_statistics() -> dict:
        """Collect today's profile statistics now."""
        try:
            return statistics_to_response(await app.statistics.run())
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/users/{user_id}/ban", response_model=StatusResponse)
    async def set_banned(user_id: int, request: BanRequest) -> dict:
        """Ban or unban a user from matching."""
        try:
            found = await app.storage.set_banned(user_id, request.banned)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not found:
            raise HTTPException(status_code=404, detail=f"Profile {user_id} not found")
        return {"status": "ok"}

    return router
