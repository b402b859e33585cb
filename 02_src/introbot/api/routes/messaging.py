"""Messaging API routes: inbound chat updates and the outbox."""

from datetime import datetime

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...logging_config import get_logger
from ...models import Contact, OutgoingMessage

logger = get_logger(__name__)


class UpdateRequest(BaseModel):
    """Inbound update from the chat transport."""

    user_id: int
    text: str | None = None
    callback: str | None = Field(None, description="Token of the pressed button")
    message_id: int | None = Field(None, description="Message the button belongs to")
    username: str | None = None
    photo_ref: str | None = None


class ButtonResponse(BaseModel):
    label: str
    callback: str


class OutgoingMessageResponse(BaseModel):
    """Response model for an outgoing message."""

    id: int
    user_id: int
    kind: str
    text: str | None
    buttons: list[ButtonResponse]
    photo_ref: str | None
    created_at: datetime
    edited_at: datetime | None


class UpdateResponse(BaseModel):
    """Messages produced while handling one update."""

    messages: list[OutgoingMessageResponse]
    edited: OutgoingMessageResponse | None = None


def to_response(message: OutgoingMessage) -> dict:
    return {
        "id": message.id,
        "user_id": message.user_id,
        "kind": message.kind,
        "text": message.text,
        "buttons": [{"label": b.label, "callback": b.callback} for b in message.buttons],
        "photo_ref": message.photo_ref,
        "created_at": message.created_at,
        "edited_at": message.edited_at,
    }


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/updates", response_model=UpdateResponse)
    async def receive_update(request: UpdateRequest) -> dict:
        """Run one inbound update through the dialog state machine."""
        try:
            # The outbox snapshot is taken under the user's session lock
            async with app.sessions.lock(request.user_id):
                last_id = await app.storage.get_last_outgoing_id()
                if request.username or request.photo_ref:
                    await app.storage.save_contact(
                        Contact(
                            user_id=request.user_id,
                            alias=request.username,
                            photo_ref=request.photo_ref,
                        )
                    )

                await app.dialog.dispatch(
                    user_id=request.user_id,
                    text=request.text,
                    callback=request.callback,
                    message_id=request.message_id,
                )

                messages = await app.storage.get_outgoing_messages(
                    request.user_id, after_id=last_id
                )
            edited = None
            if request.message_id is not None:
                original = await app.storage.get_outgoing_message(request.message_id)
                if original and original.user_id == request.user_id and original.edited_at:
                    edited = to_response(original)

            return {"messages": [to_response(m) for m in messages], "edited": edited}
        except Exception as e:
            logger.error(f"Update for {request.user_id} failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/outbox/{user_id}", response_model=list[OutgoingMessageResponse])
    async def get_outbox(
        user_id: int,
        after_id: int | None = Query(None, description="Only messages after this id"),
        limit: int = Query(100, ge=1, le=1000),
    ) -> list[dict]:
        """Outgoing messages of a user in send order."""
        try:
            messages = await app.storage.get_outgoing_messages(
                user_id, after_id=after_id, limit=limit
            )
            return [to_response(m) for m in messages]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
