# app/api/v1/routers/messages.py
from fastapi import APIRouter, Depends, Query
from app.api.v1.deps import get_current_identity, get_gateway
from app.core.identity import CallerIdentity
from app.schemas.message import MarkReadIn, SendMessageIn
from app.services.messaging import MessagingGateway

router = APIRouter(prefix="/messages", tags=["messages"])

@router.get("/online", response_model=dict)
async def online_users(
    caller: CallerIdentity = Depends(get_current_identity),
    gateway: MessagingGateway = Depends(get_gateway),
):
    """Ids of users holding at least one live chat connection."""
    return {"success": True, "data": {"userIds": gateway.registry.online_user_ids()}}

@router.post("/send", response_model=dict)
async def send_message(
    body: SendMessageIn,
    caller: CallerIdentity = Depends(get_current_identity),
    gateway: MessagingGateway = Depends(get_gateway),
):
    """
    Send a direct message over HTTP.

    The message is stored first, then pushed as "new_message" to every live
    chat connection of both sender and receiver.

    Raises:
        ValidationError (400): INVALID_INPUT / MESSAGE_TOO_LONG
        NotFound (404): USER_NOT_FOUND
    """
    message = await gateway.send_message(caller.user_id, body.receiverId, body.content, body.attachmentUrl)
    return {"success": True, "data": {"message": message}}

@router.post("/mark-read", response_model=dict)
async def mark_read(
    body: MarkReadIn,
    caller: CallerIdentity = Depends(get_current_identity),
    gateway: MessagingGateway = Depends(get_gateway),
):
    """Mark every unread message from body.senderId to the caller as read."""
    updated = await gateway.mark_read(caller.user_id, body.senderId)
    return {"success": True, "data": {"updated": updated}}

@router.get("/{other_id}", response_model=dict)
async def conversation(
    other_id: int,
    caller: CallerIdentity = Depends(get_current_identity),
    gateway: MessagingGateway = Depends(get_gateway),
    limit: int = Query(200, ge=1, le=1000),
):
    """Message history between the caller and another user, oldest first."""
    items = await gateway.get_conversation(caller.user_id, other_id, limit=limit)
    return {"success": True, "data": {"items": items}}
