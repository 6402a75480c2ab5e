from fastapi import APIRouter, WebSocket, status
from starlette.websockets import WebSocketDisconnect
import logging
from app.core.errors import AuthError, ServiceError
from app.core.identity import verify_credential

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

async def _send_error(ws: WebSocket, code: str, message: str) -> None:
    await ws.send_json({"type": "error", "data": {"code": code, "message": message}})

@router.websocket("/ws/chat")
async def ws_chat(ws: WebSocket):
    """
    WebSocket endpoint for direct messaging, typing indicators and presence.

    The credential is checked before the handshake is accepted: pass the
    access token as ?token=..., or rely on the accessToken cookie. A missing
    or invalid credential closes the socket with 1008 (policy violation).

    Message flow:
    1. Client connects to /ws/chat?token=...
    2. Server registers the channel; other users get
       {"type": "user_status_change", "data": {"userId", "username", "status": "online"}}
       when this is the user's first open channel
    3. Client sends one of:
       {"type": "send_message", "receiverId": 2, "content": "hi"}
       {"type": "typing_start", "receiverId": 2}
       {"type": "typing_stop", "receiverId": 2}
       {"type": "mark_read", "senderId": 2}
       {"type": "user_online"}
    4. Failures come back as {"type": "error", "data": {"code", "message"}}
       on this channel only; the connection stays open

    Note:
        The caller identity comes from the credential only. Any sender or
        user id inside client frames is ignored.
    """
    gateway = ws.app.state.gateway
    token = ws.query_params.get("token") or ws.cookies.get("accessToken")
    try:
        identity = await verify_credential(token)
    except AuthError as e:
        logger.info("[ws_chat] rejected handshake: %s", e.code)
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await ws.accept()
    await gateway.connect(identity, ws)
    try:
        while True:
            try:
                msg = await ws.receive_json()
            except (ValueError, KeyError):
                # Non-JSON text or a binary frame
                await _send_error(ws, "INVALID_INPUT", "Frames must be JSON objects")
                continue
            if not isinstance(msg, dict):
                await _send_error(ws, "INVALID_INPUT", "Frames must be JSON objects")
                continue

            kind = msg.get("type")
            try:
                if kind == "send_message":
                    await gateway.send_message(
                        identity.user_id, msg.get("receiverId"), msg.get("content"), msg.get("attachmentUrl")
                    )
                elif kind == "typing_start":
                    await gateway.typing_start(identity, msg.get("receiverId"))
                elif kind == "typing_stop":
                    await gateway.typing_stop(identity, msg.get("receiverId"))
                elif kind == "mark_read":
                    updated = await gateway.mark_read(identity.user_id, msg.get("senderId"))
                    await ws.send_json({"type": "messages_read", "data": {"senderId": msg.get("senderId"), "updated": updated}})
                elif kind == "user_online":
                    # Re-announce presence, e.g. after the client regained focus
                    await gateway.presence_change(identity.user_id, identity.username, "online")
                else:
                    await _send_error(ws, "UNKNOWN_EVENT", f"Unsupported event type: {kind!r}")
            except ServiceError as e:
                await _send_error(ws, e.code, e.message)
    except WebSocketDisconnect:
        logger.info("[ws_chat] %s disconnected", identity.username)
    finally:
        await gateway.disconnect(ws, identity.username)
