# backend/app/services/messaging.py
"""
Realtime Messaging Gateway

Direct messages are persisted first and pushed second: the database row is
the durability boundary, the push to the ConnectionRegistry is a
best-effort notification. For one sender -> receiver pair, messages reach
push channels in the order they were persisted, because each send awaits
its insert before pushing.

Typing indicators and presence changes are transient: never persisted,
dropped when nobody is listening.

Pushed events:
- new_message          -> sender and receiver channels
- user_typing          -> receiver channels
- user_stopped_typing  -> receiver channels
- user_status_change   -> every other connected user
"""
import datetime as dt
import logging
from typing import Optional

from starlette.websockets import WebSocket
from tortoise.expressions import Q

from app.config import settings
from app.core.errors import NotFound, ValidationError, persistence_guard
from app.core.identity import CallerIdentity
from app.core.pubsub import ConnectionRegistry
from app.models.message import Message
from app.models.user import User

logger = logging.getLogger(__name__)

PRESENCE_STATUSES = ("online", "offline")


def _iso(ts: Optional[dt.datetime]) -> Optional[str]:
    if ts is None:
        return None
    return ts.isoformat() + "Z" if ts.tzinfo is None else ts.isoformat()


def message_to_dict(m: Message, sender: User, receiver: User) -> dict:
    return {
        "id": m.id,
        "senderId": sender.id,
        "receiverId": receiver.id,
        "senderUsername": sender.username,
        "receiverUsername": receiver.username,
        "senderName": sender.full_name or sender.username,
        "receiverName": receiver.full_name or receiver.username,
        "content": m.content,
        "attachmentUrl": m.attachment_url,
        "timestamp": _iso(m.timestamp),
        "read": m.is_read,
    }


def _coerce_user_id(value, field: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{field} is required", code="INVALID_INPUT")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a user id", code="INVALID_INPUT")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a user id", code="INVALID_INPUT")


class MessagingGateway:
    """
    Owns message delivery on top of an explicitly constructed ConnectionRegistry.
    One instance lives on app.state for the lifetime of the process.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    # -------- connections --------
    async def connect(self, identity: CallerIdentity, ws: WebSocket) -> None:
        """Register an accepted, authenticated channel; announce presence on the first one."""
        first = self.registry.register(identity.user_id, ws)
        logger.info("[chat] %s connected (first=%s)", identity.username, first)
        if first:
            await self.presence_change(identity.user_id, identity.username, "online")

    async def disconnect(self, ws: WebSocket, username: Optional[str] = None) -> None:
        """Remove exactly this channel; announce offline when it was the user's last one."""
        removed = self.registry.unregister(ws)
        if removed is None:
            return
        user_id, went_offline = removed
        logger.info("[chat] user %s disconnected (offline=%s)", user_id, went_offline)
        if went_offline:
            await self.presence_change(user_id, username, "offline")

    # -------- messages --------
    async def send_message(
        self,
        sender_id,
        receiver_id,
        content: Optional[str],
        attachment_url: Optional[str] = None,
    ) -> dict:
        """
        Persist a direct message, then push it to both parties.

        Returns:
            dict: the persisted message, including id and both usernames

        Raises:
            ValidationError: missing ids, empty or over-long content
            NotFound: sender or receiver does not exist
            PersistenceError: insert failed (nothing is pushed)
        """
        sender_id = _coerce_user_id(sender_id, "senderId")
        receiver_id = _coerce_user_id(receiver_id, "receiverId")
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Receiver ID and content are required", code="INVALID_INPUT")
        if len(content) > settings.max_message_length:
            raise ValidationError(
                f"Message exceeds {settings.max_message_length} characters", code="MESSAGE_TOO_LONG"
            )

        async with persistence_guard("send message"):
            sender = await User.get_or_none(id=sender_id)
            receiver = await User.get_or_none(id=receiver_id)
            if sender is None or receiver is None:
                raise NotFound("Receiver not found", code="USER_NOT_FOUND")
            message = await Message.create(
                sender_id=sender.id,
                receiver_id=receiver.id,
                content=content,
                attachment_url=attachment_url,
                is_read=False,
            )

        payload = message_to_dict(message, sender, receiver)
        delivered = await self.registry.push(sender.id, "new_message", payload)
        if receiver.id != sender.id:
            delivered += await self.registry.push(receiver.id, "new_message", payload)
        logger.debug("[chat] message %s pushed to %d channel(s)", message.id, delivered)
        return payload

    async def mark_read(self, receiver_id: int, sender_id) -> int:
        """Mark every unread message from sender_id to receiver_id as read. Returns the count."""
        sender_id = _coerce_user_id(sender_id, "senderId")
        async with persistence_guard("mark messages read"):
            return await Message.filter(
                sender_id=sender_id, receiver_id=receiver_id, is_read=False
            ).update(is_read=True)

    async def get_conversation(self, user_id: int, other_id: int, limit: int = 200) -> list[dict]:
        """Messages exchanged between two users, oldest first (last `limit` of them)."""
        async with persistence_guard("load conversation"):
            other = await User.get_or_none(id=other_id)
            if other is None:
                raise NotFound("User not found", code="USER_NOT_FOUND")
            me = await User.get(id=user_id)
            rows = await Message.filter(
                Q(sender_id=user_id, receiver_id=other_id) | Q(sender_id=other_id, receiver_id=user_id)
            ).order_by("-timestamp", "-id").limit(limit)
        users = {me.id: me, other.id: other}
        rows.reverse()
        return [message_to_dict(m, users[m.sender_id], users[m.receiver_id]) for m in rows]

    # -------- transient events --------
    async def typing_start(self, sender: CallerIdentity, receiver_id) -> int:
        receiver_id = _coerce_user_id(receiver_id, "receiverId")
        return await self.registry.push(
            receiver_id, "user_typing", {"userId": sender.user_id, "username": sender.username}
        )

    async def typing_stop(self, sender: CallerIdentity, receiver_id) -> int:
        receiver_id = _coerce_user_id(receiver_id, "receiverId")
        return await self.registry.push(receiver_id, "user_stopped_typing", {"userId": sender.user_id})

    async def presence_change(self, user_id: int, username: Optional[str], status: str) -> int:
        if status not in PRESENCE_STATUSES:
            raise ValidationError(f"Unknown presence status: {status!r}")
        return await self.registry.broadcast(
            "user_status_change",
            {"userId": user_id, "username": username, "status": status},
            exclude_user_id=user_id,
        )
