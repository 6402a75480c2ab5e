# backend/app/core/pubsub.py
"""
Connection registry for WebSocket push channels.
Maps authenticated user ids to their live sockets so the messaging gateway
can fan events out to every tab/device a user has open.
"""
from typing import Dict, Optional, Set, Tuple
from starlette.websockets import WebSocket
import json
import logging

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    In-memory map of user id -> live WebSocket channels.

    Architecture:
    - Router is responsible for ws.accept(); this module only handles registration and routing
    - A user may hold several channels at once; they accumulate, never replace each other
    - Channels carry no authority: the identity is resolved before register() is called

    All mutations happen without awaiting, and publishing iterates over a
    snapshot, so concurrent handlers on the event loop can register, remove
    and push safely.

    Data structure:
    - _channels: Dict[user_id, Set[WebSocket]]
    - _owners:   Dict[WebSocket, user_id]  (reverse index for disconnect)

    A channel that fails a send is taken out of _channels at once but stays
    in _owners, so the disconnect that follows still reports went_offline
    and the gateway can announce it.

    Wire format of every pushed event: {"type": <event>, "data": <payload>}
    """
    def __init__(self):
        self._channels: Dict[int, Set[WebSocket]] = {}
        self._owners: Dict[WebSocket, int] = {}
        # Users whose last channel was dropped by a failed send and not yet announced offline
        self._dropped_offline: Set[int] = set()

    # -------- register / unregister (no accept, only bookkeeping) --------
    def register(self, user_id: int, ws: WebSocket) -> bool:
        """
        Register a channel under a user id.

        Returns:
            True if this is the user's first live channel (user just came online)
        """
        conns = self._channels.setdefault(user_id, set())
        first = not conns
        conns.add(ws)
        self._dropped_offline.discard(user_id)
        self._owners[ws] = user_id
        return first

    def unregister(self, ws: WebSocket) -> Optional[Tuple[int, bool]]:
        """
        Remove exactly this channel.

        Returns:
            (user_id, went_offline) or None if the channel was not registered
        """
        user_id = self._owners.pop(ws, None)
        if user_id is None:
            return None
        conns = self._channels.get(user_id)
        if conns is None or ws not in conns:
            # Already dropped by a failed send
            went_offline = user_id in self._dropped_offline
            self._dropped_offline.discard(user_id)
            return user_id, went_offline
        conns.discard(ws)
        if not conns:
            self._channels.pop(user_id, None)
            return user_id, True
        return user_id, False

    def _drop_channel(self, ws: WebSocket) -> None:
        user_id = self._owners.get(ws)
        conns = self._channels.get(user_id)
        if conns is None:
            return
        conns.discard(ws)
        if not conns:
            self._channels.pop(user_id, None)
            self._dropped_offline.add(user_id)

    def channels_for(self, user_id: int) -> Set[WebSocket]:
        return set(self._channels.get(user_id, set()))

    def is_online(self, user_id: int) -> bool:
        return bool(self._channels.get(user_id))

    def online_user_ids(self) -> list[int]:
        return sorted(self._channels)

    # -------- publish --------
    async def _send(self, ws: WebSocket, msg: str) -> bool:
        try:
            await ws.send_text(msg)
            return True
        except Exception as e:
            # Stale socket: later pushes skip it, unregister() still owns cleanup
            logger.debug("[registry] dropping stale channel: %r", e)
            self._drop_channel(ws)
            return False

    async def push(self, user_id: int, event: str, payload: dict) -> int:
        """
        Send an event to every live channel of one user.

        Returns:
            Number of channels the event was written to (0 if the user is offline)

        Note: Never raises on delivery failure; push is a notification, not a durability boundary.
        """
        conns = list(self._channels.get(user_id, set()))
        msg = json.dumps({"type": event, "data": payload}, default=str)
        delivered = 0
        for s in conns:
            if await self._send(s, msg):
                delivered += 1
        return delivered

    async def broadcast(self, event: str, payload: dict, exclude_user_id: Optional[int] = None) -> int:
        """Send an event to every connected user except exclude_user_id."""
        msg = json.dumps({"type": event, "data": payload}, default=str)
        delivered = 0
        for user_id, conns in list(self._channels.items()):
            if user_id == exclude_user_id:
                continue
            for s in list(conns):
                if await self._send(s, msg):
                    delivered += 1
        return delivered
