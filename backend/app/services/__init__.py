"""
Services Module

Domain logic behind the REST and WebSocket routers:
- mentorship: Mentor profiles, request/mentorship lifecycle, preferences, stats
- messaging: Direct messages, typing indicators and presence over the connection registry
- activity: Best-effort activity log written after mentorship transitions
"""

from .activity import record_activity
from .messaging import MessagingGateway, message_to_dict

__all__ = [
    "record_activity",
    "MessagingGateway",
    "message_to_dict",
]
