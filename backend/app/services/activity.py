# backend/app/services/activity.py
"""
Best-effort activity log.

Entries annotate mentorship transitions for the user's activity feed. A
failed write is logged and dropped; it never aborts or rolls back the
operation it describes, so callers record activity only after their own
transaction has committed.
"""
import logging

from app.models.activity import UserActivity

logger = logging.getLogger(__name__)


async def record_activity(user_id: int, description: str, activity_type: str = "mentorship") -> bool:
    try:
        await UserActivity.create(
            user_id=user_id,
            activity_type=activity_type,
            description=description[:512],
        )
        return True
    except Exception:
        logger.warning("[activity] failed to record %r for user %s", description, user_id, exc_info=True)
        return False
