# app/core/bootstrap.py
"""
Startup tasks for the alumni network backend.
Seeds an administrator account so mentorships can be moderated from day one.
"""
import os
import logging
from app.models.user import User
from app.core.security import hash_password

logger = logging.getLogger("uvicorn.error")

async def ensure_default_admin() -> User | None:
    """
    Create an admin account when the database has none.

    Only takes effect when no user with role="admin" exists and
    ADMIN_PASSWORD is set (a weak built-in default is never used).

    Environment variables:
      ADMIN_USERNAME  (default: "admin")
      ADMIN_EMAIL     (default: "admin@example.com")
      ADMIN_FULL_NAME (default: "Network Administrator")
      ADMIN_PASSWORD  (required)

    Returns:
        The created admin, or None when nothing was created
    """
    if await User.filter(role="admin").exists():
        return None

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return None

    admin_username = os.getenv("ADMIN_USERNAME", "admin")
    # A member may already have registered as "admin"; pick the next free name
    base_username = admin_username
    suffix = 1
    while await User.filter(username=admin_username).exists():
        suffix += 1
        admin_username = f"{base_username}{suffix}"

    u = await User.create(
        username=admin_username,
        email=os.getenv("ADMIN_EMAIL", "admin@example.com"),
        full_name=os.getenv("ADMIN_FULL_NAME", "Network Administrator"),
        password_hash=hash_password(admin_password),
        role="admin",
    )
    logger.warning("[bootstrap] Created default admin -> username=%s id=%s", u.username, u.id)
    return u
