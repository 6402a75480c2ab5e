# app/models/user.py
"""
Database model for users.
Represents a member account of the alumni network, containing authentication
credentials, basic profile information, and role-based access control.
"""
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Has at most one active Mentor profile (via related_name="mentor_profiles")
    - Sends / receives Messages (related_name="sent_messages" / "received_messages")
    - Has many UserActivity entries (related_name="activities")

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Username must be unique across all users
    - Role determines access level (user vs admin)
    """
    id = fields.IntField(pk=True)  # Numeric primary key, referenced everywhere else
    username = fields.CharField(
        max_length=150,
        unique=True,
        index=True
    )  # Login name (must be unique, indexed for fast lookups)
    email = fields.CharField(max_length=256, null=True)
    full_name = fields.CharField(max_length=256, null=True)  # Display name shown next to messages and mentor cards
    password_hash = fields.CharField(max_length=255)
    role = fields.CharField(max_length=16, default="user")  # "user" (default) or "admin"
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
