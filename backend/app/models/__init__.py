# app/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: Member account and authentication model
- Mentor: Opt-in mentoring profile with capacity counters
- MentorshipPreference: Mentee matching preferences
- MentorshipRequest: Mentee -> mentor request (pending/accepted/declined/withdrawn)
- ActiveMentorship: Accepted mentorship (active/completed)
- Message: Direct message between two users
- UserActivity: Best-effort activity log entry
"""
from .user import User
from .mentor import Mentor, MentorshipPreference
from .mentorship import MentorshipRequest, ActiveMentorship
from .message import Message
from .activity import UserActivity
