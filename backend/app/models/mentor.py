# app/models/mentor.py
"""
Database models for mentor profiles and mentee matching preferences.
"""
from tortoise import fields, models

AVAILABILITY_STATUSES = ("available", "busy", "unavailable")

class Mentor(models.Model):
    """
    A user's opt-in mentoring profile.

    One active profile per user is enforced by the service layer, not by a
    unique constraint: stepping down flips is_active, and becoming a mentor
    again reactivates the same row instead of inserting a second one.

    current_mentees is a live counter of this profile's active mentorships.
    Only request acceptance (+1) and mentorship completion (-1) touch it, and
    always inside the same transaction as the ActiveMentorship row change.
    """
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField(
        "models.User",
        related_name="mentor_profiles",
        on_delete=fields.CASCADE,
    )
    bio = fields.TextField()
    expertise_areas = fields.JSONField(default=list)  # List of expertise tags, e.g. ["python", "career"]
    years_of_experience = fields.IntField(default=0)
    max_mentees = fields.IntField(default=3)  # Capacity ceiling
    current_mentees = fields.IntField(default=0)
    availability_status = fields.CharField(max_length=16, default="available")  # available / busy / unavailable
    preferred_communication = fields.CharField(max_length=32, default="chat")
    mentoring_style = fields.CharField(max_length=64, null=True)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "mentors"

    @property
    def open_slots(self) -> int:
        return max(self.max_mentees - self.current_mentees, 0)


class MentorshipPreference(models.Model):
    """Matching preferences a mentee saves before browsing mentors (one row per user)."""
    id = fields.IntField(pk=True)
    user = fields.OneToOneField(
        "models.User",
        related_name="mentorship_preference",
        on_delete=fields.CASCADE,
    )
    preferred_skills = fields.JSONField(default=list)
    career_stage = fields.CharField(max_length=64, null=True)
    preferred_mentor_experience = fields.IntField(null=True)  # Minimum years of experience wanted
    preferred_communication = fields.CharField(max_length=32, null=True)
    preferred_meeting_frequency = fields.CharField(max_length=32, null=True)
    specific_goals = fields.TextField(null=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "mentorship_preferences"
