# app/models/mentorship.py
"""
Database models for the mentorship workflow.

MentorshipRequest: pending -> accepted | declined | withdrawn (all terminal)
ActiveMentorship:  active -> completed (terminal)
"""
from tortoise import fields, models

DURATIONS = ("1_month", "3_months", "6_months", "1_year", "ongoing")

class MentorshipRequest(models.Model):
    """
    A mentee's ask directed at a mentor profile.

    At most one request per (mentee, mentor) pair may be pending or accepted
    at a time; the service checks this before inserting.
    """
    id = fields.IntField(pk=True)
    mentor = fields.ForeignKeyField("models.Mentor", related_name="requests", on_delete=fields.CASCADE)
    mentee = fields.ForeignKeyField("models.User", related_name="mentorship_requests", on_delete=fields.CASCADE)
    message = fields.TextField(null=True)
    goals = fields.TextField(null=True)
    preferred_duration = fields.CharField(max_length=16, default="3_months")  # One of DURATIONS
    status = fields.CharField(max_length=16, default="pending", index=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "mentorship_requests"


class ActiveMentorship(models.Model):
    """
    Confirmed mentor/mentee relationship, created exactly once when its
    request is accepted. Never deleted while referenced; it ends by moving
    to status "completed".
    """
    id = fields.IntField(pk=True)
    request = fields.OneToOneField(
        "models.MentorshipRequest",
        related_name="mentorship",
        on_delete=fields.RESTRICT,
    )
    mentor = fields.ForeignKeyField("models.Mentor", related_name="mentorships", on_delete=fields.RESTRICT)
    mentee = fields.ForeignKeyField("models.User", related_name="mentorships_as_mentee", on_delete=fields.RESTRICT)
    goals = fields.TextField(null=True)
    start_date = fields.DateField()
    expected_end_date = fields.DateField(null=True)  # None for "ongoing"
    end_date = fields.DateField(null=True)
    completion_reason = fields.TextField(null=True)
    status = fields.CharField(max_length=16, default="active", index=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "active_mentorships"
