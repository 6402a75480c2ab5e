# app/models/activity.py
from tortoise import fields, models

class UserActivity(models.Model):
    """
    Audit trail entry recorded alongside mentorship transitions.
    Never authoritative: rows may be missing if the write failed.
    """
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField("models.User", related_name="activities", on_delete=fields.CASCADE)
    activity_type = fields.CharField(max_length=32, default="mentorship")
    description = fields.CharField(max_length=512)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "user_activities"
