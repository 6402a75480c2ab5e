# app/models/message.py
from tortoise import fields, models

class Message(models.Model):
    id = fields.IntField(pk=True)
    sender = fields.ForeignKeyField("models.User", related_name="sent_messages", on_delete=fields.CASCADE)
    receiver = fields.ForeignKeyField("models.User", related_name="received_messages", on_delete=fields.CASCADE)
    content = fields.TextField()
    attachment_url = fields.CharField(max_length=1024, null=True)  # Reference only; storage lives elsewhere
    timestamp = fields.DatetimeField(auto_now_add=True, index=True)
    is_read = fields.BooleanField(default=False)

    class Meta:
        table = "messages"
