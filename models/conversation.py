# models/conversation.py
from tortoise import fields
from tortoise.models import Model


class Conversation(Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="conversations", on_delete=fields.CASCADE)

    # [{speaker, message, timestamp}]
    transcript = fields.JSONField(default=list)
    date = fields.DatetimeField(auto_now_add=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "conversations"
