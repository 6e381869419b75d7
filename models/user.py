# models/user.py
from tortoise import fields
from tortoise.models import Model

DEFAULT_SPEECH_STYLE = "neutral"


def default_name(phone_number: str) -> str:
    return f"User-{phone_number}"


class User(Model):
    id = fields.IntField(primary_key=True)
    phone_number = fields.CharField(max_length=32, unique=True)
    name = fields.CharField(max_length=255)

    # preferences
    speech_style = fields.CharField(max_length=100, default=DEFAULT_SPEECH_STYLE)
    favorite_topics = fields.JSONField(default=list)

    call_history: fields.ReverseRelation["CallHistoryEntry"]
    conversations: fields.ReverseRelation["Conversation"]

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "user_profiles"

    def __str__(self) -> str:
        return f"{self.name} <{self.phone_number}>"


class CallHistoryEntry(Model):
    """Append-only; insertion order (`id`) is the history order."""

    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="call_history", on_delete=fields.CASCADE)
    date = fields.DatetimeField(auto_now_add=True)
    transcript = fields.TextField()

    class Meta:
        table = "call_history"
        ordering = ["id"]
