# helpers/profile_store.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from tortoise.exceptions import BaseORMException

from helpers.errors import StorageError
from models.conversation import Conversation
from models.user import DEFAULT_SPEECH_STYLE, CallHistoryEntry, User, default_name

log = logging.getLogger("profile_store")


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if isinstance(dt, datetime) else dt


async def get_or_create_user(phone_number: str) -> User:
    try:
        user, created = await User.get_or_create(
            phone_number=phone_number,
            defaults={
                "name": default_name(phone_number),
                "speech_style": DEFAULT_SPEECH_STYLE,
                "favorite_topics": [],
            },
        )
    except BaseORMException as e:
        raise StorageError(f"Could not load user {phone_number}: {e}") from e
    if created:
        log.info("New user detected: %s. Created profile id=%s", phone_number, user.id)
    return user


async def get_user_by_phone_number(phone_number: str) -> Optional[User]:
    try:
        return await User.get_or_none(phone_number=phone_number)
    except BaseORMException as e:
        raise StorageError(f"Could not load user {phone_number}: {e}") from e


async def append_call_history(user: User, entry: str) -> CallHistoryEntry:
    try:
        row = await CallHistoryEntry.create(user=user, transcript=entry)
    except BaseORMException as e:
        raise StorageError(f"Could not append history for user {user.id}: {e}") from e
    log.info("call history +1 user=%s entry_id=%s", user.id, row.id)
    return row


async def save_conversation(user_id: int, transcript: List[Dict[str, Any]]) -> Conversation:
    try:
        return await Conversation.create(user_id=user_id, transcript=transcript)
    except BaseORMException as e:
        raise StorageError(f"Could not save conversation for user {user_id}: {e}") from e


async def serialize_user(user: User) -> Dict[str, Any]:
    try:
        history = await CallHistoryEntry.filter(user_id=user.id).order_by("id")
    except BaseORMException as e:
        raise StorageError(f"Could not load history for user {user.id}: {e}") from e
    return {
        "id": user.id,
        "phoneNumber": user.phone_number,
        "name": user.name,
        "preferences": {
            "speechStyle": user.speech_style,
            "favoriteTopics": list(user.favorite_topics or []),
        },
        "callHistory": [
            {"date": _iso(h.date), "transcript": h.transcript} for h in history
        ],
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def serialize_conversation(conv: Conversation) -> Dict[str, Any]:
    return {
        "id": conv.id,
        "userId": conv.user_id,
        "transcript": conv.transcript or [],
        "date": _iso(conv.date),
        "createdAt": _iso(conv.created_at),
        "updatedAt": _iso(conv.updated_at),
    }
