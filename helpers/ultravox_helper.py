# helpers/ultravox_helper.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from helpers.errors import UpstreamError
from helpers.settings import Settings
from models.user import User

log = logging.getLogger("ultravox")

FIRST_SPEAKER_USER = "FIRST_SPEAKER_USER"


class VoiceSession(BaseModel):
    """The part of Ultravox's create-call response we rely on."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    join_url: str = Field(alias="joinUrl", min_length=1)
    call_id: Optional[str] = Field(default=None, alias="callId")


# ------------------ AUTH HEADERS ------------------
def get_headers(settings: Settings) -> Dict[str, str]:
    return {
        "X-API-Key": settings.ultravox_api_key,
        "Content-Type": "application/json",
    }


# ------------------ Payload builders ------------------
def generate_system_prompt(user: User) -> str:
    topics = ", ".join(user.favorite_topics or [])
    return (
        "When the user accepts the call, wait for them to speak.\n"
        "You talk slow. You speak slow. You speak like a normal conversation.\n"
        "You do not repeat the same style of remarks; keep it fresh with each response.\n"
        "Every sentence is brand new. Keep replies down to 1 to 3 sentences.\n"
        f"Speak in a {user.speech_style} manner.\n"
        f"Try to talk about: {topics}."
    )


def build_call_config(user: User, settings: Settings) -> Dict[str, Any]:
    return {
        "systemPrompt": generate_system_prompt(user),
        "model": settings.ultravox_model,
        "voice": settings.ultravox_voice,
        "temperature": settings.ultravox_temperature,
        "firstSpeaker": FIRST_SPEAKER_USER,
        # media arrives through a Twilio <Stream>, not a WebRTC client
        "medium": {"twilio": {}},
    }


# ------------------ Create call ------------------
async def create_session(
    user: User,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> VoiceSession:
    """
    Create an Ultravox call for `user` and return its join URL.
    Any non-2xx answer, transport failure or malformed body raises UpstreamError.
    """
    payload = build_call_config(user, settings)

    async def _post(c: httpx.AsyncClient) -> httpx.Response:
        return await c.post(settings.ultravox_api_url, headers=get_headers(settings), json=payload)

    try:
        if client is not None:
            response = await _post(client)
        else:
            async with httpx.AsyncClient(timeout=30.0) as c:
                response = await _post(c)
    except httpx.HTTPError as e:
        raise UpstreamError(f"Ultravox request failed: {e}") from e

    if response.status_code not in (200, 201):
        log.error("[create_session] error %s: %s", response.status_code, response.text[:300])
        raise UpstreamError(f"Ultravox rejected call creation ({response.status_code})")

    try:
        session = VoiceSession.model_validate(response.json())
    except (ValueError, PydanticValidationError) as e:
        log.error("[create_session] malformed response: %s", response.text[:300])
        raise UpstreamError(f"Ultravox returned a malformed call: {e}") from e

    log.info("Ultravox call created call_id=%s for user=%s", session.call_id, user.id)
    return session
