# controllers/conversation_controller.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from json import JSONDecodeError
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from helpers import profile_store
from helpers.errors import ValidationError

router = APIRouter()
log = logging.getLogger("conversations")

REQUIRED_MESSAGE = "Phone number and transcript required."


class TranscriptTurn(BaseModel):
    speaker: Optional[str] = None
    message: Optional[str] = None
    timestamp: Optional[datetime] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


async def read_json_body(req: Request) -> Dict[str, Any]:
    """Empty or non-object bodies come back as {} so field checks answer 400, not 422."""
    raw = await req.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw.decode("utf-8"))
    except (JSONDecodeError, UnicodeDecodeError) as e:
        log.warning("Invalid JSON body: %s", e)
        return {}
    return body if isinstance(body, dict) else {}


def parse_transcript(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        raise ValidationError("transcript must be a list of {speaker, message, timestamp} turns.")
    try:
        return [TranscriptTurn.model_validate(t).to_json() for t in value]
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid transcript turn: {e.errors()[0]['msg']}") from e


@router.post("/conversation")
async def create_conversation(req: Request):
    body = await read_json_body(req)
    phone_number = body.get("phoneNumber")
    transcript = body.get("transcript")
    if not phone_number or transcript is None or transcript == "":
        raise ValidationError(REQUIRED_MESSAGE)
    if not isinstance(phone_number, str):
        raise ValidationError("phoneNumber must be a string.")

    turns = parse_transcript(transcript)

    user = await profile_store.get_or_create_user(phone_number)
    conversation = await profile_store.save_conversation(user.id, turns)
    log.info("conversation saved id=%s user=%s turns=%s", conversation.id, user.id, len(turns))
    return JSONResponse(
        status_code=201,
        content={
            "message": "Conversation saved.",
            "conversation": profile_store.serialize_conversation(conversation),
        },
    )
