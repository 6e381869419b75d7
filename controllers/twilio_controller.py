# controllers/twilio_controller.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response

router = APIRouter()
log = logging.getLogger("twilio_webhook")


async def parse_incoming_form(req: Request) -> dict:
    """Twilio posts x-www-form-urlencoded; anything unreadable becomes {}."""
    try:
        form = await req.form()
        return dict(form)
    except Exception as e:
        log.warning("Form parse failed: %s", e)
        return {}


# Registered as recordingStatusCallback on every outbound call.
# Informational only: the recording worker polls for the file itself.
@router.post("/recording-status")
async def recording_status(req: Request):
    body = await parse_incoming_form(req)
    if not body:
        return Response(status_code=204)

    log.info(
        "recording status call=%s recording=%s status=%s duration=%s",
        body.get("CallSid"),
        body.get("RecordingSid"),
        body.get("RecordingStatus"),
        body.get("RecordingDuration"),
    )
    return Response(status_code=204)
