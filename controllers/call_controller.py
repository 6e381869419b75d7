# controllers/call_controller.py
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from controllers.conversation_controller import read_json_body
from helpers.call_service import place_outbound_call
from helpers.context import AppContext, get_context
from helpers.errors import ValidationError

router = APIRouter()
log = logging.getLogger("calls")


# 🔹 Place one outbound call (lookup user -> Ultravox -> Twilio -> recording fetch)
@router.post("/calls")
async def create_call(req: Request, ctx: Annotated[AppContext, Depends(get_context)]):
    body = await read_json_body(req)
    phone_number = body.get("phoneNumber")
    if not phone_number or not isinstance(phone_number, str):
        raise ValidationError("Phone number required.")

    log.info("call requested for %s", phone_number)
    session = await place_outbound_call(ctx, phone_number)
    return JSONResponse(
        status_code=202,
        content={
            "callSid": session.call_sid,
            "joinUrl": session.join_url,
            "phoneNumber": session.phone_number,
        },
    )


# 🔹 Where the recording fetch for a call stands
@router.get("/calls/{call_sid}/recording")
async def get_call_recording(call_sid: str, ctx: Annotated[AppContext, Depends(get_context)]):
    acq = ctx.recordings.get(call_sid)
    if acq is None:
        raise HTTPException(404, "No recording acquisition for this call")
    return acq.as_dict()


# 🔹 Stop polling for a call's recording
@router.delete("/calls/{call_sid}/recording")
async def cancel_call_recording(call_sid: str, ctx: Annotated[AppContext, Depends(get_context)]):
    acq = ctx.recordings.get(call_sid)
    if acq is None:
        raise HTTPException(404, "No recording acquisition for this call")
    cancelled = acq.cancel()
    return {"ok": cancelled, **acq.as_dict()}
