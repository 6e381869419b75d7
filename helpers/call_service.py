# helpers/call_service.py
from __future__ import annotations

import logging

from helpers import profile_store
from helpers.context import AppContext
from helpers.recording_worker import CallSession
from helpers.ultravox_helper import create_session

log = logging.getLogger("call_service")


async def place_outbound_call(ctx: AppContext, phone_number: str) -> CallSession:
    """
    user lookup -> Ultravox session -> Twilio call -> scheduled recording fetch.
    Errors propagate (UpstreamError / StorageError / ConfigError); nothing is
    scheduled unless the call was actually placed.
    """
    settings = ctx.settings
    settings.require_call_credentials()

    log.info("Fetching user profile for %s", phone_number)
    user = await profile_store.get_or_create_user(phone_number)

    log.info("Creating Ultravox call for user=%s", user.id)
    voice = await create_session(user, settings, client=ctx.http)
    log.info("Got joinUrl: %s", voice.join_url)

    log.info("Initiating Twilio call to %s", phone_number)
    call_sid = await ctx.twilio.place_call(phone_number, settings.twilio_phone_number, voice.join_url)

    session = CallSession(
        phone_number=phone_number,
        join_url=voice.join_url,
        call_sid=call_sid,
        ultravox_call_id=voice.call_id,
    )
    ctx.recordings.start(session)
    return session


async def run_startup_call(ctx: AppContext, phone_number: str) -> None:
    """Background variant: failures are logged, never raised."""
    try:
        session = await place_outbound_call(ctx, phone_number)
        log.info("Startup call placed sid=%s", session.call_sid)
    except Exception as e:
        log.exception("Main execution failed: %s", e)
