# helpers/twilio_helper.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client
from twilio.twiml.voice_response import Connect, VoiceResponse

from helpers.errors import UpstreamError
from helpers.settings import Settings

log = logging.getLogger("twilio")

TWILIO_API_BASE = "https://api.twilio.com"
RECORDING_FORMAT = ".mp3"
RECORDING_STATUS_EVENTS = ["in-progress", "completed"]


class RecordingDescriptor(BaseModel):
    sid: str
    media_url: str

    @property
    def download_url(self) -> str:
        return f"{self.media_url}{RECORDING_FORMAT}"


def bridge_twiml(join_url: str) -> str:
    """<Response><Connect><Stream url=join_url/></Connect></Response>"""
    response = VoiceResponse()
    connect = Connect()
    connect.stream(url=join_url)
    response.append(connect)
    return str(response)


def _descriptor_from(rec: Any) -> RecordingDescriptor:
    media_url = getattr(rec, "media_url", None)
    if not media_url:
        # older API versions only hand back the JSON resource uri
        uri = getattr(rec, "uri", None) or ""
        if uri.endswith(".json"):
            uri = uri[: -len(".json")]
        media_url = f"{TWILIO_API_BASE}{uri}" if uri else None
    try:
        return RecordingDescriptor(sid=getattr(rec, "sid", None), media_url=media_url)
    except PydanticValidationError as e:
        raise UpstreamError(f"Malformed recording descriptor from Twilio: {e}") from e


class TwilioGateway:
    """
    Thin async facade over the (blocking) Twilio SDK plus httpx for media downloads.
    SDK calls run in a worker thread so the event loop keeps serving requests.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[Client] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self._client = client
        self._http = http

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self.settings.twilio_account_sid, self.settings.twilio_auth_token)
        return self._client

    @property
    def auth(self) -> tuple:
        return (self.settings.twilio_account_sid, self.settings.twilio_auth_token)

    async def place_call(self, destination: str, source: str, join_url: str) -> str:
        try:
            call = await asyncio.to_thread(
                self.client.calls.create,
                twiml=bridge_twiml(join_url),
                to=destination,
                from_=source,
                record=True,
                recording_channels="dual",
                recording_status_callback=self.settings.recording_status_callback,
                recording_status_callback_event=RECORDING_STATUS_EVENTS,
            )
        except TwilioRestException as e:
            log.error("Twilio rejected call to %s: %s %s", destination, e.status, e.msg)
            raise UpstreamError(f"Twilio rejected the call: {e.msg}") from e
        except (TwilioException, OSError) as e:
            raise UpstreamError(f"Twilio call request failed: {e}") from e

        call_sid = getattr(call, "sid", None)
        if not call_sid:
            raise UpstreamError("Twilio call response has no sid")
        log.info("Call started: %s -> %s sid=%s", source, destination, call_sid)
        return call_sid

    async def list_recordings(self, call_sid: str) -> List[RecordingDescriptor]:
        try:
            recordings = await asyncio.to_thread(
                self.client.recordings.list, call_sid=call_sid, limit=1
            )
        except TwilioRestException as e:
            raise UpstreamError(f"Twilio recording lookup failed: {e.msg}") from e
        except (TwilioException, OSError) as e:
            raise UpstreamError(f"Twilio recording lookup failed: {e}") from e
        return [_descriptor_from(r) for r in recordings]

    async def download_recording(self, recording: RecordingDescriptor) -> bytes:
        url = recording.download_url
        log.info("Downloading recording from: %s", url)
        try:
            if self._http is not None:
                r = await self._http.get(url, auth=self.auth, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=60.0) as http:
                    r = await http.get(url, auth=self.auth, follow_redirects=True)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Recording download failed: {e}") from e
        if r.status_code != 200:
            raise UpstreamError(f"Recording download failed ({r.status_code}) for {recording.sid}")
        return r.content
