from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import httpx

from helpers.twilio_helper import RecordingDescriptor


# ----- time -----
class FakeHandle:
    def __init__(self, task: "ScheduledTask"):
        self.task = task

    def cancel(self) -> bool:
        if self.task.cancelled or self.task.ran:
            return False
        self.task.cancelled = True
        return True


@dataclass
class ScheduledTask:
    delay: float
    func: Callable
    args: tuple
    cancelled: bool = False
    ran: bool = False


class ManualScheduler:
    """Records every delay; jobs only run when the test says so."""

    def __init__(self):
        self.tasks: List[ScheduledTask] = []

    def schedule(self, delay_seconds, func, *args):
        task = ScheduledTask(delay_seconds, func, args)
        self.tasks.append(task)
        return FakeHandle(task)

    @property
    def pending(self) -> List[ScheduledTask]:
        return [t for t in self.tasks if not t.cancelled and not t.ran]

    @property
    def delays(self) -> List[float]:
        return [t.delay for t in self.tasks]

    async def run_next(self) -> None:
        task = self.pending[0]
        task.ran = True
        await task.func(*task.args)


# ----- Twilio -----
@dataclass
class FakeTwilio:
    """Scripted stand-in for TwilioGateway."""

    recordings_script: List[Any] = field(default_factory=list)
    payload: bytes = b"ID3-fake-mp3"
    call_sid: str = "CA123"
    place_error: Optional[Exception] = None
    download_error: Optional[Exception] = None

    placed: List[dict] = field(default_factory=list)
    polls: List[str] = field(default_factory=list)
    downloads: List[str] = field(default_factory=list)

    async def place_call(self, destination, source, join_url):
        if self.place_error:
            raise self.place_error
        self.placed.append({"to": destination, "from": source, "join_url": join_url})
        return self.call_sid

    async def list_recordings(self, call_sid):
        self.polls.append(call_sid)
        # last scripted answer repeats forever
        step = self.recordings_script.pop(0) if len(self.recordings_script) > 1 else (
            self.recordings_script[0] if self.recordings_script else []
        )
        if isinstance(step, Exception):
            raise step
        return step

    async def download_recording(self, recording: RecordingDescriptor):
        if self.download_error:
            raise self.download_error
        self.downloads.append(recording.sid)
        return self.payload


def recording(sid: str = "RE1") -> RecordingDescriptor:
    return RecordingDescriptor(
        sid=sid, media_url=f"https://api.twilio.com/2010-04-01/Accounts/ACtest/Recordings/{sid}"
    )


# ----- Ultravox -----
def ultravox_transport(status: int = 201, body: Any = None, seen: Optional[list] = None) -> httpx.MockTransport:
    if body is None:
        body = {"callId": "uv-call-1", "joinUrl": "wss://voice.ultravox.ai/calls/uv-call-1"}

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(body, (dict, list)):
            return httpx.Response(status, content=json.dumps(body), headers={"content-type": "application/json"})
        return httpx.Response(status, content=body)

    return httpx.MockTransport(handler)


