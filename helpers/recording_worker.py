# helpers/recording_worker.py
"""
Recording acquisition: after a call is placed, wait for Twilio to finalise the
recording, download it to RECORDINGS_DIR and note it on the caller's history.

    SCHEDULED --initial delay--> POLLING --0 recordings--> RETRYING --retry delay--> POLLING
    POLLING --1+ recordings--> DOWNLOADING --> PERSISTED
    any --error--> FAILED         any pending --cancel()--> CANCELLED

Once the recording bytes are in hand the acquisition is committed: cancel()
returns False and the file and history entry are both written.

Every transition that waits goes through the injected TaskScheduler, so a poll
is only scheduled once the previous one has finished.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from helpers import profile_store
from helpers.errors import ServiceError
from helpers.settings import Settings
from helpers.twilio_helper import RecordingDescriptor, TwilioGateway
from scheduler.call_scheduler import TaskHandle, TaskScheduler

log = logging.getLogger("recording_worker")


class AcquisitionState(str, enum.Enum):
    SCHEDULED = "scheduled"
    POLLING = "polling"
    RETRYING = "retrying"
    DOWNLOADING = "downloading"
    PERSISTED = "persisted"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = {
    AcquisitionState.PERSISTED,
    AcquisitionState.FAILED,
    AcquisitionState.CANCELLED,
}


@dataclass
class CallSession:
    """In-memory only; lives as long as the call's acquisition."""

    phone_number: str
    join_url: str
    call_sid: str
    ultravox_call_id: Optional[str] = None


def write_recording(directory: str, recording_sid: str, data: bytes) -> Path:
    folder = Path(directory)
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{recording_sid}.mp3"
    path.write_bytes(data)
    return path


class RecordingAcquisition:
    def __init__(
        self,
        session: CallSession,
        twilio: TwilioGateway,
        scheduler: TaskScheduler,
        settings: Settings,
        on_finish: Optional[Callable[["RecordingAcquisition"], None]] = None,
    ):
        self.session = session
        self.twilio = twilio
        self.scheduler = scheduler
        self.settings = settings
        self.on_finish = on_finish

        self.state = AcquisitionState.SCHEDULED
        self.attempts = 0
        self.file_path: Optional[Path] = None
        self.recording_sid: Optional[str] = None
        self.error: Optional[str] = None
        self._handle: Optional[TaskHandle] = None
        self._committed = False
        self._done = asyncio.Event()

    @property
    def call_sid(self) -> str:
        return self.session.call_sid

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def start(self) -> None:
        log.info(
            "recording for %s scheduled in %ss",
            self.call_sid, self.settings.recording_initial_delay,
        )
        self._handle = self.scheduler.schedule(self.settings.recording_initial_delay, self.poll)

    def cancel(self) -> bool:
        if self.finished or self._committed:
            return False
        if self._handle is not None:
            self._handle.cancel()
        self._finish(AcquisitionState.CANCELLED)
        log.info("recording acquisition for %s cancelled", self.call_sid)
        return True

    async def wait(self) -> AcquisitionState:
        await self._done.wait()
        return self.state

    def _finish(self, state: AcquisitionState) -> None:
        if self.finished:
            return
        self.state = state
        self._handle = None
        self._done.set()
        if self.on_finish is not None:
            self.on_finish(self)

    def _max_attempts_reached(self) -> bool:
        limit = self.settings.recording_max_attempts
        return limit > 0 and self.attempts >= limit

    async def poll(self) -> None:
        if self.finished:
            return
        self.state = AcquisitionState.POLLING
        self.attempts += 1
        log.info("Fetching recording for %s (attempt %s)", self.call_sid, self.attempts)
        try:
            recordings = await self.twilio.list_recordings(self.call_sid)
            if self.finished:
                return

            if not recordings:
                if self._max_attempts_reached():
                    self.error = f"no recording after {self.attempts} attempts"
                    log.warning("No recording for %s after %s attempts; giving up", self.call_sid, self.attempts)
                    self._finish(AcquisitionState.FAILED)
                    return
                self.state = AcquisitionState.RETRYING
                log.info(
                    "No recording found for %s. Retrying in %s seconds...",
                    self.call_sid, self.settings.recording_retry_delay,
                )
                self._handle = self.scheduler.schedule(self.settings.recording_retry_delay, self.poll)
                return

            await self._acquire(recordings[0])
        except ServiceError as e:
            self.error = e.message
            log.error("Error saving recording for %s: %s", self.call_sid, e.message)
            self._finish(AcquisitionState.FAILED)
        except Exception as e:
            self.error = str(e)
            log.exception("Error saving recording for %s: %s", self.call_sid, e)
            self._finish(AcquisitionState.FAILED)

    async def _acquire(self, recording: RecordingDescriptor) -> None:
        self.state = AcquisitionState.DOWNLOADING
        self.recording_sid = recording.sid
        data = await self.twilio.download_recording(recording)
        if self.finished:
            return
        self._committed = True

        path = await asyncio.to_thread(write_recording, self.settings.recordings_dir, recording.sid, data)
        self.file_path = path
        log.info("Recording saved: %s", path)

        user = await profile_store.get_or_create_user(self.session.phone_number)
        await profile_store.append_call_history(user, f"Recording saved at {path}")
        self._finish(AcquisitionState.PERSISTED)

    def as_dict(self) -> dict:
        return {
            "callSid": self.call_sid,
            "phoneNumber": self.session.phone_number,
            "state": self.state.value,
            "attempts": self.attempts,
            "recordingSid": self.recording_sid,
            "filePath": str(self.file_path) if self.file_path else None,
            "error": self.error,
        }


class RecordingWorker:
    """
    Owns the acquisitions this process started, keyed by call SID.

    Running acquisitions stay until they reach a terminal state. After that
    only the most recent `keep_finished` are kept so GET /calls/{sid}/recording
    can still report how they ended.
    """

    def __init__(
        self,
        twilio: TwilioGateway,
        scheduler: TaskScheduler,
        settings: Settings,
        keep_finished: int = 50,
    ):
        self.twilio = twilio
        self.scheduler = scheduler
        self.settings = settings
        self.keep_finished = keep_finished
        self._running: Dict[str, RecordingAcquisition] = {}
        self._finished: "OrderedDict[str, RecordingAcquisition]" = OrderedDict()

    def start(self, session: CallSession) -> RecordingAcquisition:
        existing = self._running.get(session.call_sid)
        if existing is not None:
            log.info("acquisition for %s already running (%s)", session.call_sid, existing.state.value)
            return existing

        acq = RecordingAcquisition(
            session, self.twilio, self.scheduler, self.settings, on_finish=self._retire,
        )
        self._running[session.call_sid] = acq
        acq.start()
        return acq

    def _retire(self, acq: RecordingAcquisition) -> None:
        if self._running.get(acq.call_sid) is acq:
            del self._running[acq.call_sid]
        self._finished.pop(acq.call_sid, None)
        self._finished[acq.call_sid] = acq
        while len(self._finished) > self.keep_finished:
            self._finished.popitem(last=False)

    def get(self, call_sid: str) -> Optional[RecordingAcquisition]:
        return self._running.get(call_sid) or self._finished.get(call_sid)

    def cancel(self, call_sid: str) -> bool:
        acq = self._running.get(call_sid)
        return acq.cancel() if acq else False

    def active(self) -> List[RecordingAcquisition]:
        return list(self._running.values())

    def retained(self) -> List[RecordingAcquisition]:
        return list(self._finished.values())

    def cancel_all(self) -> int:
        return sum(1 for a in self.active() if a.cancel())
