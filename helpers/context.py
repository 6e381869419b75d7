# helpers/context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from helpers.recording_worker import RecordingWorker
from helpers.settings import Settings
from helpers.twilio_helper import TwilioGateway
from scheduler.call_scheduler import ApsTaskScheduler, TaskScheduler, build_scheduler


@dataclass
class AppContext:
    """Everything a request handler or background flow needs; built once at startup."""

    settings: Settings
    twilio: TwilioGateway
    scheduler: TaskScheduler
    recordings: RecordingWorker
    # shared client for Ultravox; None = one short-lived client per request
    http: Optional[httpx.AsyncClient] = None

    def start(self) -> None:
        if isinstance(self.scheduler, ApsTaskScheduler):
            self.scheduler.start()

    def stop(self) -> None:
        if isinstance(self.scheduler, ApsTaskScheduler):
            self.scheduler.shutdown(wait=False)


def build_context(
    settings: Optional[Settings] = None,
    twilio: Optional[TwilioGateway] = None,
    scheduler: Optional[TaskScheduler] = None,
    http: Optional[httpx.AsyncClient] = None,
) -> AppContext:
    settings = settings or Settings.from_env()
    twilio = twilio or TwilioGateway(settings)
    scheduler = scheduler or build_scheduler(settings.aps_timezone)
    return AppContext(
        settings=settings,
        twilio=twilio,
        scheduler=scheduler,
        recordings=RecordingWorker(twilio, scheduler, settings),
        http=http,
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
