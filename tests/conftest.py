from __future__ import annotations

import httpx
import pytest
from tortoise import Tortoise, connections

from fakes import FakeTwilio, ManualScheduler, ultravox_transport
from helpers.context import AppContext, build_context
from helpers.settings import Settings
from helpers.tortoise_config import build_config


@pytest.fixture
async def db():
    await Tortoise.init(config=build_config("sqlite://:memory:", with_aerich=False))
    await Tortoise.generate_schemas()
    yield
    await connections.close_all()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        twilio_account_sid="ACtest",
        twilio_auth_token="secret-token",
        twilio_phone_number="+15550000000",
        ultravox_api_key="uv-key",
        public_base_url="https://caller.example.com",
        recordings_dir=str(tmp_path / "recordings"),
    )


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def twilio() -> FakeTwilio:
    return FakeTwilio()


@pytest.fixture
async def ultravox_http():
    async with httpx.AsyncClient(transport=ultravox_transport()) as client:
        yield client


@pytest.fixture
def ctx(settings, twilio, scheduler, ultravox_http) -> AppContext:
    return build_context(settings=settings, twilio=twilio, scheduler=scheduler, http=ultravox_http)
