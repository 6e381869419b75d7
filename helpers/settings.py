# helpers/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from helpers.errors import ConfigError

load_dotenv()

ULTRAVOX_API_URL = "https://api.ultravox.ai/api/calls"


def _mask(val: Optional[str], keep: int = 4) -> str:
    if not val:
        return "unset"
    return f"{val[:keep]}…{val[-keep:] if len(val) > keep else ''}"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'")


@dataclass
class Settings:
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    ultravox_api_key: str = ""
    ultravox_api_url: str = ULTRAVOX_API_URL
    ultravox_model: str = "fixie-ai/ultravox"
    ultravox_voice: str = "Mark"
    ultravox_temperature: float = 0.3

    database_url: str = "sqlite://db.sqlite3"
    # create missing tables on startup (dev); prod runs aerich migrations
    generate_schemas: bool = False
    port: int = 3000
    # where Twilio can reach us for recording status callbacks
    public_base_url: str = "http://localhost:3000"

    recordings_dir: str = "./recordings"
    destination_phone_number: Optional[str] = None

    # seconds
    recording_initial_delay: float = 60
    recording_retry_delay: float = 30
    # 0 = keep polling until a recording shows up
    recording_max_attempts: int = 0

    aps_timezone: str = "UTC"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID", "").strip(),
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN", "").strip(),
            twilio_phone_number=os.getenv("TWILIO_PHONE_NUMBER", "").strip(),
            ultravox_api_key=os.getenv("ULTRAVOX_API_KEY", "").strip(),
            ultravox_api_url=os.getenv("ULTRAVOX_API_URL", ULTRAVOX_API_URL).strip(),
            ultravox_model=os.getenv("ULTRAVOX_MODEL", "fixie-ai/ultravox").strip(),
            ultravox_voice=os.getenv("ULTRAVOX_VOICE", "Mark").strip(),
            ultravox_temperature=_float_env("ULTRAVOX_TEMPERATURE", 0.3),
            database_url=os.getenv("DATABASE_URL", "sqlite://db.sqlite3").strip(),
            generate_schemas=os.getenv("DB_GENERATE_SCHEMAS", "false").lower() in ("1", "true", "yes", "on"),
            port=_int_env("PORT", 3000),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").strip().rstrip("/"),
            recordings_dir=os.getenv("RECORDINGS_DIR", "./recordings").strip(),
            destination_phone_number=os.getenv("DESTINATION_PHONE_NUMBER", "").strip() or None,
            recording_initial_delay=_float_env("RECORDING_INITIAL_DELAY", 60),
            recording_retry_delay=_float_env("RECORDING_RETRY_DELAY", 30),
            recording_max_attempts=_int_env("RECORDING_MAX_ATTEMPTS", 0),
            aps_timezone=os.getenv("APS_TIMEZONE", "UTC").strip(),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )

    @property
    def recording_status_callback(self) -> str:
        return f"{self.public_base_url}/recording-status"

    def require_call_credentials(self) -> None:
        """Raise ConfigError naming every key the call flow needs but doesn't have."""
        missing = [
            name
            for name, value in (
                ("TWILIO_ACCOUNT_SID", self.twilio_account_sid),
                ("TWILIO_AUTH_TOKEN", self.twilio_auth_token),
                ("TWILIO_PHONE_NUMBER", self.twilio_phone_number),
                ("ULTRAVOX_API_KEY", self.ultravox_api_key),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing configuration: {', '.join(missing)}")

    def describe(self) -> dict:
        # safe to log: no secret values
        return {
            "twilio_account_sid": _mask(self.twilio_account_sid),
            "twilio_phone_number": self.twilio_phone_number or "unset",
            "ultravox_api_key set?": bool(self.ultravox_api_key),
            "public_base_url": self.public_base_url,
            "recordings_dir": self.recordings_dir,
            "destination_phone_number": self.destination_phone_number or "unset",
        }
