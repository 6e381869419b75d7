# helpers/errors.py
from __future__ import annotations


class ServiceError(Exception):
    """Base error; `status_code` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamError(ServiceError):
    """Twilio / Ultravox rejected the request or answered with junk."""

    status_code = 502


class StorageError(ServiceError):
    status_code = 500


class ValidationError(ServiceError):
    status_code = 400


class ConfigError(ServiceError):
    status_code = 500
