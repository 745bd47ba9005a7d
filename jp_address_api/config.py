"""
Configuration helpers for the Japanese address parser API.

This module centralizes listen address, request deadline, body-size limit and
address-data source settings. Values come from the environment; malformed
numeric values fall back to the defaults instead of failing startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_REQUEST_TIMEOUT_SECS = 30.0
DEFAULT_MAX_REQUEST_SIZE = 1024 * 1024
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
MAX_ADDRESS_LENGTH = 500

# Source of the prefecture/city/town tables consumed by the parser.
DEFAULT_DATA_BASE_URL = "https://geolonia.github.io/japanese-addresses/api"
DEFAULT_DATA_TIMEOUT = 10.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw:
        try:
            return float(raw)
        except ValueError:
            return default
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw:
        try:
            return int(raw)
        except ValueError:
            return default
    return default


def _load_request_timeout() -> float:
    timeout = _env_float("REQUEST_TIMEOUT_SECS", DEFAULT_REQUEST_TIMEOUT_SECS)
    if timeout <= 0:
        return DEFAULT_REQUEST_TIMEOUT_SECS
    return timeout


REQUEST_TIMEOUT = _load_request_timeout()
MAX_REQUEST_SIZE = _env_int("MAX_REQUEST_SIZE", DEFAULT_MAX_REQUEST_SIZE)
HOST = os.getenv("HOST", DEFAULT_HOST)
PORT = _env_int("PORT", DEFAULT_PORT)
DATA_BASE_URL = os.getenv("JP_ADDRESS_DATA_BASE_URL", DEFAULT_DATA_BASE_URL)
DATA_TIMEOUT = _env_float("JP_ADDRESS_DATA_TIMEOUT", DEFAULT_DATA_TIMEOUT)
LOG_LEVEL = os.getenv("JP_ADDRESS_API_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("JP_ADDRESS_API_LOG_FORMAT", "json")  # json or plain


@dataclass(slots=True)
class ServiceConfig:
    """Runtime configuration for the parser service."""

    request_timeout: float = REQUEST_TIMEOUT
    max_request_size: int = MAX_REQUEST_SIZE
    max_address_length: int = MAX_ADDRESS_LENGTH
    host: str = HOST
    port: int = PORT
    data_base_url: str = DATA_BASE_URL
    data_timeout: float = DATA_TIMEOUT
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT


default_config = ServiceConfig()
