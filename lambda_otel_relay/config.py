"""Relay configuration read from ``LAMBDA_OTEL_RELAY_*`` environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit

PREFIX = "LAMBDA_OTEL_RELAY_"
ENDPOINT_VAR = "LAMBDA_OTEL_RELAY_ENDPOINT"
LISTENER_PORT_VAR = "LAMBDA_OTEL_RELAY_LISTENER_PORT"
TELEMETRY_PORT_VAR = "LAMBDA_OTEL_RELAY_TELEMETRY_PORT"

DEFAULT_LISTENER_PORT = 4318
DEFAULT_TELEMETRY_PORT = 4319

_SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")
_PORT = re.compile(r"\+?[0-9]+")
_HOST_SCHEMES = {"http", "https", "ws", "wss", "ftp"}


class ConfigError(Exception):
    """Base class for configuration errors."""


class EndpointMissing(ConfigError):
    def __init__(self) -> None:
        super().__init__(f"{ENDPOINT_VAR} is required but not set")


class EndpointInvalidUrl(ConfigError):
    def __init__(self, value: str) -> None:
        super().__init__(f"{ENDPOINT_VAR} is not a valid URL: {value}")
        self.value = value


class InvalidNumeric(ConfigError):
    def __init__(self, name: str, value: str) -> None:
        super().__init__(f"{name} has invalid value: {value}")
        self.name = name
        self.value = value


@dataclass(frozen=True)
class Config:
    endpoint: SplitResult
    listener_port: int = DEFAULT_LISTENER_PORT
    telemetry_port: int = DEFAULT_TELEMETRY_PORT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Build a config from the process environment (or the given mapping)."""
        source = os.environ if environ is None else environ
        return cls.parse({k: v for k, v in source.items() if k.startswith(PREFIX)})

    @classmethod
    def parse(cls, vars: Mapping[str, str]) -> Config:
        """Build a config from already-collected variables."""
        return cls(
            endpoint=_parse_endpoint(vars),
            listener_port=_parse_port(vars, LISTENER_PORT_VAR, DEFAULT_LISTENER_PORT),
            telemetry_port=_parse_port(vars, TELEMETRY_PORT_VAR, DEFAULT_TELEMETRY_PORT),
        )


def _parse_endpoint(vars: Mapping[str, str]) -> SplitResult:
    raw = vars.get(ENDPOINT_VAR)
    if not raw:
        raise EndpointMissing()
    try:
        url = urlsplit(raw)
        url.port  # raises ValueError on an out-of-range or malformed port
    except ValueError:
        raise EndpointInvalidUrl(raw) from None
    if not url.scheme or not _SCHEME.fullmatch(url.scheme) or any(c.isspace() for c in raw):
        raise EndpointInvalidUrl(raw)
    if url.scheme.lower() in _HOST_SCHEMES and not url.hostname:
        raise EndpointInvalidUrl(raw)
    return url


def _parse_port(vars: Mapping[str, str], name: str, default: int) -> int:
    value = vars.get(name)
    if value is None:
        return default
    if not _PORT.fullmatch(value) or int(value) > 0xFFFF:
        raise InvalidNumeric(name, value)
    return int(value)