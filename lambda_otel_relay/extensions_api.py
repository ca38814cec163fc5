"""Client for the Lambda Extensions API: registration and the event loop."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Union

import aiohttp

EXTENSION_NAME = "lambda-otel-relay"
_REGISTER_BODY = '{"events":["INVOKE","SHUTDOWN"]}'
_NAME_HEADER = "Lambda-Extension-Name"
_ID_HEADER = "Lambda-Extension-Identifier"

log = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for Extensions API failures, including HTTP errors."""


class ParseError(ApiError):
    """A response body could not be decoded."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to parse response: {detail}")
        self.detail = detail


class MissingExtensionId(ApiError):
    """The register response carried no usable extension identifier."""

    def __init__(self) -> None:
        super().__init__(f"missing {_ID_HEADER} header")


class UnknownEventType(ApiError):
    """The event/next response carried an event type we do not handle."""

    def __init__(self, event_type: str) -> None:
        super().__init__(f"unknown event type: {event_type}")
        self.event_type = event_type


@dataclass(frozen=True)
class InvokeEvent:
    request_id: str = ""


@dataclass(frozen=True)
class ShutdownEvent:
    reason: str = ""


ExtensionsApiEvent = Union[InvokeEvent, ShutdownEvent]


def _decode_object(body: str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ParseError(str(exc)) from None
    if not isinstance(data, dict):
        raise ParseError("expected a JSON object")
    return data


def _required_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ParseError(f"field {key!r} must be a string")
    return value


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ParseError(f"field {key!r} must be a string")
    return value


def parse_event(body: str) -> ExtensionsApiEvent:
    """Decode an event/next response body into an event."""
    data = _decode_object(body)
    event_type = _required_str(data, "eventType")
    request_id = _optional_str(data, "requestId")
    reason = _optional_str(data, "shutdownReason")

    if event_type == "INVOKE":
        return InvokeEvent(request_id=request_id or "")
    if event_type == "SHUTDOWN":
        return ShutdownEvent(reason=reason or "")
    raise UnknownEventType(event_type)


class ExtensionApiClient:
    """A registered extension, able to poll for the next lifecycle event."""

    def __init__(self, session: aiohttp.ClientSession, base_url: str, ext_id: str) -> None:
        self._session = session
        self.base_url = base_url
        self.ext_id = ext_id

    def __repr__(self) -> str:
        return f"ExtensionApiClient(base_url={self.base_url!r}, ext_id={self.ext_id!r})"

    @classmethod
    async def register(cls, runtime_api: str) -> ExtensionApiClient:
        """Register for INVOKE and SHUTDOWN events and return a client."""
        base_url = f"http://{runtime_api}/2020-01-01/extension"
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
        try:
            try:
                async with session.post(
                    f"{base_url}/register",
                    data=_REGISTER_BODY,
                    headers={_NAME_HEADER: EXTENSION_NAME},
                ) as resp:
                    ext_id = resp.headers.get(_ID_HEADER)
                    if not ext_id:
                        raise MissingExtensionId()
                    body = await resp.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                raise ApiError(f"extensions API HTTP error: {exc}") from exc

            reg = _decode_object(body)
            function_name = _required_str(reg, "functionName")
            function_version = _required_str(reg, "functionVersion")
            handler = _required_str(reg, "handler")
        except BaseException:
            await session.close()
            raise

        log.info(
            "registered",
            extra={
                "function": function_name,
                "version": function_version,
                "handler": handler,
            },
        )
        return cls(session, base_url, ext_id)

    async def next_event(self) -> ExtensionsApiEvent:
        """Block until the platform delivers the next lifecycle event."""
        try:
            async with self._session.get(
                f"{self.base_url}/event/next",
                headers={_ID_HEADER: self.ext_id},
            ) as resp:
                body = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ApiError(f"extensions API HTTP error: {exc}") from exc
        return parse_event(body)

    async def close(self) -> None:
        """Release the underlying HTTP session."""
        await self._session.close()

    async def __aenter__(self) -> ExtensionApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()