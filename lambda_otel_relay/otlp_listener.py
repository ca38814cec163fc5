"""Local OTLP/HTTP receiver that hands payloads to the relay's buffer channel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from http import HTTPStatus

from aiohttp import web

from .buffers import Signal
from .channel import Channel, ChannelClosed, ChannelFull

log = logging.getLogger(__name__)

BIND_HOST = "127.0.0.1"

ReadBody = Callable[[], Awaitable[bytes]]

_ROUTES = {signal.path: signal for signal in Signal}


@dataclass(frozen=True)
class Reply:
    """The status and headers of an empty-bodied HTTP response."""

    status: HTTPStatus
    headers: dict[str, str] = field(default_factory=dict)


class _Rejected(Exception):
    def __init__(self, status: HTTPStatus, reason: str) -> None:
        super().__init__(reason)
        self.status = status
        self.reason = reason


async def _validate(method: str, path: str, read_body: ReadBody) -> tuple[Signal, bytes]:
    signal = _ROUTES.get(path)
    if signal is None:
        raise _Rejected(HTTPStatus.NOT_FOUND, f"unknown path: {path}")
    if method.upper() != "POST":
        raise _Rejected(HTTPStatus.METHOD_NOT_ALLOWED, f"{method} {path}")
    try:
        body = await read_body()
    except Exception:
        raise _Rejected(
            HTTPStatus.BAD_REQUEST, f"POST {path} — failed to read body"
        ) from None
    return signal, bytes(body)


async def handle(
    method: str,
    path: str,
    read_body: ReadBody,
    tx: Channel[tuple[Signal, bytes]],
) -> Reply:
    """Route one OTLP request and queue its payload, answering with a status."""
    try:
        signal, body = await _validate(method, path, read_body)
    except _Rejected as rejected:
        log.warning("otlp request rejected", extra={"reason": rejected.reason})
        return Reply(rejected.status)

    try:
        tx.try_send((signal, body))
    except ChannelFull:
        return Reply(HTTPStatus.SERVICE_UNAVAILABLE, {"Retry-After": "1"})
    except ChannelClosed:
        # The receiver is gone (shutdown); retrying will not help.
        return Reply(HTTPStatus.BAD_GATEWAY)
    return Reply(HTTPStatus.OK)


async def serve(
    port: int,
    tx: Channel[tuple[Signal, bytes]],
    cancel: asyncio.Event,
) -> None:
    """Accept OTLP requests on localhost until ``cancel`` is set."""

    async def on_request(request: web.BaseRequest) -> web.Response:
        reply = await handle(request.method, request.path, request.read, tx)
        return web.Response(status=int(reply.status), headers=reply.headers)

    runner = web.ServerRunner(web.Server(on_request))
    await runner.setup()
    try:
        site = web.TCPSite(runner, BIND_HOST, port)
        await site.start()
        await cancel.wait()
    finally:
        await runner.cleanup()