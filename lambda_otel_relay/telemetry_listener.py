"""Receiver for platform event batches pushed by the Lambda Telemetry API."""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus

from aiohttp import web

from .channel import Channel, ChannelClosed, ChannelFull
from .otlp_listener import ReadBody, Reply
from .telemetry_events import TelemetryEvent, parse_batch

log = logging.getLogger(__name__)

# Must be reachable from the Lambda sandbox, so not bound to localhost only.
BIND_HOST = "0.0.0.0"


class _Rejected(Exception):
    def __init__(self, status: HTTPStatus, reason: str) -> None:
        super().__init__(reason)
        self.status = status
        self.reason = reason


async def _validate(method: str, read_body: ReadBody) -> str:
    if method.upper() != "POST":
        raise _Rejected(HTTPStatus.METHOD_NOT_ALLOWED, f"{method} not allowed")
    try:
        body = await read_body()
    except Exception:
        raise _Rejected(HTTPStatus.BAD_REQUEST, "failed to read body") from None
    try:
        return bytes(body).decode("utf-8")
    except UnicodeDecodeError:
        raise _Rejected(HTTPStatus.BAD_REQUEST, "body is not valid UTF-8") from None


async def handle(
    method: str,
    read_body: ReadBody,
    tx: Channel[TelemetryEvent],
) -> Reply:
    """Forward the events of one batch; a valid request is always answered 200."""
    try:
        body = await _validate(method, read_body)
    except _Rejected as rejected:
        log.warning("telemetry request rejected", extra={"reason": rejected.reason})
        return Reply(rejected.status)

    for event in parse_batch(body):
        try:
            tx.try_send(event)
        except (ChannelFull, ChannelClosed) as exc:
            log.warning("telemetry event dropped", extra={"error": str(exc)})
    return Reply(HTTPStatus.OK)


async def serve(
    port: int,
    tx: Channel[TelemetryEvent],
    cancel: asyncio.Event,
) -> None:
    """Accept Telemetry API batches on all interfaces until ``cancel`` is set."""

    async def on_request(request: web.BaseRequest) -> web.Response:
        reply = await handle(request.method, request.read, tx)
        return web.Response(status=int(reply.status), headers=reply.headers)

    runner = web.ServerRunner(web.Server(on_request))
    await runner.setup()
    try:
        site = web.TCPSite(runner, BIND_HOST, port)
        await site.start()
        await cancel.wait()
    finally:
        await runner.cleanup()