"""Extension entry point: registration, listeners and the relay event loop."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime, timezone

from . import exporter, otlp_listener, telemetry_listener
from .buffers import OutboundBuffer, Signal
from .channel import Channel
from .config import Config, ConfigError
from .exporter import ExportError
from .extensions_api import ApiError, ExtensionApiClient, InvokeEvent, ShutdownEvent
from .telemetry_events import RuntimeDone, Start, TelemetryEvent

log = logging.getLogger(__name__)

OTLP_CHANNEL_CAPACITY = 128
TELEMETRY_CHANNEL_CAPACITY = 64

_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render each record as one compact JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, object] = {
            "timestamp": timestamp.isoformat(timespec="microseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"), default=str)


def setup_logging() -> None:
    """Send INFO and above to stderr as JSON lines."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.INFO)


async def _flush(endpoint, buffer: OutboundBuffer, failure_message: str) -> None:
    try:
        await exporter.export(endpoint, buffer)
    except ExportError as exc:
        log.error(failure_message, extra={"error": str(exc)})


def _on_telemetry(event: TelemetryEvent) -> None:
    if isinstance(event, RuntimeDone):
        log.info("runtimeDone", extra={"request_id": event.request_id, "status": event.status})
    elif isinstance(event, Start):
        log.info("start", extra={"request_id": event.request_id})


async def _event_loop(
    config: Config,
    ext: ExtensionApiClient,
    buffer: OutboundBuffer,
    otlp_rx: Channel[tuple[Signal, bytes]],
    telemetry_rx: Channel[TelemetryEvent],
    cancel: asyncio.Event,
) -> None:
    next_event: asyncio.Future | None = asyncio.ensure_future(ext.next_event())
    next_payload: asyncio.Future | None = asyncio.ensure_future(otlp_rx.recv())
    next_telemetry: asyncio.Future | None = asyncio.ensure_future(telemetry_rx.recv())
    try:
        while True:
            waiting = {t for t in (next_event, next_payload, next_telemetry) if t is not None}
            done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

            if next_payload in done:
                item = next_payload.result()
                if item is None:
                    next_payload = None
                else:
                    buffer.push(*item)
                    next_payload = asyncio.ensure_future(otlp_rx.recv())

            if next_telemetry in done:
                event = next_telemetry.result()
                if event is None:
                    next_telemetry = None
                else:
                    _on_telemetry(event)
                    next_telemetry = asyncio.ensure_future(telemetry_rx.recv())

            if next_event not in done:
                continue
            try:
                lifecycle = next_event.result()
            except ApiError as exc:
                log.error("extensions API error", extra={"error": str(exc)})
                next_event = asyncio.ensure_future(ext.next_event())
                continue

            if isinstance(lifecycle, InvokeEvent):
                log.info("invoke", extra={"request_id": lifecycle.request_id})
                # Post-invocation flush of what the previous invocation buffered.
                await _flush(config.endpoint, buffer, "flush failed")
                next_event = asyncio.ensure_future(ext.next_event())
            elif isinstance(lifecycle, ShutdownEvent):
                log.info("shutdown", extra={"reason": lifecycle.reason})
                cancel.set()
                otlp_rx.close()
                if next_payload is not None:
                    if next_payload.done():
                        item = next_payload.result()
                        if item is not None:
                            buffer.push(*item)
                    else:
                        next_payload.cancel()
                for signal, payload in otlp_rx.drain():
                    buffer.push(signal, payload)
                next_event = None
                await _flush(config.endpoint, buffer, "shutdown flush failed")
                return
    finally:
        leftovers = [t for t in (next_event, next_payload, next_telemetry) if t is not None]
        for task in leftovers:
            task.cancel()
        await asyncio.gather(*leftovers, return_exceptions=True)


async def run(config: Config, runtime_api: str) -> None:
    """Register with the Extensions API and relay telemetry until shutdown.

    Raises ApiError if registration fails.
    """
    ext = await ExtensionApiClient.register(runtime_api)
    async with ext:
        cancel = asyncio.Event()
        buffer = OutboundBuffer()
        otlp_rx: Channel[tuple[Signal, bytes]] = Channel(OTLP_CHANNEL_CAPACITY)
        telemetry_rx: Channel[TelemetryEvent] = Channel(TELEMETRY_CHANNEL_CAPACITY)

        listeners = [
            asyncio.ensure_future(otlp_listener.serve(config.listener_port, otlp_rx, cancel)),
            asyncio.ensure_future(
                telemetry_listener.serve(config.telemetry_port, telemetry_rx, cancel)
            ),
        ]
        try:
            await _event_loop(config, ext, buffer, otlp_rx, telemetry_rx, cancel)
        finally:
            cancel.set()
            results = await asyncio.gather(*listeners, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    log.error("listener failed", extra={"error": str(result)})


def _fatal(message: str, error: object) -> int:
    log.error(message, extra={"error": str(error)})
    return 1


def main(argv: list[str] | None = None) -> int:
    """Run the extension; return the process exit status."""
    parser = argparse.ArgumentParser(
        prog="lambda-otel-relay",
        description="Relay OTLP telemetry from a Lambda function to a collector.",
    )
    parser.parse_args(argv)
    setup_logging()

    try:
        config = Config.from_env()
    except ConfigError as exc:
        return _fatal("config error", exc)

    runtime_api = os.environ.get("AWS_LAMBDA_RUNTIME_API")
    if runtime_api is None:
        return _fatal(
            "AWS_LAMBDA_RUNTIME_API not set in the environment. "
            "This extension must be run within a Lambda environment.",
            "environment variable not found",
        )

    try:
        asyncio.run(run(config, runtime_api))
    except ApiError as exc:
        return _fatal("failed to register extension", exc)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())