"""Export buffered OTLP payloads to the external collector."""

from __future__ import annotations

import asyncio

import aiohttp

from .buffers import OutboundBuffer

_TIMEOUT = aiohttp.ClientTimeout(total=10)
_CONTENT_TYPE = "application/x-protobuf"


class ExportError(Exception):
    """Exporting to the collector failed."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(f"export failed: {detail}" if detail else "export failed")
        self.detail = detail


def _base_url(endpoint: object) -> str:
    url = endpoint if isinstance(endpoint, str) else endpoint.geturl()
    return url.rstrip("/")


async def export(endpoint, buffer: OutboundBuffer) -> None:
    """Send each signal's queued payloads as one request, at most three in all.

    Payloads of one signal are concatenated, which merges serialized OTLP
    protobuf requests. A signal's queue is cleared only once its request
    succeeds; anything that failed stays buffered for the next flush.
    """
    pending = [(signal, buf) for signal, buf in buffer if buf.queue]
    if not pending:
        return

    base = _base_url(endpoint)
    failures: list[str] = []
    async with aiohttp.ClientSession(timeout=_TIMEOUT) as session:
        for signal, buf in pending:
            body = b"".join(buf.queue)
            try:
                async with session.post(
                    base + signal.path,
                    data=body,
                    headers={"Content-Type": _CONTENT_TYPE},
                ) as resp:
                    await resp.read()
                    if not 200 <= resp.status < 300:
                        failures.append(f"{signal.value}: HTTP {resp.status}")
                        continue
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                failures.append(f"{signal.value}: {exc or type(exc).__name__}")
                continue
            buf.clear()

    if failures:
        raise ExportError("; ".join(failures))