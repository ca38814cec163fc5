"""Platform events delivered in batches by the Lambda Telemetry API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeDone:
    """``platform.runtimeDone``: the outcome of an invocation.

    ``status`` is one of success, failure, error or timeout.
    """

    request_id: str
    status: str


@dataclass(frozen=True)
class Start:
    """``platform.start``: carries X-Ray trace context when tracing is active."""

    request_id: str
    tracing_value: str | None = None


TelemetryEvent = Union[RuntimeDone, Start]


class _Malformed(ValueError):
    pass


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise _Malformed(f"field {key!r} must be a string")
    return value


def _optional_object(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is not None and not isinstance(value, dict):
        raise _Malformed(f"field {key!r} must be an object")
    return value


def _convert(item: Any) -> TelemetryEvent | None:
    if not isinstance(item, dict):
        raise _Malformed("batch element must be an object")
    event_type = item.get("type")
    if not isinstance(event_type, str):
        raise _Malformed("field 'type' must be a string")
    record = item.get("record")
    if not isinstance(record, dict):
        raise _Malformed("field 'record' must be an object")

    request_id = _optional_str(record, "requestId") or ""
    status = _optional_str(record, "status")
    tracing = _optional_object(record, "tracing")
    tracing_value = _optional_str(tracing, "value") if tracing is not None else None

    if event_type == "platform.runtimeDone":
        return RuntimeDone(request_id=request_id, status=status or "")
    if event_type == "platform.start":
        return Start(request_id=request_id, tracing_value=tracing_value)
    return None


def parse_batch(body: str) -> list[TelemetryEvent]:
    """Decode a batch, keeping only the event types the relay uses.

    A batch that does not parse is logged and yields no events.
    """
    try:
        raw = json.loads(body)
        if not isinstance(raw, list):
            raise _Malformed("expected a JSON array")
        converted = [_convert(item) for item in raw]
    except (json.JSONDecodeError, _Malformed) as exc:
        log.warning("telemetry batch parse failed", extra={"error": str(exc)})
        return []
    return [event for event in converted if event is not None]