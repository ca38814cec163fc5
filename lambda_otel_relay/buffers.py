"""In-memory buffering of OTLP payloads, grouped by signal type."""

from __future__ import annotations

import enum
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field


class Signal(enum.Enum):
    """The three OTLP signal types."""

    TRACES = "traces"
    METRICS = "metrics"
    LOGS = "logs"

    @property
    def path(self) -> str:
        """The OTLP/HTTP path for this signal, e.g. ``/v1/traces``."""
        return f"/v1/{self.value}"


@dataclass
class SignalBuffer:
    """A FIFO of payloads for one signal, with a running byte count."""

    queue: deque[bytes] = field(default_factory=deque)
    size_bytes: int = 0

    def clear(self) -> None:
        """Drop every queued payload."""
        self.queue.clear()
        self.size_bytes = 0

    def __len__(self) -> int:
        return len(self.queue)


@dataclass
class OutboundBuffer:
    """Payloads waiting to be exported, one queue per signal."""

    traces: SignalBuffer = field(default_factory=SignalBuffer)
    metrics: SignalBuffer = field(default_factory=SignalBuffer)
    logs: SignalBuffer = field(default_factory=SignalBuffer)

    def __getitem__(self, signal: Signal) -> SignalBuffer:
        return getattr(self, signal.value)

    def __iter__(self) -> Iterator[tuple[Signal, SignalBuffer]]:
        for signal in Signal:
            yield signal, self[signal]

    def push(self, signal: Signal, payload: bytes) -> None:
        """Append a payload to the queue of its signal."""
        buf = self[signal]
        buf.size_bytes += len(payload)
        buf.queue.append(bytes(payload))