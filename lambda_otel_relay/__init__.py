"""Lambda extension that buffers OTLP/HTTP telemetry and relays it to a collector."""

__version__ = "0.1.0"
__all__ = ["__version__"]