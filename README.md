# lambda-otel-relay

An AWS Lambda extension. It receives OpenTelemetry data from your function
over OTLP/HTTP, buffers it, and forwards it to an external collector.

## What it does

- It registers with the Lambda Extensions API for `INVOKE` and `SHUTDOWN` events.
- It listens for OTLP/HTTP on `127.0.0.1` and accepts `POST /v1/traces`,
  `POST /v1/metrics` and `POST /v1/logs`. Each payload goes into a bounded
  queue that holds 128 items.
  - An unknown path gets `404`.
  - A method other than `POST` gets `405`.
  - A body that cannot be read gets `400`.
  - A full queue gets `503` with `Retry-After: 1`.
  - After shutdown the reply is `502`.
- It listens for Lambda Telemetry API batches on `0.0.0.0`. It picks out
  `platform.start` and `platform.runtimeDone` events and ignores all other types.
  - A `POST` is answered `200`, even when the batch does not parse or events
    are dropped because the queue is full.
  - A method other than `POST` gets `405`.
  - A body that is not UTF-8 gets `400`.
  - The received events are logged.
- It flushes the buffer after each invocation, and once more on shutdown after
  draining what is still queued. One flush sends at most one request per
  signal:
  - Each request is a `POST` to `<endpoint>/v1/<signal>` with
    `Content-Type: application/x-protobuf`.
  - The body is the signal's payloads concatenated.
  - Each request has a 10 second timeout.
  - A signal's queue is cleared only when its request returns a 2xx status.
    Otherwise the data stays buffered for the next flush.

## Installation

```
pip install lambda-otel-relay
```

## Configuration

The extension reads its settings from environment variables:

| Variable                           | Required | Default | Meaning                        |
|------------------------------------|----------|---------|--------------------------------|
| `LAMBDA_OTEL_RELAY_ENDPOINT`       | yes      |         | Base URL of the collector      |
| `LAMBDA_OTEL_RELAY_LISTENER_PORT`  | no       | `4318`  | OTLP/HTTP listener port        |
| `LAMBDA_OTEL_RELAY_TELEMETRY_PORT` | no       | `4319`  | Telemetry API listener port    |

The Lambda platform sets `AWS_LAMBDA_RUNTIME_API`, and the extension needs it.
In these cases the extension logs the error and exits with status 1:

- the endpoint is missing or empty;
- the endpoint is not a valid URL;
- a port is not a number from 0 to 65535;
- `AWS_LAMBDA_RUNTIME_API` is unset;
- registration fails.

## Running

Start the extension inside a Lambda execution environment:

```
lambda-otel-relay
```

It logs to standard error as one JSON object per line. Each object has
`timestamp`, `level` and `message`, plus any fields attached to the record.

## Using it from Python

The main modules are:

- `lambda_otel_relay.config`: `Config.parse(vars)` and `Config.from_env()`.
  A bad setting raises `EndpointMissing`, `EndpointInvalidUrl` or
  `InvalidNumeric`, all subclasses of `ConfigError`.
- `lambda_otel_relay.buffers`: `Signal`, `SignalBuffer` and `OutboundBuffer.push(signal, payload)`.
- `lambda_otel_relay.channel`: `Channel`, a bounded queue with `try_send`,
  `recv`, `close` and `drain`. A failed send raises `ChannelFull` or
  `ChannelClosed`.
- `lambda_otel_relay.exporter`: `export(endpoint, buffer)`. It raises
  `ExportError` if any signal fails.
- `lambda_otel_relay.extensions_api`: `ExtensionApiClient.register(runtime_api)`,
  `next_event()`, `close()`, and `parse_event(body)`. These return
  `InvokeEvent` or `ShutdownEvent`, or raise an `ApiError` subclass.
- `lambda_otel_relay.telemetry_events`: `parse_batch(body)`. It returns
  `RuntimeDone` and `Start` events, and an empty list for a malformed batch.
- `lambda_otel_relay.otlp_listener` and `lambda_otel_relay.telemetry_listener`:
  `handle(...)` returns a `Reply`, and `serve(port, tx, cancel)` runs the
  listener until the `asyncio.Event` is set.
- `lambda_otel_relay.app`: `run(config, runtime_api)`, `main(argv=None)`,
  `setup_logging()` and `JsonFormatter`.

```python
from lambda_otel_relay.config import Config
from lambda_otel_relay.telemetry_events import parse_batch

config = Config.parse({"LAMBDA_OTEL_RELAY_ENDPOINT": "http://localhost:4318"})
print(config.listener_port)   # 4318

events = parse_batch(
    '[{"type":"platform.runtimeDone","record":{"requestId":"req-1","status":"success"}}]'
)
# [RuntimeDone(request_id='req-1', status='success')]
```

## What it does not do

- It does not subscribe to the Lambda Telemetry API. The telemetry listener
  only receives batches if something else subscribes it.
- Telemetry events are only logged. The extension keeps no per-invocation
  state, does not use X-Ray trace context, and emits no timeout records.
- Flushes happen only at the next invocation and at shutdown. There is no
  background flush during an invocation, and no flush triggered by buffer size.
- There is no retry with backoff. Failed data simply waits for the next flush.

## Development

```
pip install -e ".[test]"
pytest
```