from lambda_otel_relay.buffers import OutboundBuffer, Signal


def test_push_to_traces():
    buf = OutboundBuffer()
    buf.push(Signal.TRACES, b"trace1")
    buf.push(Signal.TRACES, b"trace2")
    assert len(buf.traces.queue) == 2
    assert buf.traces.size_bytes == len(b"trace1") + len(b"trace2")


def test_push_to_metrics():
    buf = OutboundBuffer()
    buf.push(Signal.METRICS, b"metric1")
    assert len(buf.metrics.queue) == 1
    assert buf.metrics.size_bytes == len(b"metric1")


def test_push_to_logs():
    buf = OutboundBuffer()
    buf.push(Signal.LOGS, b"log1")
    buf.push(Signal.LOGS, b"log2")
    buf.push(Signal.LOGS, b"log3")
    assert len(buf.logs.queue) == 3
    assert buf.logs.size_bytes == len(b"log1") + len(b"log2") + len(b"log3")


def test_push_keeps_order_and_isolates_signals():
    buf = OutboundBuffer()
    buf.push(Signal.LOGS, b"a")
    buf.push(Signal.LOGS, b"b")
    assert list(buf.logs.queue) == [b"a", b"b"]
    assert buf.traces.size_bytes == 0
    assert buf.metrics.size_bytes == 0


def test_iteration_covers_every_signal():
    buf = OutboundBuffer()
    buf.push(Signal.METRICS, b"m")
    pairs = dict(buf)
    assert set(pairs) == set(Signal)
    assert pairs[Signal.METRICS] is buf.metrics


def test_clear_resets_size():
    buf = OutboundBuffer()
    buf.push(Signal.TRACES, b"trace1")
    buf.traces.clear()
    assert len(buf.traces) == 0
    assert buf.traces.size_bytes == 0


def test_signal_paths_of_buffered_signals():
    buf = OutboundBuffer()
    paths = {signal.path for signal, _ in buf}
    assert paths == {"/v1/traces", "/v1/metrics", "/v1/logs"}