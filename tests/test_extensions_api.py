import json

import pytest
from aiohttp import web

from lambda_otel_relay.extensions_api import (
    ApiError,
    ExtensionApiClient,
    InvokeEvent,
    MissingExtensionId,
    ParseError,
    ShutdownEvent,
    UnknownEventType,
    parse_event,
)


def test_parse_invoke():
    event = parse_event('{"eventType":"INVOKE","requestId":"req-abc-123"}')
    assert event == InvokeEvent(request_id="req-abc-123")


def test_parse_invoke_missing_request_id():
    event = parse_event('{"eventType":"INVOKE"}')
    assert event == InvokeEvent(request_id="")


def test_parse_shutdown():
    event = parse_event('{"eventType":"SHUTDOWN","shutdownReason":"timeout"}')
    assert event == ShutdownEvent(reason="timeout")


def test_parse_shutdown_missing_reason():
    event = parse_event('{"eventType":"SHUTDOWN"}')
    assert event == ShutdownEvent(reason="")


def test_parse_unknown_event_type():
    with pytest.raises(UnknownEventType) as info:
        parse_event('{"eventType":"BANANA"}')
    assert info.value.event_type == "BANANA"


def test_parse_malformed_json():
    with pytest.raises(ParseError):
        parse_event("{not valid")


def test_parse_empty_body():
    with pytest.raises(ParseError):
        parse_event("")


def test_parse_missing_event_type():
    with pytest.raises(ParseError):
        parse_event('{"requestId":"req-1"}')


def test_parse_errors_are_api_errors():
    with pytest.raises(ApiError):
        parse_event("[]")


async def _start_server(register_headers, register_body, events):
    seen = {"register": [], "next": []}

    async def register(request):
        seen["register"].append(
            (request.headers.get("Lambda-Extension-Name"), await request.text())
        )
        return web.Response(text=register_body, headers=register_headers)

    async def next_event(request):
        seen["next"].append(request.headers.get("Lambda-Extension-Identifier"))
        return web.Response(text=events.pop(0))

    app = web.Application()
    app.router.add_post("/2020-01-01/extension/register", register)
    app.router.add_get("/2020-01-01/extension/event/next", next_event)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    return runner, f"127.0.0.1:{port}", seen


REGISTER_BODY = json.dumps(
    {"functionName": "fn", "functionVersion": "$LATEST", "handler": "index.handler"}
)


@pytest.mark.asyncio
async def test_register_and_poll_events():
    runner, api, seen = await _start_server(
        {"Lambda-Extension-Identifier": "ext-id-1"},
        REGISTER_BODY,
        [
            '{"eventType":"INVOKE","requestId":"req-1"}',
            '{"eventType":"SHUTDOWN","shutdownReason":"spindown"}',
        ],
    )
    try:
        async with await ExtensionApiClient.register(api) as client:
            assert client.ext_id == "ext-id-1"
            assert await client.next_event() == InvokeEvent(request_id="req-1")
            assert await client.next_event() == ShutdownEvent(reason="spindown")
    finally:
        await runner.cleanup()

    name, body = seen["register"][0]
    assert name == "lambda-otel-relay"
    assert json.loads(body) == {"events": ["INVOKE", "SHUTDOWN"]}
    assert seen["next"] == ["ext-id-1", "ext-id-1"]


@pytest.mark.asyncio
async def test_register_without_identifier_header():
    runner, api, _ = await _start_server({}, REGISTER_BODY, [])
    try:
        with pytest.raises(MissingExtensionId):
            await ExtensionApiClient.register(api)
    finally:
        await runner.cleanup()


@pytest.mark.asyncio
async def test_register_with_malformed_body():
    runner, api, _ = await _start_server(
        {"Lambda-Extension-Identifier": "ext-id-1"}, "{nope", []
    )
    try:
        with pytest.raises(ParseError):
            await ExtensionApiClient.register(api)
    finally:
        await runner.cleanup()


@pytest.mark.asyncio
async def test_register_unreachable_raises_api_error():
    runner, api, _ = await _start_server({}, REGISTER_BODY, [])
    await runner.cleanup()
    with pytest.raises(ApiError):
        await ExtensionApiClient.register(api)