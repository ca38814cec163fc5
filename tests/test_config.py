import pytest

from lambda_otel_relay.config import (
    Config,
    ConfigError,
    EndpointInvalidUrl,
    EndpointMissing,
    InvalidNumeric,
)


def test_parses_endpoint_and_applies_default_ports():
    config = Config.parse(
        {"LAMBDA_OTEL_RELAY_ENDPOINT": "https://collector.example.com:4318"}
    )
    assert config.endpoint.scheme == "https"
    assert config.endpoint.hostname == "collector.example.com"
    assert config.listener_port == 4318
    assert config.telemetry_port == 4319


def test_overrides_default_ports_when_set():
    config = Config.parse(
        {
            "LAMBDA_OTEL_RELAY_ENDPOINT": "http://localhost:4318",
            "LAMBDA_OTEL_RELAY_LISTENER_PORT": "9090",
            "LAMBDA_OTEL_RELAY_TELEMETRY_PORT": "9091",
        }
    )
    assert config.listener_port == 9090
    assert config.telemetry_port == 9091


def test_rejects_missing_endpoint():
    with pytest.raises(EndpointMissing):
        Config.parse({})


def test_missing_endpoint_message():
    with pytest.raises(ConfigError) as info:
        Config.parse({})
    assert str(info.value) == "LAMBDA_OTEL_RELAY_ENDPOINT is required but not set"


def test_rejects_empty_endpoint():
    with pytest.raises(EndpointMissing):
        Config.parse({"LAMBDA_OTEL_RELAY_ENDPOINT": ""})


def test_rejects_invalid_endpoint_url():
    with pytest.raises(EndpointInvalidUrl) as info:
        Config.parse({"LAMBDA_OTEL_RELAY_ENDPOINT": "not a url"})
    assert info.value.value == "not a url"


def test_rejects_non_numeric_port():
    with pytest.raises(InvalidNumeric) as info:
        Config.parse(
            {
                "LAMBDA_OTEL_RELAY_ENDPOINT": "http://localhost:4318",
                "LAMBDA_OTEL_RELAY_LISTENER_PORT": "abc",
            }
        )
    assert info.value.name == "LAMBDA_OTEL_RELAY_LISTENER_PORT"
    assert info.value.value == "abc"


def test_rejects_out_of_range_port():
    with pytest.raises(InvalidNumeric):
        Config.parse(
            {
                "LAMBDA_OTEL_RELAY_ENDPOINT": "http://localhost:4318",
                "LAMBDA_OTEL_RELAY_TELEMETRY_PORT": "70000",
            }
        )


def test_from_env_reads_prefixed_variables_only():
    environ = {
        "LAMBDA_OTEL_RELAY_ENDPOINT": "http://localhost:4318",
        "LAMBDA_OTEL_RELAY_LISTENER_PORT": "9090",
        "LISTENER_PORT": "not-a-number",
    }
    config = Config.from_env(environ)
    assert config.endpoint.hostname == "localhost"
    assert config.listener_port == 9090
    assert config.telemetry_port == 4319


def test_from_env_without_endpoint_fails():
    with pytest.raises(EndpointMissing):
        Config.from_env({"OTHER": "http://localhost:4318"})