[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lambda-otel-relay"
version = "0.1.0"
description = "AWS Lambda extension that relays OpenTelemetry (OTLP/HTTP) data to an external collector"
requires-python = ">=3.10"
keywords = ["aws", "lambda", "extension", "opentelemetry", "otlp", "telemetry", "relay"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "aiohttp>=3.9",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "pytest-asyncio>=0.23",
]

[project.scripts]
lambda-otel-relay = "lambda_otel_relay.app:main"

[tool.hatch.build.targets.wheel]
packages = ["lambda_otel_relay"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
