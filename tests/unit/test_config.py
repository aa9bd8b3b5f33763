"""Tests for configuration loading."""

import pytest

from superkey.config import load_config
from superkey.transports import InMemoryTransport, get_transport

ENV_VARS = [
    "SUPERKEY_CONFIG",
    "SOURCES_SCHEME",
    "SOURCES_HOST",
    "SOURCES_PORT",
    "SOURCES_PSK",
    "SOURCES_REQUESTS_MAX_ATTEMPTS",
    "AWS_WAIT_TIME",
    "CLOUD_METER_URL",
    "CLOUD_METER_SYSCONFIG_PATH",
    "AZURE_TEMPLATE_PATH",
    "DISABLE_RESOURCE_CREATION",
    "DISABLE_RESOURCE_DELETION",
    "SUPERKEY_TRANSPORT",
    "KAFKA_BROKERS",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_file():
    config = load_config()
    assert config.transport.backend == "inmemory"
    assert config.transport.topic == "platform.sources.superkey-requests"
    assert config.inventory.base_url == "http://localhost:8000"
    assert config.inventory.max_attempts == 3
    assert config.amazon.iam_wait_seconds == 7
    assert config.azure.template_path == "/tmp/az_payload.json"
    assert not config.worker.disable_creation


def test_load_config_from_file(tmp_path, monkeypatch):
    config_path = tmp_path / "superkey.yaml"
    config_path.write_text(
        """
transport:
  backend: kafka
  kafka:
    brokers: ["kafka:29092"]
    group_id: superkey-test
inventory:
  host: sources-api
  port: 8080
worker:
  max_concurrency: 4
  forge_timeout: 120
"""
    )
    monkeypatch.setenv("SUPERKEY_CONFIG", str(config_path))

    config = load_config()
    assert config.transport.backend == "kafka"
    assert config.transport.kafka.brokers == ["kafka:29092"]
    assert config.transport.kafka.group_id == "superkey-test"
    assert config.inventory.base_url == "http://sources-api:8080"
    assert config.worker.max_concurrency == 4
    assert config.worker.forge_timeout == 120


def test_env_overrides(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("inventory:\n  host: from-file\n")
    monkeypatch.setenv("SOURCES_HOST", "from-env")
    monkeypatch.setenv("SOURCES_PORT", "9000")
    monkeypatch.setenv("SOURCES_PSK", "secret")
    monkeypatch.setenv("SOURCES_REQUESTS_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("AWS_WAIT_TIME", "0")
    monkeypatch.setenv("AZURE_TEMPLATE_PATH", "/templates/az.json")
    monkeypatch.setenv("DISABLE_RESOURCE_CREATION", "true")
    monkeypatch.setenv("DISABLE_RESOURCE_DELETION", "false")
    monkeypatch.setenv("KAFKA_BROKERS", "a:9092, b:9092")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config(str(config_path))
    assert config.inventory.host == "from-env"
    assert config.inventory.port == 9000
    assert config.inventory.psk == "secret"
    assert "secret" not in repr(config.inventory)
    assert config.inventory.max_attempts == 5
    assert config.amazon.iam_wait_seconds == 0
    assert config.azure.local_template_path == "/templates/az.json"
    assert config.worker.disable_creation is True
    assert config.worker.disable_deletion is False
    assert config.transport.kafka.brokers == ["a:9092", "b:9092"]
    assert config.log_level == "DEBUG"


def test_get_transport_uses_config():
    assert isinstance(get_transport(config=load_config()), InMemoryTransport)


def test_get_transport_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported transport backend"):
        get_transport("carrier-pigeon", config=load_config())
