from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import DEFAULT_TOPIC


class KafkaConfig(BaseModel):
    """Configuration for the Kafka transport."""

    brokers: List[str] = Field(default_factory=lambda: ["localhost:9092"])
    group_id: str = "sources-superkey-worker"
    dlq_topic: Optional[str] = None


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["inmemory", "kafka"] = "inmemory"
    topic: str = DEFAULT_TOPIC
    kafka: KafkaConfig = KafkaConfig()


class InventoryConfig(BaseModel):
    """Where and how to reach the inventory service."""

    scheme: str = "http"
    host: str = "localhost"
    port: int = 8000
    psk: Optional[str] = Field(default=None, repr=False)
    max_attempts: int = 3
    retry_delay: float = 1.0
    timeout: float = 10.0

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class AmazonConfig(BaseModel):
    region: str = "us-east-1"
    # IAM is eventually consistent; wait before handing the role out.
    iam_wait_seconds: float = 7


class AzureConfig(BaseModel):
    template_path: str = "/tmp/az_payload.json"
    local_template_path: Optional[str] = None
    cloudigrade_url: Optional[str] = None
    sysconfig_path: Optional[str] = None
    location: str = "WestUS"
    command_timeout: float = 300
    poll_interval: float = 5
    poll_attempts: int = 12


class WorkerConfig(BaseModel):
    max_concurrency: int = 10
    forge_timeout: Optional[float] = None
    disable_creation: bool = False
    disable_deletion: bool = False


class SuperkeyConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = TransportConfig()
    inventory: InventoryConfig = InventoryConfig()
    amazon: AmazonConfig = AmazonConfig()
    azure: AzureConfig = AzureConfig()
    worker: WorkerConfig = WorkerConfig()
    log_level: str = "INFO"


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: Optional[str] = None) -> SuperkeyConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Optional path to config file. Falls back to SUPERKEY_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("SUPERKEY_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SuperkeyConfig(**data)
    else:
        config = SuperkeyConfig()

    inventory = config.inventory
    inventory.scheme = os.getenv("SOURCES_SCHEME") or inventory.scheme
    inventory.host = os.getenv("SOURCES_HOST") or inventory.host
    if os.getenv("SOURCES_PORT"):
        inventory.port = int(os.environ["SOURCES_PORT"])
    inventory.psk = os.getenv("SOURCES_PSK") or inventory.psk
    if os.getenv("SOURCES_REQUESTS_MAX_ATTEMPTS"):
        inventory.max_attempts = int(os.environ["SOURCES_REQUESTS_MAX_ATTEMPTS"])

    if os.getenv("AWS_WAIT_TIME"):
        config.amazon.iam_wait_seconds = float(os.environ["AWS_WAIT_TIME"])

    azure = config.azure
    azure.cloudigrade_url = os.getenv("CLOUD_METER_URL") or azure.cloudigrade_url
    azure.sysconfig_path = (
        os.getenv("CLOUD_METER_SYSCONFIG_PATH") or azure.sysconfig_path
    )
    azure.local_template_path = (
        os.getenv("AZURE_TEMPLATE_PATH") or azure.local_template_path
    )

    disable_creation = _env_flag("DISABLE_RESOURCE_CREATION")
    if disable_creation is not None:
        config.worker.disable_creation = disable_creation
    disable_deletion = _env_flag("DISABLE_RESOURCE_DELETION")
    if disable_deletion is not None:
        config.worker.disable_deletion = disable_deletion

    backend = os.getenv("SUPERKEY_TRANSPORT")
    if backend:
        config.transport.backend = backend.lower()  # type: ignore[assignment]
    brokers = os.getenv("KAFKA_BROKERS")
    if brokers:
        config.transport.kafka.brokers = [b.strip() for b in brokers.split(",") if b.strip()]

    config.log_level = os.getenv("LOG_LEVEL") or config.log_level
    return config
