"""Command line interface for the superkey worker."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from .config import SuperkeyConfig, load_config
from .constants import EVENT_CREATE, EVENT_DESTROY, HEADER_EVENT_TYPE, HEADER_IDENTITY, HEADER_ORG_ID
from .contracts import CreateRequest, DestroyRequest, InboundMessage
from .dispatch import RequestDispatcher
from .errors import TeardownError
from .forge import Forger
from .inventory import get_inventory_client
from .log import configure_logging
from .providers import default_registry
from .providers.templates import AzureTemplateStore
from .reporting import InventoryReporter
from .transports import get_transport
from .worker import SuperkeyWorker

logger = logging.getLogger(__name__)

app = typer.Typer(help="CLI for the superkey worker")

worker_app = typer.Typer(help="Commands for running the worker")
request_app = typer.Typer(help="Commands for processing a single request")
message_app = typer.Typer(help="Commands for the request queue")
azure_app = typer.Typer(help="Commands for the Azure deployment template")

app.add_typer(worker_app, name="worker")
app.add_typer(request_app, name="request")
app.add_typer(message_app, name="message")
app.add_typer(azure_app, name="azure")


@app.callback()
def main() -> None:
    """Superkey CLI entry point."""
    pass


def _bootstrap(config: SuperkeyConfig) -> RequestDispatcher:
    templates = AzureTemplateStore(config.azure)
    if not asyncio.run(templates.ensure()):
        logger.warning("Azure deployment template unavailable; azure requests will fail")
    inventory = get_inventory_client(config)
    forger = Forger(config, inventory, default_registry(config, templates))
    return RequestDispatcher(forger, InventoryReporter(inventory, config), config)


def _load(config_path: Optional[Path]) -> SuperkeyConfig:
    config = load_config(str(config_path) if config_path else None)
    configure_logging(config.log_level)
    return config


@worker_app.command("start")
def worker_start(
    lifespan: Optional[float] = None,
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """
    Run the worker against the configured transport.

    Args:
        lifespan: Worker timeout in seconds (default: run indefinitely)

    Example:
        superkey worker start
        superkey worker start --lifespan 300
    """
    config = _load(config_path)
    dispatcher = _bootstrap(config)
    transport = get_transport(config=config)

    async def run() -> None:
        async with transport:
            worker = SuperkeyWorker(
                transport,
                dispatcher,
                topic=config.transport.topic,
                max_concurrency=config.worker.max_concurrency,
            )
            await worker.start(lifespan=lifespan)

    typer.echo(f"Starting superkey worker on {config.transport.topic}")
    asyncio.run(run())


@request_app.command("create")
def request_create(
    file: Path,
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Forge the create request stored in FILE and report it to inventory."""
    config = _load(config_path)
    request = CreateRequest.model_validate_json(file.read_text())
    dispatcher = _bootstrap(config)
    forged = asyncio.run(dispatcher.create_resources(request))
    if forged is None:
        typer.echo("Resource creation is disabled")
        return
    if forged.error is not None:
        typer.secho(f"Forge failed: {forged.error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(forged.to_destroy_request().model_dump_json(indent=2))


@request_app.command("destroy")
def request_destroy(
    file: Path,
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Tear down the resources listed in the destroy request stored in FILE."""
    config = _load(config_path)
    request = DestroyRequest.model_validate_json(file.read_text())
    dispatcher = _bootstrap(config)
    errors = asyncio.run(dispatcher.destroy_resources(request))
    if errors:
        typer.secho(str(TeardownError(errors)), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Destroyed resources for {request.guid}")


@message_app.command("publish")
def message_publish(
    file: Path,
    event_type: str = typer.Option(EVENT_CREATE, help=f"{EVENT_CREATE} or {EVENT_DESTROY}"),
    identity: str = typer.Option("", help="Base64 encoded identity header"),
    org_id: str = typer.Option("", help="Tenant org id"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Publish the request body in FILE to the request topic."""
    config = _load(config_path)
    headers = {HEADER_EVENT_TYPE: event_type}
    if identity:
        headers[HEADER_IDENTITY] = identity
    if org_id:
        headers[HEADER_ORG_ID] = org_id
    message = InboundMessage(headers=headers, value=file.read_text())
    transport = get_transport(config=config)

    async def run() -> None:
        async with transport:
            await transport.publish(config.transport.topic, message)

    asyncio.run(run())
    typer.echo(f"Published {event_type} to {config.transport.topic}")


@azure_app.command("fetch-template")
def azure_fetch_template(
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Download or copy the Azure deployment template."""
    config = _load(config_path)
    templates = AzureTemplateStore(config.azure)
    if not asyncio.run(templates.ensure()):
        typer.secho("Azure deployment template unavailable", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Template written to {templates.path}")


if __name__ == "__main__":
    app()
