"""smoked CLI Entry Point.

Commands:
    smoked serve        Run the HTTP API under uvicorn.
    smoked run T X      Run one operation locally and print the JSON response.
    smoked operations   List the enabled operations.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from smoked.core.config import ConfigurationError, LoggingConfig, get_settings
from smoked.core.models import LookingGlassRequest

log = structlog.get_logger()

app = typer.Typer(
    name="smoked",
    help="smoked - looking-glass network diagnostics service",
    no_args_is_help=True,
)


def configure_logging(cfg: Optional[LoggingConfig] = None) -> None:
    """Configure structlog (and stdlib logging underneath) from settings."""
    if cfg is None:
        cfg = get_settings().logging

    level = getattr(logging, cfg.level)
    renderer = (
        structlog.dev.ConsoleRenderer()
        if cfg.format == "console"
        else structlog.processors.JSONRenderer()
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config_callback(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file", is_eager=True
    ),
) -> Optional[Path]:
    """Load configuration file if provided."""
    if config:
        if not config.exists():
            typer.echo(f"Error: Config file '{config}' not found", err=True)
            raise typer.Exit(code=1)

    try:
        get_settings(force_reload=True, system_config_path=config)
    except ConfigurationError as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)

    configure_logging()
    if config:
        log.info("config_loaded", path=str(config))
    return config


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c",
        callback=load_config_callback,
        is_eager=True,
        help="Path to configuration file",
    ),
) -> None:
    """smoked CLI."""
    pass


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (overrides server.host)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (overrides server.port)"),
) -> None:
    """Run the looking-glass HTTP API."""
    import uvicorn

    from smoked.api.app import create_app

    settings = get_settings()
    bind_host = host or settings.server.host
    bind_port = port or settings.server.port

    log.info("server_starting", host=bind_host, port=bind_port)
    try:
        uvicorn.run(create_app(settings), host=bind_host, port=bind_port, log_config=None)
    except OSError as e:
        log.error("server_start_failed", error=str(e))
        raise typer.Exit(code=1)


@app.command()
def run(
    operation: str = typer.Argument(..., help="Operation type (e.g. ping)"),
    target: str = typer.Argument(..., help="Target host, IP or CIDR"),
) -> None:
    """Run one operation locally and print the JSON response."""
    from smoked.api.app import build_dispatcher

    dispatcher = build_dispatcher(get_settings())
    response = asyncio.run(dispatcher.handle(LookingGlassRequest(type=operation, target=target)))

    typer.echo(response.to_json())
    if response.is_error:
        raise typer.Exit(code=1)


@app.command()
def operations() -> None:
    """List the enabled operations."""
    from smoked.operations import build_registry

    registry = build_registry(feature_enabled=get_settings().feature_enabled)
    if not registry:
        typer.echo("No operations enabled")
        return

    for name, descriptor in registry.items():
        classes = ", ".join(sorted(descriptor.validation_classes))
        template = " ".join(descriptor.argument_template)
        typer.echo(f"{name:<12} {descriptor.command} {template}  [{classes}]")


if __name__ == "__main__":  # pragma: no cover
    app()
