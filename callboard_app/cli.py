"""
Click CLI for the signal board.

Implements the `callboard` console script: `serve` runs the HTTP/WebSocket
server, `clear-family` and `purge-expired` maintain the persisted state.
"""

import sys
from pathlib import Path
from typing import Optional

import click
import structlog
import uvicorn
from dotenv import load_dotenv

from . import __version__
from .config.defaults import AppConfig
from .config.loader import ConfigLoader
from .errors import ConfigError, PersistenceError
from .logging.config import configure_logging
from .persistence.state_gateway import StateGateway
from .state.families import FAMILIES, family_by_id

logger = structlog.get_logger(__name__)


def _load_config(config_dir: Optional[Path], overrides: Optional[dict] = None) -> AppConfig:
    """Load .env, then configuration, then set up logging."""
    load_dotenv()
    try:
        config = ConfigLoader.create(config_dir).load(overrides)
    except ConfigError as e:
        raise click.ClickException(str(e)) from None

    configure_logging(level=config.logging.level, format_json=config.logging.format_json)
    return config


def _open_gateway(config: AppConfig) -> StateGateway:
    return StateGateway(config.persistence.db_path, config.persistence.ttl_days)


def validate_family(_ctx: click.Context, _param: click.Parameter, value: str) -> str:
    """Validate a channel family id."""
    family_id = value.lower()
    if family_by_id(family_id) is None:
        valid = ", ".join(family.family_id for family in FAMILIES)
        raise click.BadParameter(f"Unknown family: '{value}'. Valid families: {valid}")
    return family_id


config_dir_option = click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding callboard.yaml. Default: the bundled config/ directory",
)


@click.group()
@click.version_option(version=__version__, prog_name="callboard")
def cli() -> None:
    """Callboard signal-state board.

    \b
    Commands:
      serve          Run the webhook and viewer server
      clear-family   Null one channel family in every persisted row
      purge-expired  Delete persisted rows past their expiry
    """
    pass


@cli.command()
@config_dir_option
@click.option("--host", default=None, help="Bind address. Overrides config and CALLBOARD_HOST")
@click.option("--port", default=None, type=int, help="Bind port. Overrides config and PORT")
def serve(config_dir: Optional[Path], host: Optional[str], port: Optional[int]) -> None:
    """Run the webhook and viewer server until interrupted.

    \b
    Example:
      callboard serve --port 3000
    """
    server_overrides = {}
    if host is not None:
        server_overrides["host"] = host
    if port is not None:
        server_overrides["port"] = port

    config = _load_config(config_dir, {"server": server_overrides} if server_overrides else None)

    # Imported late so maintenance commands do not pull in the web stack
    from .server.app import create_app

    try:
        app = create_app(config)
    except PersistenceError as e:
        raise click.ClickException(str(e)) from None

    logger.info(
        "Starting server",
        host=config.server.host,
        port=config.server.port,
        db_path=config.persistence.db_path if config.persistence.enabled else None,
    )
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_config=None)


@cli.command("clear-family")
@click.argument("family", callback=validate_family)
@config_dir_option
def clear_family(family: str, config_dir: Optional[Path]) -> None:
    """Null every channel of FAMILY in all persisted rows.

    \b
    Example:
      callboard clear-family call3_1h
    """
    config = _load_config(config_dir)
    try:
        cleared = _open_gateway(config).clear_family(family_by_id(family))
    except PersistenceError as e:
        logger.error("Clear family failed", family=family, error=str(e))
        sys.exit(1)

    click.echo(f"Cleared {family} in {cleared} row(s)")


@cli.command("purge-expired")
@config_dir_option
def purge_expired(config_dir: Optional[Path]) -> None:
    """Delete persisted rows whose expiry has passed."""
    config = _load_config(config_dir)

    try:
        deleted = _open_gateway(config).purge_expired()
    except PersistenceError as e:
        logger.error("Purge failed", error=str(e))
        sys.exit(1)

    click.echo(f"Purged {deleted} expired row(s)")


def main() -> None:
    """Entry point for the callboard CLI."""
    cli()


if __name__ == "__main__":
    main()
