"""
Shared setup for CLI commands: config, logging and remote clients.
"""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from rowsync.core.config import get_settings
from rowsync.utils.logging_setup import setup_logging
from rowsync.workflows.loader import load_config
from rowsync.workflows.schema import SyncConfig


def prepare(config_file: Optional[Path], component: str) -> SyncConfig:
    """Resolve and load the config file, then initialise logging."""
    settings = get_settings()
    if not config_file:
        config_file = Path(settings.CONFIG_FILE)
        click.echo(f"Using default config: {config_file}")

    if not config_file.exists():
        click.echo(f"\n✗ Config file not found: {config_file}", err=True)
        if not config_file.is_absolute():
            click.echo(f"  Looking in: {config_file.absolute()}", err=True)
        sys.exit(1)

    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"\n✗ Invalid config: {e}", err=True)
        sys.exit(1)

    setup_logging(
        log_level=settings.LOG_LEVEL or config.logging.log_level,
        log_dir=settings.LOG_DIR or config.logging.log_dir,
        component=component
    )
    return config


def build_clients(config: SyncConfig) -> Tuple:
    """Authorize against Drive and build the object store and gateway."""
    from rowsync.components.common.drive_client import DriveClient
    from rowsync.components.common.google_auth import get_drive_service
    from rowsync.components.common.telegram_client import TelegramClient

    service = get_drive_service(config.google_credentials_file, config.google_token_file)
    object_store = DriveClient(service)
    gateway = TelegramClient(config.telegram_bot_token) if config.telegram_bot_token else None
    return object_store, gateway
