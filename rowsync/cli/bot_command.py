"""
Bot Command - Listen for Telegram trigger messages
"""

import logging
import sys
from pathlib import Path

import click

from .common import build_clients, prepare

logger = logging.getLogger(__name__)


@click.command('bot')
@click.argument(
    'config_file',
    type=click.Path(exists=True, path_type=Path),
    required=False
)
@click.option('--no-clean', is_flag=True, help='Keep fetched and modified files after each run')
def bot_command(config_file, no_clean):
    """
    Run syncs on request from allowed Telegram users.

    CONFIG_FILE: Path to YAML config (optional)

    The bot answers messages equal to bot.trigger_message from users listed
    in bot.users, sent after the bot started.
    """
    config = prepare(config_file, component='rowsync-bot')
    if not config.telegram_bot_token:
        click.echo("\n✗ telegram_bot_token is required in bot mode", err=True)
        sys.exit(1)

    from rowsync.bot.poller import BotPoller
    from rowsync.orchestrator.factory import make_runner

    object_store, gateway = build_clients(config)
    poller = BotPoller(
        gateway=gateway,
        settings=config.bot,
        run_sync=make_runner(config, object_store, gateway, clean=not no_clean)
    )

    try:
        poller.run()
    except KeyboardInterrupt:
        click.echo("\nStopped")
    except Exception as e:
        logger.critical(f"Bot stopped: {e}")
        click.echo(f"\n✗ Bot stopped: {e}", err=True)
        sys.exit(1)
