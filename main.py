#!/usr/bin/env python3
"""
RowSync - Main Entry Point

Publish spreadsheet rows to Telegram channels and static HTML catalogs.

Commands:
  run - Sync every configured item once
  bot - Run syncs when an allowed Telegram user asks for one

Usage:
  python main.py run [config.yaml] [--no-clean]
  python main.py bot [config.yaml]
"""

import click

from rowsync.cli.run_command import run_command
from rowsync.cli.bot_command import bot_command


@click.group()
@click.version_option(version='1.0.0', prog_name='RowSync')
def cli():
    """
    RowSync - Publish spreadsheet rows to Telegram and HTML catalogs

    Each row is sent to every configured target once. Per-target status
    and record id columns in the sheet record what has been published.

    \b
    Two main commands:
      run - Sync all items once
      bot - Listen for trigger messages and sync on demand

    \b
    Quick Start:
      1. Copy config/rowsync.example.yaml to rowsync.yaml
      2. Put the Google OAuth client secrets next to it
      3. Run: python main.py run

    \b
    Examples:
      # Sync with the default config
      python main.py run

      # Keep downloaded and modified files for inspection
      python main.py run my-config.yaml --no-clean

      # Run the Telegram bot
      python main.py bot
    """
    pass


# Add commands
cli.add_command(run_command)
cli.add_command(bot_command)


if __name__ == '__main__':
    cli()
