"""
Run Command - One-shot sync of every configured item
"""

import sys
import traceback
from pathlib import Path

import click

from .common import build_clients, prepare


@click.command('run')
@click.argument(
    'config_file',
    type=click.Path(exists=True, path_type=Path),
    required=False
)
@click.option('--no-clean', is_flag=True, help='Keep fetched and modified files after the run')
def run_command(config_file, no_clean):
    """
    Sync all items once.

    CONFIG_FILE: Path to YAML config (optional, default: $ROWSYNC_CONFIG_FILE
    or rowsync.yaml)

    \b
    Examples:
      rowsync run
      rowsync run config/podcasts.yaml --no-clean
    """
    config = prepare(config_file, component='rowsync-run')

    from rowsync.orchestrator.factory import create_orchestrator

    try:
        object_store, gateway = build_clients(config)
        orchestrator = create_orchestrator(config, object_store, gateway)
        results = orchestrator.run(clean=not no_clean)
    except Exception as e:
        click.echo(f"\n✗ Sync failed: {e}", err=True)
        traceback.print_exc()
        sys.exit(1)

    click.echo(f"\n{'='*60}")
    click.echo("✓ Sync complete!")
    click.echo(f"{'='*60}")
    for result in results:
        click.echo(f"  {result.name}: total {result.total}, done {result.done}, "
                   f"failed {result.failed}, deferred {result.deferred}")
        if result.error:
            click.echo(f"    error: {result.error}")

    sys.exit(0 if all(r.success for r in results) else 1)
