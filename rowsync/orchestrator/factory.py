"""
Orchestrator Factory - Centralized orchestrator creation

Provides a single place to build a run from a loaded config.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from rowsync.interfaces import (
    ConfigurationError,
    ItemResult,
    MessagingGatewayInterface,
    ObjectStoreInterface,
)
from rowsync.workflows.schema import SyncConfig
from .item import Item
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def create_orchestrator(
    config: SyncConfig,
    object_store: ObjectStoreInterface,
    gateway: Optional[MessagingGatewayInterface] = None
) -> Orchestrator:
    """
    Create an orchestrator for one run.

    This handles:
    1. Creating a fresh timestamped run directory under data_dir
    2. Building every item with its targets (catalog ids are recovered here)
    3. Returning the orchestrator

    Args:
        config: Loaded sync config
        object_store: Drive client (or any object store)
        gateway: Messaging gateway for telegram targets

    Returns:
        Orchestrator ready to run

    Raises:
        ConfigurationError: Run directory, item or target cannot be set up
    """
    run_dir = Path(config.data_dir) / datetime.now().strftime('%Y%m%d_%H%M%S_%f')
    try:
        run_dir.mkdir(mode=config.policy.dir_mode, parents=True)
    except OSError as e:
        raise ConfigurationError(f"failed to create export dir: {e}") from e

    items = {}
    try:
        for item_spec in config.items:
            if item_spec.name in items:
                raise ConfigurationError(f"duplicated item name: {item_spec.name}")
            try:
                items[item_spec.name] = Item(item_spec, run_dir, config.policy, gateway)
            except ConfigurationError as e:
                raise ConfigurationError(f"failed to init item {item_spec.name}: {e}") from e
    except Exception:
        logger.info(f"Removing run directory after failed setup: {run_dir}")
        shutil.rmtree(run_dir, ignore_errors=True)
        raise

    logger.info(f"Run directory: {run_dir} ({len(items)} item(s))")
    return Orchestrator(run_dir, items, object_store)


def make_runner(
    config: SyncConfig,
    object_store: ObjectStoreInterface,
    gateway: Optional[MessagingGatewayInterface] = None,
    clean: bool = True
) -> Callable[[], List[ItemResult]]:
    """Callable that builds and runs a fresh orchestrator on every call."""
    def run() -> List[ItemResult]:
        orchestrator = create_orchestrator(config, object_store, gateway)
        return orchestrator.run(clean=clean)
    return run
