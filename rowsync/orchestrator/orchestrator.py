"""
Orchestrator - Coordinates one sync run

Runs every configured item through the same phases:
1. Fetch   - Export each spreadsheet from Drive into the run directory
2. Process - Push pending rows to targets, write status back
3. Upload  - Replace the Drive spreadsheet for items that changed
4. Clean   - Optionally remove the run directory

Items are independent: an item that fails to fetch is dropped from the
batch, and a processing or upload failure is logged for that item only.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List

from rowsync.interfaces import ItemResult, ObjectStoreInterface
from rowsync.orchestrator.item import Item

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Sync run orchestrator.

    Owns the run directory and the items built for it.
    """

    def __init__(self, run_dir: Path, items: Dict[str, Item], object_store: ObjectStoreInterface):
        """
        Initialize orchestrator.

        Args:
            run_dir: Working directory of this run
            items: Items by name, in run order
            object_store: Store used for fetch, assets and upload
        """
        self.run_dir = Path(run_dir)
        self.items = items
        self.object_store = object_store
        self.fetch_failures: List[ItemResult] = []

    def fetch(self) -> None:
        """Fetch every item; drop the ones that fail."""
        for name, item in list(self.items.items()):
            logger.info(f"Fetching item: {name}")
            try:
                item.fetch(self.object_store)
            except Exception as e:
                logger.error(f"Fetch failed for {name}: {e}")
                self.fetch_failures.append(ItemResult(name=name, error=f"fetch failed: {e}"))
                del self.items[name]
            else:
                logger.info(f"Fetched: {item.origin} -> {item.source}")

    def process(self) -> List[ItemResult]:
        """Process every fetched item and collect per-item results."""
        results = []
        for name, item in self.items.items():
            logger.info(f"Processing item: {name}")
            try:
                stats = item.process(self.object_store)
            except Exception as e:
                logger.error(f"Processing failed for {name}: {e}", exc_info=True)
                results.append(ItemResult(name=name, error=str(e) or type(e).__name__))
                continue
            results.append(ItemResult(
                name=name,
                total=stats.total,
                done=stats.done,
                failed=stats.failed,
                deferred=stats.deferred
            ))
        return results

    def upload(self) -> None:
        """Upload results of mutated items."""
        for name, item in self.items.items():
            if not item.updated:
                logger.debug(f"Nothing to upload for {name}")
                continue
            logger.info(f"Updating item: {name}")
            try:
                item.upload(self.object_store)
            except Exception as e:
                logger.error(f"Upload failed for {name}: {e}")

    def clean(self) -> None:
        """Remove the run directory."""
        logger.info(f"Removing run directory: {self.run_dir}")
        shutil.rmtree(self.run_dir, ignore_errors=True)

    def run(self, clean: bool = True) -> List[ItemResult]:
        """
        Run all phases.

        Args:
            clean: Remove the run directory afterwards

        Returns:
            Results of processed items followed by items dropped at fetch
        """
        self.fetch()
        results = self.process()
        self.upload()
        if clean:
            self.clean()
        return results + self.fetch_failures
