"""
Item - One spreadsheet bound to its targets

An item owns a working directory inside the run directory:

    <run dir>/<item name>/<file>.xlsx          exported source
    <run dir>/<item name>/<file>_result.xlsx   source with status written back
    <run dir>/<item name>/audio/               asset cache
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from rowsync.components.cache.asset_cache import AssetCache, create_exclusive
from rowsync.components.common.drive_client import SPREADSHEET_MIME, XLSX_FORMAT, XLSX_MIME
from rowsync.engine.sheet import SheetTable
from rowsync.engine.synchronizer import RowSynchronizer
from rowsync.interfaces import (
    ConfigurationError,
    FilePolicy,
    MessagingGatewayInterface,
    ObjectStoreInterface,
    SyncStats,
    TargetInterface,
)
from rowsync.registry import TargetContext, registry
from rowsync.workflows.schema import ItemSpec

logger = logging.getLogger(__name__)


class Item:
    """A configured sync job for one run."""

    def __init__(
        self,
        spec: ItemSpec,
        run_dir: Path,
        policy: FilePolicy,
        gateway: Optional[MessagingGatewayInterface] = None
    ):
        """
        Initialize Item and build its targets.

        Args:
            spec: Item configuration
            run_dir: Run working directory (shared by all items)
            policy: File and directory permissions
            gateway: Messaging gateway for telegram targets

        Raises:
            ConfigurationError: Bad target config or duplicated target id
        """
        self.name = spec.name
        self.origin = spec.file
        self.workdir = Path(run_dir) / spec.name
        self.source = self.workdir / f"{spec.file}.{XLSX_FORMAT}"
        self.result = self.workdir / f"{spec.file}_result.{XLSX_FORMAT}"
        self.file_id: Optional[str] = None
        self.updated = False
        self.policy = policy

        try:
            self.workdir.mkdir(mode=policy.dir_mode, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"failed to create item {spec.name} export dir: {e}") from e

        self.asset_cache = AssetCache(self.workdir / 'audio', policy)
        context = TargetContext(
            workdir=self.workdir,
            asset_cache=self.asset_cache,
            policy=policy,
            gateway=gateway
        )

        self.targets: Dict[str, TargetInterface] = {}
        for i, target_spec in enumerate(spec.targets):
            if target_spec.target_id in self.targets:
                raise ConfigurationError(f"duplicated target id: {target_spec.target_id}")
            try:
                target = registry.create_target(target_spec, context)
            except ConfigurationError as e:
                raise ConfigurationError(f"failed to init target {i}: {e}") from e
            self.targets[target.target_id()] = target

    def fetch(self, object_store: ObjectStoreInterface) -> None:
        """Export the Drive spreadsheet to the local source path."""
        file_id = object_store.find(self.origin, SPREADSHEET_MIME)
        with create_exclusive(self.source, self.policy) as f:
            object_store.download(file_id, f, export_mime=XLSX_MIME)
        self.file_id = file_id

    def process(self, object_store: ObjectStoreInterface) -> SyncStats:
        """Run the row synchronizer over the fetched source."""
        table = SheetTable.open(self.source, self.policy)
        try:
            stats = RowSynchronizer(self.targets, object_store).sync(table, self.result)
        finally:
            table.close()
        self.updated = stats.mutated
        for target in self.targets.values():
            target.finish()
        return stats

    def upload(self, object_store: ObjectStoreInterface) -> bool:
        """Replace the Drive spreadsheet with the result, if anything changed."""
        if not self.updated:
            return False
        object_store.replace(self.file_id, self.origin, SPREADSHEET_MIME, self.result)
        return True
