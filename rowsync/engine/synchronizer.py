"""
Row Synchronizer - Push pending rows to targets and record the outcome

For each data row and each target, the two reserved columns decide what
happens:

    <target_id>_status   <target_id>_record_id   action
    ------------------   ---------------------   -----------------------------
    empty                empty                   insert
    empty                set                     update (not supported yet)
    set                  any                     settled, never touched again

A successful insert writes "ok" and the record id; a failed insert writes the
error text as status, which settles the pair for every later run. Rows with
nothing pending are not counted.
"""

import logging
from pathlib import Path
from typing import Dict, List, Tuple

from rowsync.engine.sheet import SheetTable
from rowsync.interfaces import (
    STATUS_OK,
    ObjectStoreInterface,
    RowReadError,
    SyncAction,
    SyncStats,
    TargetInterface,
    UpdateNotSupportedError,
    classify,
)

logger = logging.getLogger(__name__)


def error_text(error: Exception) -> str:
    """Status text recorded for a failed insert (never empty)."""
    return str(error) or type(error).__name__


class RowSynchronizer:
    """Synchronizes one sheet against an ordered set of targets."""

    def __init__(self, targets: Dict[str, TargetInterface], object_store: ObjectStoreInterface):
        self.targets = targets
        self.object_store = object_store

    def _resolve_columns(self, table: SheetTable) -> Dict[str, Tuple[int, int]]:
        """Reserved (status, record id) column indexes per target id."""
        columns = {}
        for target_id, target in self.targets.items():
            columns[target_id] = (
                table.column_index(target.status_column),
                table.column_index(target.record_id_column),
            )
        return columns

    def sync(self, table: SheetTable, result_path: Path) -> SyncStats:
        """
        Process every row of the table.

        Args:
            table: Opened source sheet
            result_path: Where the mutated workbook is saved (never the source)

        Returns:
            SyncStats with row counters and the mutated flag

        Raises:
            InvalidSourceError: Reserved columns missing or duplicated
        """
        columns = self._resolve_columns(table)
        stats = SyncStats()

        for row_number, values in table.rows():
            inserts: List[TargetInterface] = []
            updates: List[TargetInterface] = []
            for target_id, target in self.targets.items():
                status_idx, record_idx = columns[target_id]
                action = classify(values[status_idx], values[record_idx])
                if action is SyncAction.PENDING_INSERT:
                    inserts.append(target)
                elif action is SyncAction.PENDING_UPDATE:
                    updates.append(target)

            if not inserts and not updates:
                continue

            try:
                record = table.record(row_number, values)
            except RowReadError as e:
                logger.error(f"Failed to read row {row_number}: {e.reason}")
                continue

            stats.total += 1
            success = True

            for target in inserts:
                status_idx, record_idx = columns[target.target_id()]
                try:
                    record_id = target.insert(dict(record), self.object_store)
                    status = STATUS_OK
                except Exception as e:
                    success = False
                    status = error_text(e)
                    record_id = None
                    logger.error(f"Failed to process target {target.target_id()} for row {row_number}: {status}")

                table.set_cell(table.column_letter(status_idx), row_number, status)
                if record_id is not None:
                    table.set_cell(table.column_letter(record_idx), row_number, record_id)
                stats.mutated = True

            for target in updates:
                _, record_idx = columns[target.target_id()]
                try:
                    target.update(dict(record), values[record_idx], self.object_store)
                except UpdateNotSupportedError as e:
                    logger.warning(f"Row {row_number}: {e}")

            if not inserts:
                stats.deferred += 1
            elif success:
                stats.done += 1
            else:
                stats.failed += 1

        logger.info(
            f"total: {stats.total}; processed: {stats.done}; "
            f"failed: {stats.failed}; deferred: {stats.deferred}"
        )

        if stats.mutated:
            table.save_as(result_path)
            logger.info(f"Saved result: {result_path}")

        return stats
