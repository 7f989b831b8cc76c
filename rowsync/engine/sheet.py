"""
Sheet table access over openpyxl.

Wraps the first worksheet of a workbook: header, data rows as text, cell
writes by column letter and row number, and save-as.

The file is loaded twice. Header and rows come from the data_only handle
(cached formula results, as exported by Google Sheets); writes go to the
formula-preserving handle, so saved results keep their formulas.
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from openpyxl import load_workbook
from openpyxl.utils import get_column_letter

from rowsync.interfaces import FilePolicy, InvalidSourceError, RowReadError

logger = logging.getLogger(__name__)


def cell_text(value: Any) -> str:
    """Cell value as text ('' for empty cells)."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class SheetTable:
    """First worksheet of an xlsx file."""

    def __init__(self, path: Path, policy: Optional[FilePolicy] = None):
        self.path = Path(path)
        self.policy = policy or FilePolicy()
        self.workbook = load_workbook(self.path)
        self.sheet = self.workbook.worksheets[0]
        self.value_workbook = load_workbook(self.path, data_only=True)
        self.value_sheet = self.value_workbook.worksheets[0]
        self._header = None

    @classmethod
    def open(cls, path: Path, policy: Optional[FilePolicy] = None) -> 'SheetTable':
        return cls(path, policy)

    @property
    def header(self) -> List[str]:
        """Field names from row 1."""
        if self._header is None:
            first = next(self.value_sheet.iter_rows(min_row=1, max_row=1, values_only=True), None)
            if first is None or not any(v is not None and cell_text(v) for v in first):
                raise InvalidSourceError("source file empty")
            header = [cell_text(v).strip() for v in first]
            while header and not header[-1]:
                header.pop()
            self._header = header
        return self._header

    def column_index(self, name: str) -> int:
        """0-based index of the only column with this name."""
        matches = [i for i, field in enumerate(self.header) if field == name]
        if len(matches) != 1:
            raise InvalidSourceError(
                f"invalid source: expected exactly one '{name}' column, found {len(matches)}"
            )
        return matches[0]

    def rows(self) -> Iterator[Tuple[int, List[str]]]:
        """
        Yield (row_number, values) for data rows.

        Values are padded to the header width. Iteration stops at the first
        entirely empty row.
        """
        width = len(self.header)
        for row_number, values in enumerate(self.value_sheet.iter_rows(min_row=2, values_only=True), start=2):
            texts = [cell_text(v) for v in values]
            if not any(texts):
                break
            if len(texts) < width:
                texts.extend([''] * (width - len(texts)))
            yield row_number, texts

    def record(self, row_number: int, values: List[str]) -> Dict[str, str]:
        """
        Map a row onto header fields.

        Raises:
            RowReadError: A value sits under a blank header cell
        """
        header = self.header
        for i, value in enumerate(values):
            if value and (i >= len(header) or not header[i]):
                raise RowReadError(row_number, f"value in unnamed column {get_column_letter(i + 1)}")
        return {field: values[i] for i, field in enumerate(header) if field}

    def set_cell(self, column: str, row_number: int, value: str) -> None:
        """Write a value by column letter and row number (e.g. 'C', 5)."""
        self.sheet[f"{column}{row_number}"] = value

    @staticmethod
    def column_letter(index: int) -> str:
        """Column letter for a 0-based column index."""
        return get_column_letter(index + 1)

    def save_as(self, path: Path) -> None:
        """Save the formula-preserving workbook with the policy's file mode."""
        fd = os.open(Path(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.policy.file_mode)
        with os.fdopen(fd, 'wb') as f:
            self.workbook.save(f)

    def close(self) -> None:
        self.workbook.close()
        self.value_workbook.close()
