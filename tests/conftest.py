"""
Shared pytest fixtures for rowsync tests.

This module provides:
- An openpyxl workbook factory
- FakeObjectStore: in-memory Drive stand-in keyed by file name
- FakeGateway: records every message and serves scripted bot updates
- Template files for both target types

No test touches the network.
"""

import logging
import zipfile
from pathlib import Path
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

import pytest
from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from rowsync.components.cache.asset_cache import AssetCache
from rowsync.components.common.drive_client import DriveAmbiguousError, DriveNotFoundError
from rowsync.interfaces import (
    DriveFile,
    FilePolicy,
    MessagingGatewayInterface,
    ObjectStoreInterface,
    Update,
)


# =============================================================================
# Fakes
# =============================================================================


class FakeObjectStore(ObjectStoreInterface):
    """Object store backed by a dict of name -> bytes."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None, ambiguous=()):
        self.files = dict(files or {})
        self.ambiguous = set(ambiguous)
        self.finds: List[str] = []
        self.downloads: List[str] = []
        self.replaced: List[tuple] = []

    def find(self, name, mime_type=None):
        self.finds.append(name)
        if name in self.ambiguous:
            raise DriveAmbiguousError(name, [DriveFile(id='a', name=name), DriveFile(id='b', name=name)])
        if name not in self.files:
            raise DriveNotFoundError(name)
        return f"id-{name}"

    def download(self, file_id, sink, export_mime=None):
        name = file_id[len('id-'):]
        self.downloads.append(name)
        data = self.files[name]
        sink.write(data)
        return len(data)

    def replace(self, file_id, name, mime_type, path):
        self.replaced.append((file_id, name, mime_type, Path(path)))


class FakeGateway(MessagingGatewayInterface):
    """
    Messaging gateway that records sends.

    `batches` is consumed one entry per get_updates call; an entry is a list
    of updates or an exception to raise.
    """

    def __init__(self, batches=None):
        self.messages: List[tuple] = []
        self.audio: List[tuple] = []
        self.batches = list(batches or [])
        self.offsets: List[int] = []
        self._next_id = 100
        self.send_error: Optional[Exception] = None

    def _message_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def send_message(self, chat, text):
        if self.send_error:
            raise self.send_error
        self.messages.append((chat, text))
        return self._message_id()

    def send_audio(self, chat, filename, stream, caption):
        if self.send_error:
            raise self.send_error
        self.audio.append((chat, filename, stream.read(), caption))
        return self._message_id()

    def get_updates(self, offset, timeout=0):
        self.offsets.append(offset)
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return [u for u in batch if u.update_id > offset]


def message(update_id, sender_id=1, chat_id=10, text='sync', date=2000) -> Update:
    return Update(update_id=update_id, sender_id=sender_id, chat_id=chat_id, text=text, date=date)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_workbook(tmp_path):
    """Factory: write rows (first row is the header) to an xlsx file."""
    def _make(rows, name='source.xlsx'):
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(list(row))
        path = tmp_path / name
        wb.save(path)
        return path
    return _make


_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/xl/workbook.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>'
    '<Override PartName="/xl/worksheets/sheet1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>'
    '</Types>'
)
_ROOT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="xl/workbook.xml"/>'
    '</Relationships>'
)
_WORKBOOK = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">'
    '<sheets><sheet name="Sheet1" sheetId="1" r:id="rId1"/></sheets>'
    '</workbook>'
)
_WORKBOOK_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" '
    'Target="worksheets/sheet1.xml"/>'
    '</Relationships>'
)


def _sheet_xml(rows) -> str:
    out = []
    for r, row in enumerate(rows, start=1):
        cells = []
        for c, value in enumerate(row, start=1):
            ref = f"{get_column_letter(c)}{r}"
            if value is None:
                continue
            if isinstance(value, tuple):
                formula, cached = value
                cells.append(f'<c r="{ref}" t="str"><f>{escape(formula)}</f><v>{escape(cached)}</v></c>')
            else:
                cells.append(f'<c r="{ref}" t="inlineStr"><is><t>{escape(value)}</t></is></c>')
        out.append(f'<row r="{r}">{"".join(cells)}</row>')
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<worksheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">'
        f'<sheetData>{"".join(out)}</sheetData>'
        '</worksheet>'
    )


@pytest.fixture
def make_export(tmp_path):
    """
    Factory: write an xlsx the way Google Sheets exports it.

    openpyxl cannot store cached formula results, so the package is built
    by hand. A cell is a string, None, or a (formula, cached value) tuple,
    e.g. ('B2&" (ep)"', 'Hello (ep)').
    """
    def _make(rows, name='export.xlsx'):
        path = tmp_path / name
        with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as archive:
            archive.writestr('[Content_Types].xml', _CONTENT_TYPES)
            archive.writestr('_rels/.rels', _ROOT_RELS)
            archive.writestr('xl/workbook.xml', _WORKBOOK)
            archive.writestr('xl/_rels/workbook.xml.rels', _WORKBOOK_RELS)
            archive.writestr('xl/worksheets/sheet1.xml', _sheet_xml(rows))
        return path
    return _make


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def policy():
    return FilePolicy()


@pytest.fixture
def asset_cache(tmp_path, policy):
    return AssetCache(tmp_path / 'work' / 'audio', policy)


@pytest.fixture
def templates(tmp_path):
    """Message and item page templates."""
    tpl_dir = tmp_path / 'templates'
    tpl_dir.mkdir()
    post = tpl_dir / 'post.html'
    post.write_text("<b>{{ title }}</b>\n{{ text }}", encoding='utf-8')
    page = tpl_dir / 'page.html'
    page.write_text(
        "<h1>{{ title }}</h1>{{ text }}"
        "{% if audio is defined and audio %}<audio src=\"{{ audio }}\"></audio>{% endif %}",
        encoding='utf-8'
    )
    broken = tpl_dir / 'broken.html'
    broken.write_text("<h1>{{ title }}</h1>{{ missing_field }}", encoding='utf-8')
    return {'post': str(post), 'page': str(page), 'broken': str(broken)}


@pytest.fixture
def restore_logging():
    """Put back root logger handlers replaced by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
