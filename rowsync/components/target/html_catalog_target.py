"""
HTMLCatalogTarget - Publish rows into a static HTML catalog

Catalog layout on disk:

    <dir>/<catalog>/index.html        list of published items
    <dir>/<catalog>/<id>/index.html   rendered item page
    <dir>/<catalog>/<id>/<audio>      item-local copy of the attachment

Item ids are sequential. The last assigned id is recovered from the numeric
directory names on startup, so no counter is persisted.

Publication order for one row:
    1. create <id>/ (never reused)
    2. copy attachment, render <id>/index.html
    3. write the new index to a temp file, rename it over index.html
    4. advance last id

The index is replaced only after the item is fully written, so it never
links to a partial item. Any failure after step 1 removes <id>/ again; a crash
leaves at worst an unreferenced directory.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Optional

from jinja2 import TemplateError
from markupsafe import Markup

from rowsync.components.cache.asset_cache import AssetCache, create_exclusive
from rowsync.components.target.templates import load_template
from rowsync.interfaces import (
    ConfigurationError,
    FilePolicy,
    ObjectStoreInterface,
    TargetError,
    TargetInterface,
)

logger = logging.getLogger(__name__)

INDEX_FILE = 'index.html'


def paragraphs(text: str) -> Markup:
    """Wrap every non-empty line in <p>, escaping the line content."""
    lines = (line.strip('\r') for line in text.split('\n'))
    return Markup('').join(Markup('<p>{}</p>').format(line) for line in lines if line.strip())


def recover_last_id(catalog_dir: Path) -> int:
    """Largest numeric item directory name, 0 for an empty catalog."""
    last_id = 0
    for entry in catalog_dir.iterdir():
        if entry.is_dir() and entry.name.isascii() and entry.name.isdecimal():
            last_id = max(last_id, int(entry.name))
    return last_id


class HTMLCatalogTarget(TargetInterface):
    """
    Static HTML catalog target.

    Owns the in-memory index buffer and the temp index path exclusively;
    concurrent writers to the same catalog directory are not supported.
    """

    TYPE = 'html_catalog'

    def __init__(
        self,
        name: str,
        directory: str,
        catalog: str,
        template_path: str,
        index_placeholder: str,
        workdir: Path,
        asset_cache: AssetCache,
        policy: Optional[FilePolicy] = None
    ):
        """
        Initialize HTMLCatalogTarget.

        Args:
            name: Target name, unique per type within an item
            directory: Root directory holding catalogs
            catalog: Catalog name (sub-directory and public path prefix)
            template_path: Path to the item page template
            index_placeholder: Marker in index.html where new entries go
            workdir: Item working directory (holds the temp index)
            asset_cache: Item asset cache
            policy: File and directory permissions
        """
        super().__init__(name)
        if not index_placeholder:
            raise ConfigurationError("invalid config: index placeholder not set")
        if not catalog or not directory:
            raise ConfigurationError(f"target {self.target_id()}: dir and catalog must be set")

        self.policy = policy or FilePolicy()
        self.catalog = catalog
        self.placeholder = index_placeholder
        self.asset_cache = asset_cache
        self.catalog_dir = Path(directory) / catalog
        self.index_file = self.catalog_dir / INDEX_FILE
        self.tmp_index = Path(workdir) / f"{self.target_id()}_index.html"

        try:
            self.catalog_dir.mkdir(mode=self.policy.dir_mode, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"failed to create catalog directory: {e}") from e

        self.index_buf = self._load_index()
        self.template = load_template(template_path)
        self.last_id = recover_last_id(self.catalog_dir)

        logger.info(
            f"Catalog {self.catalog_dir} ready (last id: {self.last_id})"
        )

    def _load_index(self) -> str:
        if not self.index_file.exists():
            buf = f"<ul>{self.placeholder}</ul>"
            try:
                with create_exclusive(self.index_file, self.policy) as f:
                    f.write(buf.encode('utf-8'))
            except OSError as e:
                raise ConfigurationError(f"failed to create catalog index: {e}") from e
            return buf

        try:
            buf = self.index_file.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(f"failed to read catalog index: {e}") from e
        count = buf.count(self.placeholder)
        if count != 1:
            raise ConfigurationError(
                f"catalog index {self.index_file} must contain the placeholder once, found {count}"
            )
        return buf

    def item_url(self, item_id: str) -> str:
        return f"//{self.catalog}/{item_id}?item={item_id}"

    def asset_url(self, item_id: str, filename: str) -> str:
        return f"//{self.catalog}/{item_id}/{filename}"

    def insert(self, row: Dict[str, str], object_store: ObjectStoreInterface) -> str:
        title = row.get('title', '')
        if not title:
            raise TargetError("invalid row: no title")
        text = row.get('text', '')
        if not text:
            raise TargetError("invalid row: no text")

        context = dict(row)
        context['text'] = paragraphs(text)

        item_id = str(self.last_id + 1)
        item_dir = self.catalog_dir / item_id
        # No exist_ok: an existing directory means the id is taken and it must
        # not be removed by the cleanup below.
        item_dir.mkdir(mode=self.policy.dir_mode)

        try:
            audio = row.get('audio', '')
            if audio:
                with create_exclusive(item_dir / self.asset_cache.path(audio).name, self.policy) as f:
                    self.asset_cache.stream(audio, object_store, f)
                    f.flush()
                    os.fsync(f.fileno())
                context['audio'] = self.asset_url(item_id, audio)

            try:
                page = self.template.render(context)
            except TemplateError as e:
                raise TargetError(f"failed to render template: {e}") from e
            with create_exclusive(item_dir / INDEX_FILE, self.policy) as f:
                f.write(page.encode('utf-8'))
                f.flush()
                os.fsync(f.fileno())

            entry = str(Markup("<li><a href='{}'>{}</a></li>").format(self.item_url(item_id), title))
            index_buf = self.index_buf.replace(self.placeholder, entry + self.placeholder, 1)
            self._publish_index(index_buf)
        except Exception:
            shutil.rmtree(item_dir, ignore_errors=True)
            raise

        self.index_buf = index_buf
        self.last_id += 1
        logger.debug(f"Published catalog item {item_id}: {title}")
        return item_id

    def _publish_index(self, index_buf: str) -> None:
        """Write the index to the temp path and rename it over the live index."""
        fd = os.open(self.tmp_index, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.policy.file_mode)
        with os.fdopen(fd, 'wb') as f:
            f.write(index_buf.encode('utf-8'))
            f.flush()
            os.fsync(f.fileno())
        os.replace(self.tmp_index, self.index_file)
