"""
Asset Cache - Write-once local staging of attachments

Each item owns one cache under <item workdir>/audio. An asset is downloaded
from the object store at most once per run; every later request for the same
name (from any target of the item) is served from the cached file.

Files are created with exclusive-create semantics, so two writers can never
race on the same name. A download that fails half-way removes its partial
file so only complete assets are ever reused.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

from rowsync.interfaces import FilePolicy, ObjectStoreInterface

logger = logging.getLogger(__name__)


def create_exclusive(path: Path, policy: FilePolicy) -> BinaryIO:
    """Open a new file for binary writing, failing if it already exists."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, policy.file_mode)
    return os.fdopen(fd, 'wb')


class TeeWriter:
    """Fan a single stream out to several writable sinks."""

    def __init__(self, *sinks: BinaryIO):
        self.sinks = sinks

    def write(self, data: bytes) -> int:
        for sink in self.sinks:
            sink.write(data)
        return len(data)


class AssetCache:
    """Write-once asset store keyed by file name."""

    def __init__(self, root: Path, policy: FilePolicy):
        self.root = Path(root)
        self.policy = policy

    def path(self, name: str) -> Path:
        if not name or Path(name).name != name or name in ('.', '..'):
            raise ValueError(f"invalid asset name: {name!r}")
        return self.root / name

    def __contains__(self, name: str) -> bool:
        return self.path(name).is_file()

    def open(self, name: str) -> BinaryIO:
        """Open a cached asset for reading."""
        return open(self.path(name), 'rb')

    def stream(self, name: str, object_store: ObjectStoreInterface, sink: BinaryIO) -> None:
        """
        Write the asset bytes into sink.

        Served from the cache when present. Otherwise the asset is located by
        name, downloaded once, and the single stream is written to both the
        new cache file and sink.
        """
        cached = self.path(name)
        if cached.is_file():
            logger.debug(f"Asset cache hit: {name}")
            with open(cached, 'rb') as f:
                shutil.copyfileobj(f, sink)
            return

        file_id = object_store.find(name)
        self.root.mkdir(mode=self.policy.dir_mode, parents=True, exist_ok=True)
        logger.info(f"Fetching asset {name} ({file_id})")
        try:
            with create_exclusive(cached, self.policy) as cache_file:
                object_store.download(file_id, TeeWriter(cache_file, sink))
                cache_file.flush()
                os.fsync(cache_file.fileno())
        except FileExistsError:
            # another writer owns this name
            raise
        except Exception:
            cached.unlink(missing_ok=True)
            raise
