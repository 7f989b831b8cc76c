"""
rowsync - Component Interfaces

WHAT THIS FILE DOES:
    Defines the abstract interfaces (contracts) the sync engine consumes and
    implements, the data classes that flow between them, and the exception
    family used across the engine.

RELATIONSHIP TO OTHER FILES:
    - registry.py maps target type names onto TargetInterface implementations
    - components/target/* implement TargetInterface
    - components/common/drive_client.py implements ObjectStoreInterface
    - components/common/telegram_client.py implements MessagingGatewayInterface
    - engine/synchronizer.py drives targets row by row
    - orchestrator/orchestrator.py collects ItemResult objects

THE CORE INTERFACES:
    1. TargetInterface - A sink that accepts one row as one published unit
    2. ObjectStoreInterface - Find / download / replace remote files
    3. MessagingGatewayInterface - Send text, send audio, receive updates

TARGET IDS AND RESERVED COLUMNS:
    Every target is identified by "<type>_<name>" (e.g. "telegram_main").
    The source sheet carries two reserved columns per target:
        <target_id>_status       "ok" or the error text of the last attempt
        <target_id>_record_id    id returned by the target on success

EXAMPLE USAGE:
    from rowsync.interfaces import TargetInterface

    class MyTarget(TargetInterface):
        TYPE = 'my_sink'

        def insert(self, row, object_store):
            return publish(row)          # returns the record id

    # Targets form a closed set: add the class to registry.TARGET_TYPES.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Dict, List, Optional


STATUS_OK = 'ok'
STATUS_SUFFIX = '_status'
RECORD_ID_SUFFIX = '_record_id'


# ============================================================================
# Exceptions
# ============================================================================

class RowSyncError(Exception):
    """Base exception for sync engine errors."""
    pass


class ConfigurationError(RowSyncError):
    """Raised when configuration is invalid. Fatal before any row is processed."""
    pass


class InvalidSourceError(RowSyncError):
    """Raised when the source sheet header does not match the configured targets."""
    pass


class RowReadError(RowSyncError):
    """Raised when a single row cannot be mapped to fields."""

    def __init__(self, row_number: int, reason: str):
        super().__init__(f"row {row_number}: {reason}")
        self.row_number = row_number
        self.reason = reason


class TargetError(RowSyncError):
    """Raised by a target when a row cannot be published."""
    pass


class UpdateNotSupportedError(RowSyncError):
    """Raised for rows classified as pending-update."""

    def __init__(self, target_id: str):
        super().__init__(f"target {target_id}: update not yet supported")
        self.target_id = target_id


# ============================================================================
# Data Classes
# ============================================================================

class SyncAction(Enum):
    """Classification of one (row, target) pair"""
    PENDING_INSERT = 'pending_insert'
    PENDING_UPDATE = 'pending_update'
    SETTLED = 'settled'


def classify(status: str, record_id: str) -> SyncAction:
    """Classify a (row, target) pair from its two reserved cells."""
    if status:
        return SyncAction.SETTLED
    if record_id:
        return SyncAction.PENDING_UPDATE
    return SyncAction.PENDING_INSERT


@dataclass
class FilePolicy:
    """Permission bits for every file and directory the engine creates"""
    file_mode: int = 0o600
    dir_mode: int = 0o700


@dataclass
class SyncStats:
    """Counters produced by one synchronizer pass"""
    total: int = 0
    done: int = 0
    failed: int = 0
    deferred: int = 0  # rows whose only pending work was an update
    mutated: bool = False


@dataclass
class ItemResult:
    """Result of one item within a run"""
    name: str
    total: int = 0
    done: int = 0
    failed: int = 0
    deferred: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.failed == 0


@dataclass
class Update:
    """A single incoming bot update"""
    update_id: int
    sender_id: Optional[int] = None
    chat_id: Optional[int] = None
    text: str = ''
    date: int = 0
    has_message: bool = True


@dataclass
class DriveFile:
    """Drive file candidate returned by a lookup"""
    id: str
    name: str
    mime_type: Optional[str] = None


# ============================================================================
# Collaborator Interfaces
# ============================================================================

class ObjectStoreInterface(ABC):
    """Interface for the remote object store"""

    @abstractmethod
    def find(self, name: str, mime_type: Optional[str] = None) -> str:
        """
        Find exactly one file by name.

        Raises:
            DriveNotFoundError: No file matches
            DriveAmbiguousError: More than one file matches
        """
        pass

    @abstractmethod
    def download(self, file_id: str, sink: BinaryIO, export_mime: Optional[str] = None) -> int:
        """Stream file content into sink, returns bytes written"""
        pass

    @abstractmethod
    def replace(self, file_id: str, name: str, mime_type: str, path) -> None:
        """Replace the content of an existing file"""
        pass


class MessagingGatewayInterface(ABC):
    """Interface for outbound messages and inbound bot updates"""

    @abstractmethod
    def send_message(self, chat: str, text: str) -> str:
        """Send HTML text, returns message id"""
        pass

    @abstractmethod
    def send_audio(self, chat: str, filename: str, stream: BinaryIO, caption: str) -> str:
        """Send an audio file with HTML caption, returns message id"""
        pass

    @abstractmethod
    def get_updates(self, offset: int, timeout: int = 0) -> List[Update]:
        """Long-poll updates with id strictly greater than offset"""
        pass


# ============================================================================
# Target Interface
# ============================================================================

class TargetInterface(ABC):
    """Interface for downstream sinks"""

    TYPE: str = ''

    def __init__(self, name: str):
        self.name = name

    def target_id(self) -> str:
        """Unique id within an item: <type>_<name>"""
        return f"{self.TYPE}_{self.name}"

    @property
    def status_column(self) -> str:
        return self.target_id() + STATUS_SUFFIX

    @property
    def record_id_column(self) -> str:
        return self.target_id() + RECORD_ID_SUFFIX

    @abstractmethod
    def insert(self, row: Dict[str, str], object_store: ObjectStoreInterface) -> str:
        """
        Publish one row.

        Args:
            row: Field name to text value (a private copy, safe to mutate)
            object_store: Store used to resolve attachments

        Returns:
            Record id of the published unit
        """
        pass

    def update(self, row: Dict[str, str], record_id: str, object_store: ObjectStoreInterface) -> str:
        """Re-publish an already inserted row. No target supports this yet."""
        raise UpdateNotSupportedError(self.target_id())

    def finish(self) -> None:
        """End-of-run hook"""
        pass
