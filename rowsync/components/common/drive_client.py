"""Google Drive v3 client used as the object store of the sync engine."""

import logging
from pathlib import Path
from typing import Any, BinaryIO, List, Optional

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from rowsync.interfaces import DriveFile, ObjectStoreInterface


logger = logging.getLogger(__name__)

SPREADSHEET_MIME = 'application/vnd.google-apps.spreadsheet'
XLSX_MIME = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
XLSX_FORMAT = 'xlsx'


class DriveError(Exception):
    """Base exception for Drive errors."""
    pass


class DriveNotFoundError(DriveError):
    """Raised when no file matches a lookup."""

    def __init__(self, name: str):
        super().__init__(f"file not found: {name}")
        self.name = name


class DriveAmbiguousError(DriveError):
    """Raised when more than one file matches a lookup."""

    def __init__(self, name: str, candidates: List[DriveFile]):
        super().__init__(f"file name is ambiguous: {name} ({len(candidates)} candidates)")
        self.name = name
        self.candidates = candidates


def _quote(value: str) -> str:
    """Quote a literal for a Drive query string."""
    return "'" + value.replace('\\', '\\\\').replace("'", "\\'") + "'"


class DriveClient(ObjectStoreInterface):
    """
    Thin wrapper over a googleapiclient Drive v3 service.

    Example usage:
        service = get_drive_service(credentials_file, token_file)
        client = DriveClient(service)

        file_id = client.find('Podcasts', SPREADSHEET_MIME)
        with open('podcasts.xlsx', 'wb') as f:
            client.download(file_id, f, export_mime=XLSX_MIME)

        client.replace(file_id, 'Podcasts', SPREADSHEET_MIME, 'podcasts_result.xlsx')
    """

    def __init__(self, service: Any, chunk_size: int = 1024 * 1024):
        """
        Initialize Drive client.

        Args:
            service: Drive v3 service from googleapiclient.discovery.build
            chunk_size: Download chunk size in bytes
        """
        self.files = service.files()
        self.chunk_size = chunk_size

    def list_by_name(self, name: str, mime_type: Optional[str] = None) -> List[DriveFile]:
        """List non-trashed files with exactly this name."""
        query = f"name = {_quote(name)} and trashed = false"
        if mime_type:
            query += f" and mimeType = {_quote(mime_type)}"

        found = []
        page_token = None
        try:
            while True:
                resp = self.files.list(
                    q=query,
                    fields='nextPageToken, files(id, name, mimeType)',
                    pageToken=page_token,
                ).execute()
                for item in resp.get('files', []):
                    found.append(DriveFile(id=item['id'], name=item['name'], mime_type=item.get('mimeType')))
                page_token = resp.get('nextPageToken')
                if not page_token:
                    break
        except HttpError as e:
            raise DriveError(f"file lookup failed for {name}: {e}") from e
        return found

    def find(self, name: str, mime_type: Optional[str] = None) -> str:
        """
        Find exactly one file by name.

        Args:
            name: Exact file name
            mime_type: Optional MIME type filter

        Returns:
            Drive file id

        Raises:
            DriveNotFoundError: No match
            DriveAmbiguousError: Several matches (candidates are logged)
        """
        candidates = self.list_by_name(name, mime_type)
        if not candidates:
            raise DriveNotFoundError(name)
        if len(candidates) > 1:
            logger.error(f"Failed to find file {name}, candidates:")
            for candidate in candidates:
                logger.error(f"  {candidate.id}\t{candidate.name}")
            raise DriveAmbiguousError(name, candidates)
        return candidates[0].id

    def download(self, file_id: str, sink: BinaryIO, export_mime: Optional[str] = None) -> int:
        """
        Stream file content into a writable sink.

        Args:
            file_id: Drive file id
            sink: Any object with write(bytes)
            export_mime: Export format for native Google files (None = raw download)

        Returns:
            Number of bytes written
        """
        if export_mime:
            request = self.files.export_media(fileId=file_id, mimeType=export_mime)
        else:
            request = self.files.get_media(fileId=file_id)

        counter = _CountingWriter(sink)
        downloader = MediaIoBaseDownload(counter, request, chunksize=self.chunk_size)
        done = False
        try:
            while not done:
                status, done = downloader.next_chunk()
                if status:
                    logger.debug(f"Download {file_id}: {int(status.progress() * 100)}%")
        except HttpError as e:
            raise DriveError(f"download failed for {file_id}: {e}") from e
        return counter.written

    def replace(self, file_id: str, name: str, mime_type: str, path) -> None:
        """
        Replace the content of an existing file.

        Args:
            file_id: Drive file id to update
            name: File name to keep
            mime_type: Target MIME type (spreadsheet MIME converts xlsx back)
            path: Local file with the new content
        """
        media = MediaFileUpload(str(Path(path)), mimetype=XLSX_MIME, resumable=False)
        try:
            self.files.update(
                fileId=file_id,
                body={'name': name, 'mimeType': mime_type},
                media_body=media,
            ).execute()
        except HttpError as e:
            raise DriveError(f"upload failed: {e}") from e


class _CountingWriter:
    """Write-through wrapper that counts bytes."""

    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self.written = 0

    def write(self, data: bytes) -> int:
        self.sink.write(data)
        self.written += len(data)
        return len(data)
