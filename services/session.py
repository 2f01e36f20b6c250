"""
Receipt session service.
Wires queue, store, extractor and processing loop together for one running app.
"""
from typing import Dict, Optional, Tuple

from core.config import Settings, get_settings
from core.db import Database
from core.exceptions import ConfigurationError, DataNotFoundError
from core.exporters import build_archival_filename, build_export_filename, export_to_excel, to_csv, to_tsv
from core.logger import setup_logger
from core.queue import FileQueue
from core.schema import PROCESSED, QueueEntry, QueueEntryView, ReceiptRecord
from core.store import ReceiptStore
from llm.client import ExtractionClient
from services.notifications import NotificationCenter
from services.processing import ArchivalDownload, Extractor, ProcessingLoop

logger = setup_logger(__name__)


class ReceiptSession:
    """Everything one user session owns: queue, receipts, credential and downloads."""

    def __init__(self, settings: Optional[Settings] = None, extractor: Optional[Extractor] = None):
        """
        Initialize receipt session.

        Args:
            settings: Application settings; defaults to the global settings
            extractor: Replaces the OpenAI extraction client (tests)
        """
        self.settings = settings or get_settings()
        self.queue = FileQueue()
        self.store = ReceiptStore(Database(self.settings.database_path), storage_key=self.settings.storage_key)
        self.notifications = NotificationCenter(ttl_seconds=self.settings.notification_ttl_seconds)
        self.extractor = extractor or ExtractionClient(self.settings)
        self.loop = ProcessingLoop(
            self.queue,
            self.store,
            self.extractor,
            self.notifications,
            auto_start=self.settings.auto_start,
            extraction_timeout=self.settings.extraction_timeout,
        )
        self.downloads: Dict[str, ArchivalDownload] = {}
        self.loop.on_archival_download(self._remember_download)

    def _remember_download(self, download: ArchivalDownload) -> None:
        self.downloads[download.entry_id] = download
        logger.info(f"Archival copy ready: {download.filename}")

    def set_api_key(self, api_key: str) -> None:
        """Configure the runtime credential on the extraction client."""
        if not hasattr(self.extractor, "set_api_key"):
            raise ConfigurationError("Configured extractor does not accept an API key")
        self.extractor.set_api_key(api_key)

    def submit(self, files) -> Tuple[QueueEntry, ...]:
        return self.loop.submit(files)

    def start(self) -> Optional[QueueEntry]:
        return self.loop.start()

    def queue_view(self) -> Tuple[QueueEntryView, ...]:
        """Queue snapshot without the raw bytes."""
        return tuple(self.describe(entry) for entry in self.queue.snapshot())

    def describe(self, entry: QueueEntry) -> QueueEntryView:
        archival_filename = None
        if entry.status == PROCESSED:
            archival_filename = build_archival_filename(entry.result, entry.source_file.filename)
        return QueueEntryView(
            id=entry.id,
            filename=entry.source_file.filename,
            media_type=entry.source_file.media_type,
            size=entry.source_file.size,
            status=entry.status,
            result=entry.result,
            error_message=entry.error_message,
            archival_filename=archival_filename,
        )

    def archival_download(self, entry_id: str) -> ArchivalDownload:
        """
        Get the renamed original of a processed entry.

        Raises:
            DataNotFoundError: If the entry has not been processed
        """
        if entry_id not in self.downloads:
            raise DataNotFoundError(f"No archival copy for entry {entry_id}", details={"entry_id": entry_id})
        return self.downloads[entry_id]

    def receipts(self) -> Tuple[ReceiptRecord, ...]:
        return self.store.snapshot()

    def update_receipt(self, index: int, record: ReceiptRecord) -> None:
        self.store.update(index, record)

    def delete_receipt(self, index: int) -> ReceiptRecord:
        return self.store.delete(index)

    def export_tsv(self) -> str:
        return to_tsv(self.store.snapshot())

    def export_csv(self) -> Tuple[str, str]:
        """Return (filename, text) for the CSV download."""
        return build_export_filename(), to_csv(self.store.snapshot())

    def export_xlsx(self) -> Tuple[str, bytes]:
        """Return (filename, bytes) for the workbook download."""
        filename = build_export_filename().rsplit(".", 1)[0] + ".xlsx"
        return filename, export_to_excel(self.store.snapshot())


# Global session instance
_session: Optional[ReceiptSession] = None


def get_session() -> ReceiptSession:
    """
    Get or create the receipt session singleton.

    Returns:
        Receipt session
    """
    global _session
    if _session is None:
        _session = ReceiptSession()
    return _session


def reset_session() -> None:
    """Reset session singleton (useful for testing)."""
    global _session
    _session = None
