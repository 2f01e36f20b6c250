"""
Sequential processing loop for the file queue.

One extraction is in flight at most. After every change (submission, start,
finished extraction) the loop runs a single evaluation step that either
claims the next queued entry or does nothing.
"""
import asyncio
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from core.exceptions import ExtractionError, ReceiptParserException
from core.exporters import build_archival_filename
from core.logger import setup_logger
from core.queue import FileQueue
from core.schema import ERROR, PROCESSED, QueueEntry, ReceiptRecord, SourceFile
from core.store import ReceiptStore
from services.notifications import NotificationCenter

logger = setup_logger(__name__)


class Extractor(Protocol):
    async def extract(self, source_file: SourceFile) -> ReceiptRecord:
        ...


@dataclass(frozen=True)
class ArchivalDownload:
    """Emitted after a successful extraction: the original file under its new name."""
    entry_id: str
    filename: str
    media_type: str
    content: bytes


class ProcessingLoop:
    """Feeds queued files one at a time into the extractor."""

    def __init__(
        self,
        queue: FileQueue,
        store: ReceiptStore,
        extractor: Extractor,
        notifications: NotificationCenter,
        auto_start: bool = True,
        extraction_timeout: Optional[float] = None,
    ):
        """
        Initialize processing loop.

        Args:
            queue: Submitted files
            store: Receives every successfully extracted receipt
            extractor: Object with an async extract(source_file) method
            notifications: Banner for the latest failure
            auto_start: Process as soon as files are queued; otherwise wait for start()
            extraction_timeout: Seconds before a pending extraction is marked as failed;
                None waits indefinitely
        """
        self.queue = queue
        self.store = store
        self.extractor = extractor
        self.notifications = notifications
        self.auto_start = auto_start
        self.extraction_timeout = extraction_timeout

        self._armed = auto_start
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[ArchivalDownload], None]] = []

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_archival_download(self, listener: Callable[[ArchivalDownload], None]) -> None:
        """Register a callback for archival downloads."""
        self._listeners.append(listener)

    def submit(self, files: Iterable[SourceFile]) -> Tuple[QueueEntry, ...]:
        """Queue files and let the loop pick them up."""
        entries = self.queue.submit(files)
        if entries:
            self.evaluate()
        return entries

    def start(self) -> Optional[QueueEntry]:
        """Arm the loop and evaluate immediately."""
        self._armed = True
        return self.evaluate()

    def evaluate(self) -> Optional[QueueEntry]:
        """
        Dispatch the next queued entry if nothing is processing.

        Safe to call at any time; it does nothing when an entry is already in
        flight or nothing is queued. Must be called from the event loop thread.

        Returns:
            The entry that was dispatched, if any
        """
        if not self._armed:
            return None

        entry = self.queue.claim_next()
        if entry is None:
            if not self.auto_start and self.queue.processing_count() == 0:
                # Queue drained; later submissions need another start()
                self._armed = False
                logger.info("Queue drained, waiting for start")
            return None

        logger.info(f"Processing {entry.source_file.filename} (entry {entry.id})")
        self._task = asyncio.get_running_loop().create_task(self._process(entry))
        return entry

    async def wait_until_idle(self) -> None:
        """Wait until no extraction is in flight."""
        while self.busy:
            await self._task

    async def _process(self, entry: QueueEntry) -> None:
        error_message = None
        try:
            record = await self._extract(entry.source_file)
        except ReceiptParserException as e:
            logger.warning(f"Extraction failed for {entry.source_file.filename}: {e.message}")
            error_message = e.message
        except Exception as e:
            logger.error(f"Unexpected error extracting {entry.source_file.filename}: {e}", exc_info=True)
            error_message = str(e) or e.__class__.__name__

        try:
            if error_message is None:
                self._complete(entry, record)
            else:
                self.queue.transition(entry.id, ERROR, error_message=error_message)
                self.notifications.show(error_message)
        finally:
            self.evaluate()

    async def _extract(self, source_file: SourceFile) -> ReceiptRecord:
        if self.extraction_timeout is None:
            return await self.extractor.extract(source_file)
        try:
            return await asyncio.wait_for(self.extractor.extract(source_file), timeout=self.extraction_timeout)
        except asyncio.TimeoutError:
            raise ExtractionError(
                f"Extraction timed out after {self.extraction_timeout:g}s",
                details={"filename": source_file.filename, "timeout": self.extraction_timeout},
            )

    def _complete(self, entry: QueueEntry, record: ReceiptRecord) -> None:
        self.queue.transition(entry.id, PROCESSED, result=record)
        self.store.append(record)
        logger.info(f"Processed {entry.source_file.filename}: {record.merchant} {record.total}")
        self.notifications.dismiss()

        # The entry is already processed; a naming failure only costs the download
        try:
            download = ArchivalDownload(
                entry_id=entry.id,
                filename=build_archival_filename(record, entry.source_file.filename),
                media_type=entry.source_file.media_type,
                content=entry.source_file.content,
            )
        except Exception as e:
            logger.error(f"Could not name archival copy of {entry.source_file.filename}: {e}", exc_info=True)
            return
        self._emit(download)

    def _emit(self, download: ArchivalDownload) -> None:
        for listener in self._listeners:
            try:
                listener(download)
            except Exception as e:
                logger.error(f"Archival download listener failed for {download.filename}: {e}", exc_info=True)
