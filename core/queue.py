"""
Ordered queue of submitted files and their processing status.

The queue is held as an immutable tuple of frozen entries. Every change
builds a new tuple, so a snapshot handed out earlier never changes under
its reader.
"""
import threading
import uuid
from typing import Iterable, Optional, Tuple

from core.exceptions import DataNotFoundError, InvalidTransitionError
from core.logger import setup_logger
from core.schema import (
    ERROR,
    PROCESSED,
    PROCESSING,
    QUEUED,
    FileStatus,
    QueueEntry,
    ReceiptRecord,
    SourceFile,
)

logger = setup_logger(__name__)

# Allowed status changes; processed and error are terminal
ALLOWED_TRANSITIONS = {
    QUEUED: {PROCESSING},
    PROCESSING: {PROCESSED, ERROR},
    PROCESSED: set(),
    ERROR: set(),
}


class FileQueue:
    """Single mutation surface for queue entries."""

    def __init__(self):
        self._entries: Tuple[QueueEntry, ...] = ()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def submit(self, files: Iterable[SourceFile]) -> Tuple[QueueEntry, ...]:
        """
        Append one queued entry per file, keeping the caller's order.

        Args:
            files: Uploaded files in submission order

        Returns:
            The newly created entries
        """
        new_entries = tuple(
            QueueEntry(id=uuid.uuid4().hex, source_file=source_file, status=QUEUED)
            for source_file in files
        )
        if not new_entries:
            return ()

        with self._lock:
            self._entries = self._entries + new_entries

        logger.info(f"Queued {len(new_entries)} file(s), queue length is now {len(self._entries)}")
        return new_entries

    def snapshot(self) -> Tuple[QueueEntry, ...]:
        """Return the current ordered entries."""
        return self._entries

    def get(self, entry_id: str) -> QueueEntry:
        """
        Look up an entry by id.

        Raises:
            DataNotFoundError: If no entry has this id
        """
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise DataNotFoundError(f"Queue entry not found: {entry_id}", details={"entry_id": entry_id})

    def transition(
        self,
        entry_id: str,
        new_status: FileStatus,
        result: Optional[ReceiptRecord] = None,
        error_message: Optional[str] = None,
    ) -> QueueEntry:
        """
        Replace an entry with a copy carrying the new status and payload.

        Args:
            entry_id: Entry to change
            new_status: Target status
            result: Extracted receipt, required for "processed"
            error_message: Failure text, required for "error"

        Returns:
            The replacement entry

        Raises:
            DataNotFoundError: If the entry does not exist
            InvalidTransitionError: If the status change is not allowed
        """
        with self._lock:
            return self._replace(entry_id, new_status, result, error_message)

    def claim_next(self) -> Optional[QueueEntry]:
        """
        Move the earliest queued entry to "processing" when nothing else is.

        The check and the status change happen under one lock, so two callers
        can never both claim an entry.

        Returns:
            The claimed entry, or None if an entry is already processing or
            nothing is queued
        """
        with self._lock:
            if any(entry.status == PROCESSING for entry in self._entries):
                return None
            queued = next((entry for entry in self._entries if entry.status == QUEUED), None)
            if queued is None:
                return None
            return self._replace(queued.id, PROCESSING, None, None)

    def processing_count(self) -> int:
        return sum(1 for entry in self._entries if entry.status == PROCESSING)

    def _replace(self, entry_id, new_status, result, error_message) -> QueueEntry:
        for position, entry in enumerate(self._entries):
            if entry.id == entry_id:
                break
        else:
            raise DataNotFoundError(f"Queue entry not found: {entry_id}", details={"entry_id": entry_id})

        if new_status not in ALLOWED_TRANSITIONS[entry.status]:
            raise InvalidTransitionError(
                f"Cannot move entry from '{entry.status}' to '{new_status}'",
                details={"entry_id": entry_id, "from": entry.status, "to": new_status},
            )

        replacement = QueueEntry(
            id=entry.id,
            source_file=entry.source_file,
            status=new_status,
            result=result,
            error_message=error_message,
        )
        self._entries = self._entries[:position] + (replacement,) + self._entries[position + 1:]
        logger.debug(f"Entry {entry_id} ({entry.source_file.filename}): {entry.status} -> {new_status}")
        return replacement
