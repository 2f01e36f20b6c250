"""
User-editable collection of extracted receipts.

The store is rehydrated from durable storage on creation and written back
after every change.
"""
import json
from typing import List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from core.db import Database
from core.exceptions import IndexOutOfRangeError, PersistenceError
from core.logger import setup_logger
from core.schema import ReceiptRecord

logger = setup_logger(__name__)

_records_adapter = TypeAdapter(List[ReceiptRecord])


class ReceiptStore:
    """Ordered receipts, addressed by position."""

    def __init__(self, database: Optional[Database] = None, storage_key: str = "receipts"):
        """
        Initialize the store and load any persisted receipts.

        Args:
            database: Key/value storage; None keeps the store in memory only
            storage_key: Fixed key the receipts are stored under
        """
        self.database = database
        self.storage_key = storage_key
        self._records: Tuple[ReceiptRecord, ...] = tuple(self._load())

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> Tuple[ReceiptRecord, ...]:
        """Return the current ordered receipts."""
        return self._records

    def append(self, record: ReceiptRecord) -> int:
        """
        Add a receipt to the end of the store.

        Returns:
            Position of the new receipt
        """
        self._records = self._records + (record,)
        self._save()
        logger.info(f"Added receipt from {record.merchant!r} ({len(self._records)} total)")
        return len(self._records) - 1

    def update(self, index: int, record: ReceiptRecord) -> None:
        """
        Replace the receipt at a position.

        Raises:
            IndexOutOfRangeError: If no receipt exists at index
        """
        self._check_index(index)
        self._records = self._records[:index] + (record,) + self._records[index + 1:]
        self._save()
        logger.info(f"Updated receipt {index}")

    def delete(self, index: int) -> ReceiptRecord:
        """
        Remove the receipt at a position; later receipts move down by one.

        Returns:
            The removed receipt

        Raises:
            IndexOutOfRangeError: If no receipt exists at index
        """
        self._check_index(index)
        removed = self._records[index]
        self._records = self._records[:index] + self._records[index + 1:]
        self._save()
        logger.info(f"Deleted receipt {index} ({len(self._records)} remaining)")
        return removed

    def _check_index(self, index: int) -> None:
        # Negative positions are rejected rather than counted from the end
        if not 0 <= index < len(self._records):
            raise IndexOutOfRangeError(
                f"Receipt index {index} out of range (store has {len(self._records)} receipts)",
                details={"index": index, "length": len(self._records)},
            )

    def _load(self) -> List[ReceiptRecord]:
        if self.database is None:
            return []

        try:
            raw = self.database.get_value(self.storage_key)
        except PersistenceError as e:
            logger.warning(f"Could not read stored receipts, starting empty: {e.message}")
            return []

        if raw is None:
            return []

        try:
            records = _records_adapter.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Stored receipts under '{self.storage_key}' are malformed, starting empty: {e}")
            return []

        logger.info(f"Loaded {len(records)} stored receipt(s)")
        return records

    def _save(self) -> None:
        if self.database is None:
            return

        payload = json.dumps([record.model_dump() for record in self._records])
        try:
            self.database.set_value(self.storage_key, payload)
        except PersistenceError as e:
            # Best effort: the in-memory store stays authoritative
            logger.error(f"Failed to persist receipts: {e.message}", extra={"details": e.details})
