"""
Pydantic schemas for receipts, queue entries and API payloads.
Defines the strict shape the vision model must return.
"""
import math
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

FileStatus = Literal["queued", "processing", "processed", "error"]

QUEUED: FileStatus = "queued"
PROCESSING: FileStatus = "processing"
PROCESSED: FileStatus = "processed"
ERROR: FileStatus = "error"

TERMINAL_STATUSES = frozenset({PROCESSED, ERROR})

# Media types the upload form offers; the core itself never checks them
ACCEPTED_MEDIA_TYPES = ("application/pdf", "image/jpeg", "image/png")


def normalize_card_last4(v):
    """Normalize card suffix - empty strings and "null" mean no card."""
    if v is None:
        return None
    v = str(v).strip()
    if not v or v.lower() == "null":
        return None
    return v


def normalize_text(v):
    """Strip surrounding whitespace from free-text fields."""
    if isinstance(v, str):
        return v.strip()
    return v


class ReceiptRecord(BaseModel):
    """One transaction as shown in the receipts table."""

    model_config = ConfigDict(frozen=True)

    date: Annotated[str, BeforeValidator(normalize_text)] = Field(..., description="Receipt date, YYYY-MM-DD")
    merchant: Annotated[str, BeforeValidator(normalize_text)] = Field(..., description="Store or vendor name")
    description: Annotated[str, BeforeValidator(normalize_text)] = Field(
        default="", description="Brief description of the items (5 words or less)"
    )
    total: float = Field(..., description="Positive for purchases, negative for refunds")
    card_last4: Annotated[Optional[str], BeforeValidator(normalize_card_last4)] = Field(
        default=None, min_length=4, max_length=4, description="Last 4 digits of the card"
    )

    @field_validator("total")
    @classmethod
    def validate_total(cls, v):
        """Totals are always finite numbers."""
        if not math.isfinite(v):
            raise ValueError("Total must be a finite number")
        return v


class ExtractedReceipt(ReceiptRecord):
    """
    Structured output schema for the vision model.
    Stricter than ReceiptRecord: user edits may relax these, the model may not.
    """

    date: Annotated[str, BeforeValidator(normalize_text)] = Field(
        ..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Receipt date, YYYY-MM-DD"
    )
    description: Annotated[str, BeforeValidator(normalize_text)] = Field(
        default="", max_length=50, description="Brief description of the items (5 words or less)"
    )
    # No string or bool coercion for model output
    total: float = Field(..., strict=True, description="Positive for purchases, negative for refunds")

    def to_record(self) -> ReceiptRecord:
        """Drop the extraction-only constraints."""
        return ReceiptRecord(**self.model_dump())


class SourceFile(BaseModel):
    """Raw bytes of one uploaded file together with its name and media type."""

    model_config = ConfigDict(frozen=True)

    filename: str
    media_type: str = "application/octet-stream"
    content: bytes = Field(default=b"", repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return "pdf" in self.media_type.lower()


class QueueEntry(BaseModel):
    """
    One submitted file tracked through queued -> processing -> processed | error.

    Entries are immutable; FileQueue replaces them on every status change.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source_file: SourceFile
    status: FileStatus = QUEUED
    result: Optional[ReceiptRecord] = None
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def check_payload_matches_status(self):
        """result exists only when processed, error_message only on error."""
        if (self.result is not None) != (self.status == PROCESSED):
            raise ValueError("result must be set exactly when status is 'processed'")
        if (self.error_message is not None) != (self.status == ERROR):
            raise ValueError("error_message must be set exactly when status is 'error'")
        return self


class QueueEntryView(BaseModel):
    """Queue entry as returned by the API (no raw bytes)."""
    id: str
    filename: str
    media_type: str
    size: int
    status: FileStatus
    result: Optional[ReceiptRecord] = None
    error_message: Optional[str] = None
    archival_filename: Optional[str] = None


class ApiKeyUpdate(BaseModel):
    """Runtime credential supplied by the user."""
    api_key: str = Field(default="", description="Empty string clears the key")


class NotificationView(BaseModel):
    """Banner-level notification."""
    message: str
    expires_in: float = Field(..., ge=0.0, description="Seconds until auto-dismiss")
