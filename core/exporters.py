"""
Exporters for the receipts table and archival file names.
Text exports are plain strings; the workbook export uses pandas with xlsxwriter.
"""
import io
import math
import re
from datetime import date as date_type
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from core.exceptions import ExportError
from core.logger import setup_logger
from core.schema import ReceiptRecord

logger = setup_logger(__name__)

HEADERS = ["Date", "Merchant", "Description", "Total"]
SHEET_NAME = "Receipts"


def format_total(total: float) -> str:
    """
    Render a total the way the receipts table prints plain numbers.

    Whole numbers lose their trailing ".0" (12.0 -> "12"), others keep the
    shortest round-tripping form (-4.5 -> "-4.5").
    """
    if float(total).is_integer():
        return str(int(total))
    return repr(float(total))


def format_currency(total: float) -> str:
    """Format a total for display, e.g. +$12.40 or -$4.50."""
    sign = "+" if total >= 0 else "-"
    return f"{sign}${abs(total):.2f}"


def escape_csv(value: str, delimiter: str = ",") -> str:
    """Quote a field that contains the delimiter, a quote or a newline."""
    if delimiter in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def _rows(records: Iterable[ReceiptRecord]) -> List[List[str]]:
    return [
        [record.date, record.merchant, record.description, format_total(record.total)]
        for record in records
    ]


def to_delimited_text(records: Sequence[ReceiptRecord], delimiter: str) -> str:
    """
    Build the header row plus one row per receipt, newline separated.

    Args:
        records: Receipts in store order
        delimiter: "," escapes fields as CSV; any other delimiter (tab) writes values as-is

    Returns:
        Delimited text without a trailing newline
    """
    rows = [HEADERS] + _rows(records)
    if delimiter == ",":
        rows = [[escape_csv(value, delimiter) for value in row] for row in rows]
    return "\n".join(delimiter.join(row) for row in rows)


def to_tsv(records: Sequence[ReceiptRecord]) -> str:
    """Tab-delimited text for the clipboard."""
    return to_delimited_text(records, "\t")


def to_csv(records: Sequence[ReceiptRecord]) -> str:
    """Comma-delimited text for the download."""
    return to_delimited_text(records, ",")


def build_export_filename(export_date: Optional[date_type] = None) -> str:
    """
    Create the date-stamped CSV filename.

    Args:
        export_date: Date to stamp; defaults to today

    Returns:
        e.g. receipts-2024-03-01.csv
    """
    export_date = export_date or date_type.today()
    return f"receipts-{export_date.isoformat()}.csv"


def sanitize_merchant_name(name: str) -> str:
    """Keep ASCII letters only, joining words with single underscores."""
    cleaned = re.sub(r"[^a-zA-Z\s]", "", name)
    cleaned = re.sub(r"\s+", "_", cleaned)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    cleaned = cleaned.strip().strip("_")
    return cleaned or "Unknown"


def build_archival_filename(
    record: ReceiptRecord,
    original_filename: str,
    today: Optional[date_type] = None,
) -> str:
    """
    Name a receipt file after its transaction.

    Format: {YYYY}-{MM}-{DD}_{Merchant}_${Amount}[_{CardLast4}].{original extension}

    Args:
        record: Extracted receipt
        original_filename: Uploaded file name; its last extension is kept verbatim
        today: Fills in missing date parts; defaults to today

    Returns:
        Archival filename
    """
    today = today or date_type.today()
    date_parts = record.date.split("-")
    year = date_parts[0] if len(date_parts) > 0 and date_parts[0] else str(today.year)
    month = date_parts[1] if len(date_parts) > 1 and date_parts[1] else f"{today.month:02d}"
    day = date_parts[2] if len(date_parts) > 2 and date_parts[2] else f"{today.day:02d}"

    merchant = sanitize_merchant_name(record.merchant or "Unknown")

    # Round to whole dollars (halves toward +inf), then drop the sign
    amount = abs(math.floor(record.total + 0.5))

    parts = [f"{year}-{month}-{day}", merchant, f"${amount}"]
    if record.card_last4:
        parts.append(record.card_last4)

    dot = original_filename.rfind(".")
    extension = original_filename[dot:] if dot != -1 else ""

    return "_".join(parts) + extension


def export_to_excel(records: Sequence[ReceiptRecord]) -> bytes:
    """
    Export receipts to an .xlsx workbook.

    Args:
        records: Receipts in store order

    Returns:
        Workbook bytes

    Raises:
        ExportError: If the workbook cannot be written
    """
    logger.info(f"Exporting {len(records)} receipts to Excel")

    output_df = pd.DataFrame(
        [
            {
                "Date": record.date,
                "Merchant": record.merchant,
                "Description": record.description,
                "Card Last 4": record.card_last4 or "-",
                "Total": record.total,
            }
            for record in records
        ],
        columns=["Date", "Merchant", "Description", "Card Last 4", "Total"],
    )

    buffer = io.BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
            output_df.to_excel(writer, sheet_name=SHEET_NAME, index=False)

            workbook = writer.book
            worksheet = writer.sheets[SHEET_NAME]

            money_format = workbook.add_format({"num_format": "+$#,##0.00;-$#,##0.00"})
            total_col_idx = len(output_df.columns) - 1
            worksheet.set_column(total_col_idx, total_col_idx, 12, money_format)

            # Auto-fit text columns (approximate)
            for idx, col in enumerate(output_df.columns[:-1]):
                max_len = max(
                    output_df[col].astype(str).map(len).max() if len(output_df) else 0,
                    len(str(col))
                )
                worksheet.set_column(idx, idx, min(max_len + 2, 50))
    except Exception as e:
        logger.error(f"Failed to export Excel: {e}")
        raise ExportError("Failed to export receipts to Excel", details={"error": str(e)})

    return buffer.getvalue()
