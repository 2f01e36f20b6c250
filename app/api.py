"""
FastAPI routes for receipt upload, review and export.
Thin API layer over the receipt session service.
"""
import mimetypes
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from core.exceptions import DataNotFoundError, ExportError, IndexOutOfRangeError
from core.exporters import format_currency
from core.logger import setup_logger
from core.schema import ACCEPTED_MEDIA_TYPES, ApiKeyUpdate, NotificationView, ReceiptRecord, SourceFile
from services.session import get_session

logger = setup_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Receipt Parser",
    description="Extract transactions from receipt images and PDFs",
    version="1.0.0"
)

# Setup templates
templates_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))
templates.env.filters["currency"] = format_currency


def attachment(filename: str) -> dict:
    """Content-Disposition header that survives non-ASCII names."""
    return {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}


def resolve_media_type(upload: UploadFile) -> str:
    """
    Use the declared media type, falling back to the file extension.

    Raises:
        HTTPException: If the file is not a PDF, JPEG or PNG
    """
    media_type = (upload.content_type or "").lower()
    if media_type not in ACCEPTED_MEDIA_TYPES:
        guessed, _ = mimetypes.guess_type(upload.filename or "")
        media_type = (guessed or "").lower()
    if media_type not in ACCEPTED_MEDIA_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type: {upload.filename}. Only PDF, JPEG and PNG are supported."
        )
    return media_type


@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Render upload page with queue and receipts."""
    session = get_session()
    notification = session.notifications.current()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "files": session.queue_view(),
            "receipts": session.receipts(),
            "notification": notification.message if notification else None,
            "has_credential": getattr(session.extractor, "has_credential", True),
            "auto_start": session.loop.auto_start,
        },
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "receipt_parser",
        "version": "1.0.0"
    }


@app.put("/settings/api-key", status_code=204)
async def set_api_key(payload: ApiKeyUpdate):
    """Configure the API key used for extraction."""
    get_session().set_api_key(payload.api_key)
    return Response(status_code=204)


@app.post("/files", status_code=202)
async def submit_files(files: List[UploadFile] = File(...)):
    """
    Queue uploaded receipts for extraction.

    Args:
        files: PDF, JPEG or PNG receipts, processed in upload order

    Returns:
        202 Accepted with the new queue entries
    """
    logger.info(f"Received {len(files)} file(s): {[f.filename for f in files]}")

    source_files = []
    for upload in files:
        media_type = resolve_media_type(upload)
        source_files.append(SourceFile(
            filename=upload.filename or "receipt",
            media_type=media_type,
            content=await upload.read(),
        ))

    session = get_session()
    entries = session.submit(source_files)
    return {"entries": [session.describe(entry) for entry in entries]}


@app.post("/processing/start", status_code=202)
async def start_processing():
    """Start consuming queued files."""
    session = get_session()
    entry = session.start()
    return {
        "armed": session.loop.armed,
        "dispatched": entry.id if entry else None,
    }


@app.get("/files")
async def list_files():
    """Current queue with per-file status."""
    return {"files": get_session().queue_view()}


@app.get("/files/{entry_id}/archive")
async def download_archive(entry_id: str):
    """Download the original file renamed after its receipt."""
    try:
        download = get_session().archival_download(entry_id)
    except DataNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return Response(
        content=download.content,
        media_type=download.media_type,
        headers=attachment(download.filename),
    )


@app.get("/notification")
async def get_notification() -> Optional[NotificationView]:
    """Latest extraction failure, until it expires or is dismissed."""
    notifications = get_session().notifications
    notification = notifications.current()
    if notification is None:
        return None
    return NotificationView(message=notification.message, expires_in=notifications.remaining())


@app.delete("/notification", status_code=204)
async def dismiss_notification():
    get_session().notifications.dismiss()
    return Response(status_code=204)


@app.get("/receipts")
async def list_receipts():
    return {"receipts": get_session().receipts()}


@app.put("/receipts/{index}")
async def update_receipt(index: int, record: ReceiptRecord):
    """Replace the receipt at a position with the user's edit."""
    session = get_session()
    try:
        session.update_receipt(index, record)
    except IndexOutOfRangeError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return {"receipts": session.receipts()}


@app.delete("/receipts/{index}")
async def delete_receipt(index: int):
    """Delete the receipt at a position; later receipts shift down."""
    session = get_session()
    try:
        session.delete_receipt(index)
    except IndexOutOfRangeError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return {"receipts": session.receipts()}


@app.get("/receipts/export.tsv", response_class=PlainTextResponse)
async def export_tsv():
    """Tab-delimited receipts for the clipboard."""
    return PlainTextResponse(get_session().export_tsv(), media_type="text/tab-separated-values")


@app.get("/receipts/export.csv")
async def export_csv():
    filename, text = get_session().export_csv()
    return Response(content=text, media_type="text/csv", headers=attachment(filename))


@app.get("/receipts/export.xlsx")
async def export_xlsx():
    try:
        filename, content = get_session().export_xlsx()
    except ExportError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=attachment(filename),
    )
