"""FastAPI application for the badge scanner.

Provides REST endpoints for scanning an uploaded badge photo, listing
stored scans, and health checks.
"""

import time
from datetime import datetime
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from badge_scanner.errors import (
    BadgeScanError,
    EmptyResultError,
    ImageAccessError,
    ImageDecodeError,
    IncompleteExtractionError,
    RecognitionUnavailableError,
)
from badge_scanner.ocr.badge_processor import BadgeProcessor
from badge_scanner.ocr.recognizer import TesseractRecognizer
from badge_scanner.storage.scan_store import ScanStore, count_by_area
from badge_scanner.utils.config import load_config
from badge_scanner.utils.logger import get_logger

from .schemas import (
    ErrorResponse,
    HealthResponse,
    ScanHistoryResponse,
    ScanResponse,
    ScanStatsResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Badge Scanner API",
    description="Extract structured identity records from badge photos",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/bmp",
    "application/octet-stream",
}

_ERROR_STATUS: dict[type[BadgeScanError], int] = {
    ImageDecodeError: 400,
    ImageAccessError: 400,
    EmptyResultError: 422,
    IncompleteExtractionError: 422,
    RecognitionUnavailableError: 503,
}


def _get_components() -> tuple[BadgeProcessor, ScanStore]:
    """Initialize and return the scan pipeline and the record store.

    Returns:
        Tuple of (badge_processor, scan_store).
    """
    config = load_config()
    return BadgeProcessor(config), ScanStore(config.storage.data_dir)


@app.exception_handler(BadgeScanError)
async def badge_scan_error_handler(request: Request, exc: BadgeScanError) -> JSONResponse:
    """Turn scan failures into JSON error responses."""
    status_code = _ERROR_STATUS.get(type(exc), 500)
    logger.warning("Scan failed (%d): %s", status_code, exc)
    body = ErrorResponse(
        detail=str(exc), missing_fields=getattr(exc, "missing_fields", [])
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    recognizer = TesseractRecognizer(load_config().ocr)
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=recognizer.is_available(),
    )


@app.post("/scan", response_model=ScanResponse)
async def scan_badge(
    file: Annotated[UploadFile, File(...)],
    scan_area: Annotated[str, Query(min_length=1)] = "Main Gate",
    save: Annotated[bool, Query()] = True,
) -> ScanResponse:
    """Scan an uploaded badge photo into an identity record.

    Args:
        file: Uploaded badge photo (PNG, JPEG, WebP or BMP).
        scan_area: Checkpoint where the badge was scanned.
        save: Whether to persist the record in the scan store.

    Returns:
        The identity record with the raw OCR text.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    processor, store = _get_components()
    content = await file.read()
    result = await processor.scan(content, scan_area)

    if save:
        store.save(result.record)

    return ScanResponse(
        success=True,
        record=result.record,
        raw_text=result.recognition.text,
        otsu_threshold=result.normalization.threshold,
        saved=save,
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.get("/scans", response_model=ScanHistoryResponse)
async def list_scans(
    start: Annotated[datetime | None, Query()] = None,
    end: Annotated[datetime | None, Query()] = None,
    scan_area: Annotated[str | None, Query(min_length=1)] = None,
) -> ScanHistoryResponse:
    """List stored scans, newest first, optionally within a time range or area."""
    _, store = _get_components()
    records = store.load(start, end, scan_area)
    return ScanHistoryResponse(total=len(records), records=records)


@app.get("/scans/stats", response_model=ScanStatsResponse)
async def scan_stats(
    start: Annotated[datetime | None, Query()] = None,
    end: Annotated[datetime | None, Query()] = None,
) -> ScanStatsResponse:
    """Summarize stored scans: total, most recent scan and counts per area."""
    _, store = _get_components()
    records = store.load(start, end)
    return ScanStatsResponse(
        total=len(records),
        last_scan=records[0] if records else None,
        areas=count_by_area(records),
    )
