"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel

from badge_scanner.extraction.record import IdentityRecord


class ScanResponse(BaseModel):
    """Response schema for a badge scan request."""

    success: bool
    record: IdentityRecord
    raw_text: str
    otsu_threshold: int
    saved: bool
    processing_time_ms: float


class ErrorResponse(BaseModel):
    """Response schema for a failed scan."""

    detail: str
    missing_fields: list[str] = []


class ScanHistoryResponse(BaseModel):
    """Response schema listing stored scans, newest first."""

    total: int
    records: list[IdentityRecord]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool


class ScanStatsResponse(BaseModel):
    """Response schema summarizing stored scans per area."""

    total: int
    last_scan: IdentityRecord | None = None
    areas: dict[str, int]
