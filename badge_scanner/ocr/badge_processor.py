"""End-to-end badge scanning pipeline.

Runs decode, normalization, OCR and field extraction for one captured
photo and turns the result into an identity record. Blocking steps run in
a worker thread; only one scan runs at a time per processor.
"""

import asyncio
import time
from dataclasses import dataclass

import numpy as np

from badge_scanner.errors import IncompleteExtractionError
from badge_scanner.extraction.badge_parser import BadgeParser
from badge_scanner.extraction.record import BadgeExtraction, IdentityRecord
from badge_scanner.preprocessing.normalizer import (
    ImageNormalizer,
    NormalizationReport,
    decode_image,
)
from badge_scanner.utils.config import AppConfig
from badge_scanner.utils.logger import get_logger

from .recognizer import RecognitionResult, TesseractRecognizer

logger = get_logger(__name__)


@dataclass
class ScanResult:
    """Everything produced while scanning one badge."""

    record: IdentityRecord
    extraction: BadgeExtraction
    recognition: RecognitionResult
    normalization: NormalizationReport


def now_ms() -> int:
    return int(time.time() * 1000)


class BadgeProcessor:
    """Badge scanning pipeline.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.normalizer = ImageNormalizer(config.preprocessing)
        self.recognizer = TesseractRecognizer(config.ocr)
        self.parser = BadgeParser()
        self._lock = asyncio.Lock()

    def process(
        self,
        source: np.ndarray | bytes,
        scan_area: str,
        scan_timestamp: int | None = None,
    ) -> ScanResult:
        """Scan a badge synchronously.

        Args:
            source: RGB(A) pixel array, or encoded image bytes.
            scan_area: Checkpoint where the badge was scanned.
            scan_timestamp: Scan time in ms since the epoch. Defaults to now.

        Returns:
            Scan result holding the identity record.

        Raises:
            ImageDecodeError: If ``source`` bytes cannot be decoded.
            ImageAccessError: If the pixels cannot be read.
            RecognitionUnavailableError: If Tesseract is missing.
            EmptyResultError: If OCR produced no text.
            IncompleteExtractionError: If name or ID number were not found.
        """
        image = decode_image(source) if isinstance(source, bytes) else source
        normalized, report = self.normalizer.process(image)
        recognition = self.recognizer.recognize(normalized)
        extraction = self.parser.extract(recognition.text)

        missing = extraction.missing_required()
        if missing:
            logger.warning("Incomplete badge extraction, missing %s", missing)
            raise IncompleteExtractionError(missing)

        timestamp = scan_timestamp if scan_timestamp is not None else now_ms()
        record = extraction.to_record(scan_area, timestamp)
        logger.info("Scanned badge %s at %s", record.id_number, scan_area)
        return ScanResult(
            record=record,
            extraction=extraction,
            recognition=recognition,
            normalization=report,
        )

    async def scan(
        self,
        source: np.ndarray | bytes,
        scan_area: str,
        scan_timestamp: int | None = None,
    ) -> ScanResult:
        """Scan a badge without blocking the event loop.

        Concurrent calls wait for the running scan to finish first.
        """
        async with self._lock:
            return await asyncio.to_thread(
                self.process, source, scan_area, scan_timestamp
            )
