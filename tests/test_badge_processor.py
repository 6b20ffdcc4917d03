"""Tests for the end-to-end badge scanning pipeline (OCR mocked)."""

import asyncio
import threading
import time
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytesseract
import pytest

from badge_scanner.errors import (
    EmptyResultError,
    ImageDecodeError,
    IncompleteExtractionError,
    RecognitionUnavailableError,
)
from badge_scanner.ocr.badge_processor import BadgeProcessor, ScanResult
from badge_scanner.utils.config import AppConfig


def _patch_ocr(mock: MagicMock, text: str) -> None:
    mock.TesseractNotFoundError = pytesseract.TesseractNotFoundError
    mock.get_tesseract_version.return_value = "5.3.0"
    mock.image_to_string.return_value = text


class TestBadgeProcessor:
    """Tests for BadgeProcessor."""

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_process_array(
        self,
        mock_pytesseract: MagicMock,
        sample_color_image: np.ndarray,
        sample_text: str,
    ) -> None:
        _patch_ocr(mock_pytesseract, sample_text)

        result = BadgeProcessor(AppConfig()).process(
            sample_color_image, "Terminal 3", scan_timestamp=1700000000000
        )

        assert isinstance(result, ScanResult)
        assert result.record.name == "JOHN DOE"
        assert result.record.id_number == "ID.NO.1234.5678"
        assert result.record.company == "PT ANGKASA PURA"
        assert result.record.scan_area == "Terminal 3"
        assert result.record.scan_timestamp == 1700000000000
        assert result.recognition.text == sample_text

        ocr_image = mock_pytesseract.image_to_string.call_args.args[0]
        assert set(np.unique(np.asarray(ocr_image)[..., :3])).issubset({0, 255})

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_process_encoded_bytes(
        self, mock_pytesseract: MagicMock, sample_text: str
    ) -> None:
        _patch_ocr(mock_pytesseract, sample_text)
        ok, encoded = cv2.imencode(".png", np.full((30, 40, 3), 200, dtype=np.uint8))
        assert ok

        before = int(time.time() * 1000)
        result = BadgeProcessor(AppConfig()).process(encoded.tobytes(), "Gate")
        assert result.record.scan_timestamp >= before

    def test_undecodable_bytes(self) -> None:
        with pytest.raises(ImageDecodeError):
            BadgeProcessor(AppConfig()).process(b"not an image", "Gate")

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_incomplete_extraction_raises(
        self, mock_pytesseract: MagicMock, sample_color_image: np.ndarray
    ) -> None:
        _patch_ocr(mock_pytesseract, "AREA 1 JAN 2025\nSOMETHING ELSE")

        with pytest.raises(IncompleteExtractionError) as exc_info:
            BadgeProcessor(AppConfig()).process(sample_color_image, "Gate")
        assert exc_info.value.missing_fields == ["name", "id_number"]

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_literal_not_found_name_is_accepted(
        self, mock_pytesseract: MagicMock, sample_color_image: np.ndarray
    ) -> None:
        text = "NOT FOUND\nGUARD\nPT X\nAB.1234.5678"
        _patch_ocr(mock_pytesseract, text)

        result = BadgeProcessor(AppConfig()).process(sample_color_image, "Gate")
        assert result.record.name == "NOT FOUND"

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_empty_ocr_propagates(
        self, mock_pytesseract: MagicMock, sample_color_image: np.ndarray
    ) -> None:
        _patch_ocr(mock_pytesseract, "")
        with pytest.raises(EmptyResultError):
            BadgeProcessor(AppConfig()).process(sample_color_image, "Gate")

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_unavailable_propagates(
        self, mock_pytesseract: MagicMock, sample_color_image: np.ndarray
    ) -> None:
        _patch_ocr(mock_pytesseract, "")
        mock_pytesseract.get_tesseract_version.side_effect = (
            pytesseract.TesseractNotFoundError()
        )
        with pytest.raises(RecognitionUnavailableError):
            BadgeProcessor(AppConfig()).process(sample_color_image, "Gate")


class TestAsyncScan:
    """Tests for the awaitable, serialized scan entry point."""

    @patch("badge_scanner.ocr.recognizer.pytesseract")
    def test_scan(
        self,
        mock_pytesseract: MagicMock,
        sample_color_image: np.ndarray,
        sample_text: str,
    ) -> None:
        _patch_ocr(mock_pytesseract, sample_text)
        processor = BadgeProcessor(AppConfig())

        result = asyncio.run(processor.scan(sample_color_image, "Gate"))
        assert result.record.name == "JOHN DOE"

    def test_scans_do_not_overlap(self, sample_color_image: np.ndarray) -> None:
        processor = BadgeProcessor(AppConfig())
        active = 0
        peak = 0
        guard = threading.Lock()

        def fake_process(source, scan_area, scan_timestamp=None):
            nonlocal active, peak
            with guard:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with guard:
                active -= 1
            return scan_area

        processor.process = fake_process

        async def scenario() -> list:
            return await asyncio.gather(
                *(processor.scan(sample_color_image, f"Gate {i}") for i in range(3))
            )

        assert asyncio.run(scenario()) == ["Gate 0", "Gate 1", "Gate 2"]
        assert peak == 1
