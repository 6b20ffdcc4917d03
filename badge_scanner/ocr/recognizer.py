"""Tesseract recognition adapter tuned for badge text.

Restricts the character set and uses single-column page segmentation,
which suits the stacked layout of the supported badges. A single attempt
is made per call.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from badge_scanner.errors import EmptyResultError, RecognitionUnavailableError
from badge_scanner.utils.config import OCRConfig
from badge_scanner.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RecognitionResult:
    """Raw OCR output for one image."""

    text: str
    language: str

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()


class TesseractRecognizer:
    """Wrapper around pytesseract with badge-specific settings.

    Args:
        config: OCR configuration (binary path, language, PSM, whitelist).
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    def is_available(self) -> bool:
        """Check whether the Tesseract binary can be invoked."""
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError:
            return False
        logger.debug("Tesseract version %s available", version)
        return True

    def build_config(self) -> str:
        """Tesseract command-line options for badge recognition."""
        return (
            f"--psm {self.config.psm} "
            f'-c "tessedit_char_whitelist={self.config.char_whitelist}"'
        )

    def recognize(self, image: np.ndarray, lang: str | None = None) -> RecognitionResult:
        """Run OCR on a normalized badge image.

        Args:
            image: Binarized image as a numpy array.
            lang: Tesseract language code. Defaults to the configured one.

        Returns:
            RecognitionResult with the raw text.

        Raises:
            RecognitionUnavailableError: If Tesseract is not installed.
            EmptyResultError: If no text was recognized.
        """
        lang = lang or self.config.default_lang
        if not self.is_available():
            raise RecognitionUnavailableError(
                "Tesseract is not available. Cannot perform OCR."
            )

        try:
            text = pytesseract.image_to_string(
                Image.fromarray(image), lang=lang, config=self.build_config()
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise RecognitionUnavailableError(str(exc)) from exc

        if not text or not text.strip():
            raise EmptyResultError(
                "Tesseract could not extract any text. "
                "The image may be too blurry or low quality."
            )

        logger.info("OCR produced %d lines (lang=%s)", len(text.splitlines()), lang)
        logger.debug("Raw OCR text:\n%s", text)
        return RecognitionResult(text=text, language=lang)
