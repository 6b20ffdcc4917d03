"""Image normalization that prepares a badge photo for OCR.

Converts the photo to luminance, stretches it to the full 0-255 range and
binarizes it with Otsu's global threshold. The output keeps the input
shape: colour channels all carry the binary value and alpha is untouched.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from badge_scanner.errors import ImageAccessError, ImageDecodeError
from badge_scanner.utils.config import PreprocessingConfig
from badge_scanner.utils.logger import get_logger

logger = get_logger(__name__)

_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


@dataclass
class NormalizationReport:
    """Measurements taken while normalizing one image."""

    threshold: int
    luminance_min: int
    luminance_max: int
    contrast_before: float
    contrast_after: float


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def _check_pixels(image: np.ndarray) -> None:
    if not isinstance(image, np.ndarray) or image.dtype != np.uint8:
        raise ImageAccessError("Expected a uint8 pixel array")
    if image.ndim == 2:
        return
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ImageAccessError(f"Unsupported pixel layout: shape={image.shape}")


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (PNG, JPEG, ...) into an RGBA array.

    Args:
        data: Raw encoded image file content.

    Returns:
        ``H x W x 4`` uint8 array in RGBA order.

    Raises:
        ImageDecodeError: If the bytes are not a decodable image.
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    decoded = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if decoded is None:
        raise ImageDecodeError("Could not decode image data")
    return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)


def to_luminance(image: np.ndarray) -> np.ndarray:
    """Convert RGB(A) pixels to rounded ``0.299R + 0.587G + 0.114B``.

    Args:
        image: ``H x W x 3|4`` uint8 array, or an already grayscale ``H x W``.

    Returns:
        ``H x W`` uint8 luminance plane.
    """
    _check_pixels(image)
    if image.ndim == 2:
        return image.copy()
    gray = image[..., :3].astype(np.float64) @ _LUMA_WEIGHTS
    return np.clip(_round_half_up(gray), 0, 255).astype(np.uint8)


def luminance_histogram(gray: np.ndarray) -> np.ndarray:
    """256-bucket histogram of a uint8 luminance plane."""
    return np.bincount(gray.reshape(-1), minlength=256)


def stretch_contrast(gray: np.ndarray) -> np.ndarray:
    """Linearly remap luminance so the darkest pixel is 0 and the brightest 255.

    A flat plane (zero range) is returned unchanged.
    """
    if gray.size == 0:
        return gray.copy()
    low, high = int(gray.min()), int(gray.max())
    if high == low:
        return gray.copy()
    scaled = (gray.astype(np.float64) - low) * 255.0 / (high - low)
    return np.clip(_round_half_up(scaled), 0, 255).astype(np.uint8)


def otsu_threshold(histogram: np.ndarray) -> int:
    """Pick the split that maximizes between-class variance.

    Uses running (cumulative) weights and sums over the histogram, so the
    pixels are never revisited. Candidates that leave either class empty
    are skipped and ties resolve to the lowest threshold.

    Args:
        histogram: 256-bucket luminance histogram.

    Returns:
        Threshold in [0, 255]; pixels above it are foreground.
    """
    hist = np.asarray(histogram, dtype=np.float64)
    levels = np.arange(hist.size, dtype=np.float64)
    total = hist.sum()
    if total == 0:
        return 0

    weight_b = np.cumsum(hist)
    weight_f = total - weight_b
    sum_b = np.cumsum(levels * hist)
    sum_all = sum_b[-1]

    valid = (weight_b > 0) & (weight_f > 0)
    between = np.zeros_like(hist)
    wb, wf = weight_b[valid], weight_f[valid]
    mean_b = sum_b[valid] / wb
    mean_f = (sum_all - sum_b[valid]) / wf
    between[valid] = wb * wf * (mean_b - mean_f) ** 2

    if not between.any():
        return 0
    return int(np.argmax(between))


def binarize(image: np.ndarray, gray: np.ndarray, threshold: int) -> np.ndarray:
    """Write the binary luminance into every colour channel of ``image``.

    Args:
        image: Original pixels, used for shape and alpha.
        gray: Luminance plane matching ``image``.
        threshold: Pixels strictly above it become white.

    Returns:
        New array shaped like ``image``.
    """
    binary = np.where(gray > threshold, 255, 0).astype(np.uint8)
    if image.ndim == 2:
        return binary
    result = image.copy()
    result[..., :3] = binary[..., np.newaxis]
    return result


class ImageNormalizer:
    """Grayscale, contrast-stretch and Otsu-binarize badge photos.

    Args:
        config: Preprocessing configuration.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def process(self, image: np.ndarray) -> tuple[np.ndarray, NormalizationReport]:
        """Normalize an image and report what was done to it.

        Args:
            image: RGB(A) or grayscale uint8 photo.

        Returns:
            Tuple of (binary image, normalization report).

        Raises:
            ImageAccessError: If ``image`` is not a readable pixel array.
        """
        gray = to_luminance(image)
        contrast_before = float(gray.std()) if gray.size else 0.0
        low = int(gray.min()) if gray.size else 0
        high = int(gray.max()) if gray.size else 0

        if self.config.contrast_stretch_enabled:
            gray = stretch_contrast(gray)

        threshold = otsu_threshold(luminance_histogram(gray))
        result = binarize(image, gray, threshold)
        binary_plane = result if result.ndim == 2 else result[..., 0]

        report = NormalizationReport(
            threshold=threshold,
            luminance_min=low,
            luminance_max=high,
            contrast_before=contrast_before,
            contrast_after=float(binary_plane.std()) if binary_plane.size else 0.0,
        )
        logger.info(
            "Normalized %dx%d image: luminance %d..%d, Otsu threshold %d",
            image.shape[1],
            image.shape[0],
            low,
            high,
            threshold,
        )
        return result, report


def normalize(image: np.ndarray) -> np.ndarray:
    """Normalize a photo with the default configuration."""
    result, _ = ImageNormalizer().process(image)
    return result
