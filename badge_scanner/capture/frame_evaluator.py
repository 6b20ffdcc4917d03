"""Live-frame analysis that decides when a badge frame is ready to capture.

A frame counts as "card present" when the centre of the image sits in the
brightness band of a lit card surface. Consecutive present frames that
barely differ from each other build up a stability counter; reaching the
target fires a single auto-capture.
"""

from dataclasses import dataclass

import numpy as np

from badge_scanner.utils.config import CaptureConfig
from badge_scanner.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StabilityState:
    """Cross-frame state owned by a capture session."""

    card_present: bool = False
    stable_frames: int = 0
    last_frame: np.ndarray | None = None

    def reset(self) -> None:
        """Drop the stability counter and the comparison frame."""
        self.stable_frames = 0
        self.last_frame = None


@dataclass
class FrameEvaluation:
    """Outcome of evaluating a single frame."""

    card_present: bool
    stability_ratio: float
    should_capture: bool


def center_brightness(frame: np.ndarray, stride: int = 2) -> float | None:
    """Average ``(R + G + B) / 3`` over the central 50% x 50% of a frame.

    Args:
        frame: ``H x W x C`` uint8 frame (RGB or RGBA).
        stride: Sampling step in both axes.

    Returns:
        Mean brightness, or ``None`` when no pixel was sampled.
    """
    if frame.ndim != 3 or frame.shape[2] < 3:
        return None

    height, width = frame.shape[:2]
    top, left = int(height * 0.25), int(width * 0.25)
    region = frame[
        top : top + int(height * 0.5) : stride,
        left : left + int(width * 0.5) : stride,
        :3,
    ]
    if region.size == 0:
        return None

    brightness = region.astype(np.float64).sum(axis=2) / 3.0
    return float(brightness.mean())


def frame_difference(
    current: np.ndarray, previous: np.ndarray, stride: int = 10
) -> float:
    """Mean absolute first-channel delta over every ``stride``-th pixel.

    Args:
        current: Current frame.
        previous: Previously accepted frame of the same shape.
        stride: Pixel sampling step over the flattened buffer.

    Returns:
        Mean absolute difference on a 0-255 scale.
    """
    channels = current.shape[2] if current.ndim == 3 else 1
    step = stride * channels
    a = current.reshape(-1)[::step].astype(np.int16)
    b = previous.reshape(-1)[::step].astype(np.int16)
    if a.size == 0:
        return 0.0
    return float(np.abs(a - b).mean())


class FrameEvaluator:
    """Scores frames for card presence and stability.

    Args:
        config: Capture thresholds. Defaults to the tuned values.
    """

    def __init__(self, config: CaptureConfig | None = None) -> None:
        self.config = config or CaptureConfig()

    def is_card_present(self, frame: np.ndarray) -> bool:
        """Check whether the frame centre lies in the card brightness band."""
        brightness = center_brightness(frame, self.config.presence_stride)
        if brightness is None:
            return False
        return self.config.min_brightness < brightness < self.config.max_brightness

    def evaluate(self, frame: np.ndarray, state: StabilityState) -> FrameEvaluation:
        """Evaluate one frame and advance the stability state.

        Args:
            frame: Current camera frame.
            state: Session-owned stability state, updated in place.

        Returns:
            Presence flag, stability progress and the auto-capture decision.
        """
        target = self.config.stability_target
        present = self.is_card_present(frame)
        state.card_present = present

        if not present:
            state.reset()
            return FrameEvaluation(False, 0.0, False)

        previous = state.last_frame
        if previous is not None and previous.shape == frame.shape:
            diff = frame_difference(frame, previous, self.config.difference_stride)
            if diff < self.config.noise_threshold:
                state.stable_frames += 1
            else:
                state.stable_frames = 0
        state.last_frame = frame

        if state.stable_frames >= target:
            logger.info("Frame stable for %d ticks, auto-capturing", target)
            state.stable_frames = 0
            return FrameEvaluation(True, 1.0, True)

        return FrameEvaluation(True, min(state.stable_frames / target, 1.0), False)
