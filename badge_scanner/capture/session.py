"""Camera capture session with a cancellable auto-capture loop.

The session owns the camera for its lifetime and the stability state for
each run. One frame is evaluated per tick; frame reads run in a worker
thread so the event loop stays responsive.
"""

import asyncio
from typing import Protocol

import cv2
import numpy as np

from badge_scanner.errors import CameraUnavailableError
from badge_scanner.utils.config import CaptureConfig
from badge_scanner.utils.logger import get_logger

from .frame_evaluator import FrameEvaluation, FrameEvaluator, StabilityState

logger = get_logger(__name__)


class FrameSource(Protocol):
    """Provider of live frames and the resource behind them."""

    def read(self) -> np.ndarray | None: ...

    def release(self) -> None: ...


class CameraSource:
    """OpenCV camera wrapper yielding RGBA frames.

    Args:
        index: Camera device index.
        width: Requested frame width.
        height: Requested frame height.
    """

    def __init__(self, index: int = 0, width: int = 1920, height: int = 1080) -> None:
        self.index = index
        self._capture = cv2.VideoCapture(index)
        if not self._capture.isOpened():
            self._capture.release()
            raise CameraUnavailableError(f"Could not open camera {index}")
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info("Opened camera %d", index)

    def read(self) -> np.ndarray | None:
        ok, frame = self._capture.read()
        if not ok:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)

    def release(self) -> None:
        self._capture.release()
        logger.info("Released camera %d", self.index)


class CaptureSession:
    """Scoped capture session around a frame source.

    Use as an async context manager; the source is released on exit no
    matter how the session ends.

    Args:
        source: Frame provider, released when the session closes.
        config: Capture thresholds and tick interval.
    """

    def __init__(self, source: FrameSource, config: CaptureConfig | None = None) -> None:
        self.source = source
        self.config = config or CaptureConfig()
        self.evaluator = FrameEvaluator(self.config)
        self.state = StabilityState()
        self.last_evaluation: FrameEvaluation | None = None
        self._cancelled = asyncio.Event()
        self._closed = False

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Stop the loop and release the frame source once."""
        self._cancelled.set()
        if not self._closed:
            self._closed = True
            self.source.release()

    def cancel(self) -> None:
        """Request the running loop to stop before its next step."""
        self._cancelled.set()

    def rearm(self) -> None:
        """Clear a previous cancellation so the loop can run again."""
        if self._closed:
            raise RuntimeError("Capture session is closed")
        self._cancelled.clear()
        self.state = StabilityState()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def step(self, frame: np.ndarray) -> FrameEvaluation:
        """Evaluate a single frame against the session state."""
        self.last_evaluation = self.evaluator.evaluate(frame, self.state)
        return self.last_evaluation

    async def run(self) -> np.ndarray | None:
        """Evaluate frames until auto-capture fires or the session is cancelled.

        Returns:
            The captured frame, or ``None`` if cancelled first.
        """
        if self._closed:
            raise RuntimeError("Capture session is closed")
        self.state = StabilityState()
        logger.info("Capture loop started")

        while not self._cancelled.is_set():
            frame = await asyncio.to_thread(self.source.read)
            if self._cancelled.is_set():
                break
            if frame is not None:
                evaluation = self.step(frame)
                if evaluation.should_capture:
                    logger.info("Auto-capture fired")
                    return frame
            try:
                await asyncio.wait_for(
                    self._cancelled.wait(), timeout=self.config.tick_interval_s
                )
            except asyncio.TimeoutError:
                pass

        logger.info("Capture loop cancelled")
        return None
