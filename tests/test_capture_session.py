"""Tests for the scoped, cancellable capture session."""

import asyncio
import time
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from badge_scanner.capture.session import CameraSource, CaptureSession
from badge_scanner.errors import CameraUnavailableError
from badge_scanner.utils.config import CaptureConfig

from conftest import make_frame


class FakeSource:
    """Frame source replaying a fixed list of frames, then repeating the last."""

    def __init__(self, frames: list[np.ndarray | None]) -> None:
        self.frames = list(frames)
        self.reads = 0
        self.released = 0

    def read(self) -> np.ndarray | None:
        self.reads += 1
        if len(self.frames) > 1:
            return self.frames.pop(0)
        return self.frames[0] if self.frames else None

    def release(self) -> None:
        self.released += 1


class SlowSource(FakeSource):
    """Frame source whose reads block like a real camera."""

    def __init__(self, frame: np.ndarray, delay: float) -> None:
        super().__init__([frame])
        self.delay = delay

    def read(self) -> np.ndarray | None:
        time.sleep(self.delay)
        return super().read()


def _config(**overrides) -> CaptureConfig:
    return CaptureConfig(tick_interval_s=0.0, **overrides)


class TestCaptureSession:
    """Tests for the capture loop and resource scoping."""

    def test_run_returns_captured_frame(self) -> None:
        frame = make_frame(150)
        source = FakeSource([frame])

        async def scenario() -> np.ndarray | None:
            async with CaptureSession(source, _config(stability_target=3)) as session:
                return await session.run()

        captured = asyncio.run(scenario())
        assert captured is frame
        assert source.reads == 4
        assert source.released == 1

    def test_missing_frames_are_skipped(self) -> None:
        frame = make_frame(150)
        source = FakeSource([None, None, frame])

        async def scenario() -> np.ndarray | None:
            async with CaptureSession(source, _config(stability_target=1)) as session:
                return await session.run()

        assert asyncio.run(scenario()) is frame

    def test_cancel_stops_loop_and_releases(self) -> None:
        source = FakeSource([make_frame(0)])

        async def scenario() -> tuple[np.ndarray | None, int]:
            async with CaptureSession(source, _config()) as session:
                task = asyncio.create_task(session.run())
                await asyncio.sleep(0.01)
                session.cancel()
                result = await task
                reads_at_cancel = source.reads
                await asyncio.sleep(0.01)
                assert source.reads == reads_at_cancel
                return result, source.released

        result, released_inside = asyncio.run(scenario())
        assert result is None
        assert released_inside == 0
        assert source.released == 1

    def test_cancel_before_run_evaluates_nothing(self) -> None:
        source = FakeSource([make_frame(150)])

        async def scenario() -> np.ndarray | None:
            async with CaptureSession(source, _config()) as session:
                session.cancel()
                return await session.run()

        assert asyncio.run(scenario()) is None
        assert source.reads == 0

    def test_slow_read_does_not_block_event_loop(self) -> None:
        source = SlowSource(make_frame(150), delay=0.2)

        async def scenario() -> tuple[float, np.ndarray | None, object]:
            async with CaptureSession(source, _config()) as session:
                task = asyncio.create_task(session.run())
                await asyncio.sleep(0)
                started = time.perf_counter()
                await asyncio.sleep(0.01)
                elapsed = time.perf_counter() - started
                session.cancel()
                result = await task
                return elapsed, result, session.last_evaluation

        elapsed, result, last_evaluation = asyncio.run(scenario())
        assert elapsed < 0.1
        assert result is None
        assert last_evaluation is None
        assert source.reads == 1

    def test_source_released_on_error(self) -> None:
        source = FakeSource([make_frame(150)])

        async def scenario() -> None:
            async with CaptureSession(source, _config()):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())
        assert source.released == 1

    def test_close_is_idempotent(self) -> None:
        source = FakeSource([make_frame(150)])
        session = CaptureSession(source, _config())
        session.close()
        session.close()
        assert source.released == 1
        assert session.cancelled is True

    def test_run_after_close_raises(self) -> None:
        session = CaptureSession(FakeSource([make_frame(150)]), _config())
        session.close()
        with pytest.raises(RuntimeError, match="closed"):
            asyncio.run(session.run())
        with pytest.raises(RuntimeError, match="closed"):
            session.rearm()

    def test_rearm_resets_state(self) -> None:
        session = CaptureSession(FakeSource([make_frame(150)]), _config())
        session.step(make_frame(150))
        session.step(make_frame(150))
        assert session.state.stable_frames == 1
        session.cancel()

        session.rearm()
        assert session.cancelled is False
        assert session.state.stable_frames == 0
        assert session.state.last_frame is None

    def test_step_records_last_evaluation(self) -> None:
        session = CaptureSession(FakeSource([]), _config())
        evaluation = session.step(make_frame(150))
        assert session.last_evaluation is evaluation
        assert evaluation.card_present is True


class TestCameraSource:
    """Tests for the OpenCV camera wrapper (mocked)."""

    @patch("badge_scanner.capture.session.cv2")
    def test_unopened_camera_raises(self, mock_cv2: MagicMock) -> None:
        mock_cv2.VideoCapture.return_value.isOpened.return_value = False
        with pytest.raises(CameraUnavailableError):
            CameraSource(3)
        mock_cv2.VideoCapture.return_value.release.assert_called_once()

    @patch("badge_scanner.capture.session.cv2")
    def test_read_converts_to_rgba(self, mock_cv2: MagicMock) -> None:
        bgr = np.zeros((4, 4, 3), dtype=np.uint8)
        rgba = np.zeros((4, 4, 4), dtype=np.uint8)
        capture = mock_cv2.VideoCapture.return_value
        capture.isOpened.return_value = True
        capture.read.return_value = (True, bgr)
        mock_cv2.cvtColor.return_value = rgba

        source = CameraSource(0, width=640, height=480)
        assert source.read() is rgba
        mock_cv2.cvtColor.assert_called_once_with(bgr, mock_cv2.COLOR_BGR2RGBA)

    @patch("badge_scanner.capture.session.cv2")
    def test_failed_read_returns_none(self, mock_cv2: MagicMock) -> None:
        capture = mock_cv2.VideoCapture.return_value
        capture.isOpened.return_value = True
        capture.read.return_value = (False, None)

        source = CameraSource()
        assert source.read() is None
        source.release()
        capture.release.assert_called_once()
