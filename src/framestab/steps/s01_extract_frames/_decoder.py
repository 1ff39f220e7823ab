"""Sequential frame reader over cv2.VideoCapture.

OpenCV readers do not support parallel or random access, so decoding is
always done in one thread, front to back.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from framestab.core.contracts import StreamMetadata, VideoSource
from framestab.core.errors import DecoderExhaustedError, FrameRateUnavailable, SourceUnreadableError
from framestab.core.frames import FrameSet

logger = logging.getLogger(__name__)


@dataclass
class DecoderHandle:
    """Open reader plus a one-frame lookahead buffer."""

    source: VideoSource
    capture: cv2.VideoCapture
    pending: np.ndarray | None = None
    exhausted: bool = False
    frames_read: int = 0


def _open_capture(path: Path) -> cv2.VideoCapture:
    if not path.exists():
        raise SourceUnreadableError(path, "does not exist")
    cap = cv2.VideoCapture(str(path))
    if not cap.isOpened():
        cap.release()
        raise SourceUnreadableError(path)
    return cap


class VideoDecoder:
    """Pull-style decoder: ``open`` / ``has_next`` / ``next`` / ``close``."""

    def open(self, source: VideoSource) -> tuple[DecoderHandle, StreamMetadata]:
        cap = _open_capture(source.path)

        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = float(cap.get(cv2.CAP_PROP_FPS))
        frame_count = float(cap.get(cv2.CAP_PROP_FRAME_COUNT))

        duration = None
        estimated = None
        if fps > 0 and frame_count > 0:
            duration = frame_count / fps
            estimated = int(math.floor(duration * fps))

        metadata = StreamMetadata(
            width=width or None,
            height=height or None,
            duration=duration,
            frame_rate=fps if fps > 0 else StreamMetadata().frame_rate,
            frame_rate_fallback=not fps > 0,
            estimated_frames=estimated,
        )
        logger.info(f"Resolution: {width} x {height}")
        if duration is not None:
            logger.info(f"Duration: {duration:.2f} seconds")
        logger.info(f"Frame rate: {metadata.frame_rate:.2f} fps")
        logger.info(f"Estimated number of frames: {estimated}")
        return DecoderHandle(source=source, capture=cap), metadata

    def has_next(self, handle: DecoderHandle) -> bool:
        if handle.pending is not None:
            return True
        if handle.exhausted:
            return False
        ok, frame = handle.capture.read()
        if not ok or frame is None:
            handle.exhausted = True
            handle.capture.release()
            return False
        handle.pending = frame
        return True

    def next(self, handle: DecoderHandle) -> np.ndarray:
        if not self.has_next(handle):
            raise DecoderExhaustedError(f"No frames left in {handle.source.path}")
        frame = handle.pending
        handle.pending = None
        handle.frames_read += 1
        return frame

    def close(self, handle: DecoderHandle) -> None:
        handle.pending = None
        handle.exhausted = True
        handle.capture.release()

    def decode(self, source: VideoSource) -> tuple[FrameSet, StreamMetadata]:
        """Read every frame of ``source`` into memory.

        The estimated frame count only pre-sizes storage; the frame set is
        trimmed (or grown) to the number of frames actually read.
        """
        handle, metadata = self.open(source)
        frames: list[np.ndarray | None] = [None] * (metadata.estimated_frames or 0)
        count = 0
        try:
            while self.has_next(handle):
                frame = self.next(handle)
                if count < len(frames):
                    frames[count] = frame
                else:
                    frames.append(frame)
                count += 1
        finally:
            self.close(handle)
        del frames[count:]

        if count == 0:
            raise SourceUnreadableError(source.path, "contains no decodable frames")
        if metadata.estimated_frames is not None and count != metadata.estimated_frames:
            logger.info(f"Decoded {count} frames (estimate was {metadata.estimated_frames})")

        metadata.actual_frames = count
        return FrameSet.from_frames(frames), metadata

    def probe_frame_rate(self, path: Path) -> float:
        """Re-open ``path`` just to read its nominal frame rate."""
        cap = _open_capture(Path(path))
        try:
            fps = float(cap.get(cv2.CAP_PROP_FPS))
        finally:
            cap.release()
        if not math.isfinite(fps) or fps <= 0:
            raise FrameRateUnavailable(f"{path} reports no frame rate")
        return fps
