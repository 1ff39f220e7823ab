"""Output video encoding over cv2.VideoWriter."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import cv2
import numpy as np

from framestab.core.errors import EncoderError

logger = logging.getLogger(__name__)

# container -> (fourcc, extension)
CONTAINERS: dict[str, tuple[str, str]] = {
    "mp4": ("mp4v", "mp4"),
    "avi": ("MJPG", "avi"),
}

DEFAULT_OUTPUT_STEM = "stabilized_video"


def output_video_name(name_source: Path | str | None, strategy_tag: str, container_format: str = "mp4") -> str:
    """``<stem>_stabilized_<TAG>.<ext>`` where stem is the last path component of ``name_source``."""
    if container_format not in CONTAINERS:
        raise ValueError(f"Unsupported container format: {container_format}")
    stem = Path(str(name_source)).name if name_source else ""
    stem = stem or DEFAULT_OUTPUT_STEM
    return f"{stem}_stabilized_{strategy_tag}.{CONTAINERS[container_format][1]}"


class VideoEncoder:
    """Append frames in order to a video container; finalize on close."""

    def __init__(self, container_format: str = "mp4", frame_rate: float = 30.0):
        if container_format not in CONTAINERS:
            raise ValueError(f"Unsupported container format: {container_format}")
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")
        self.container_format = container_format
        self.frame_rate = float(frame_rate)
        self._writer: cv2.VideoWriter | None = None
        self._size: tuple[int, int] | None = None
        self.frames_written = 0

    def open(self, path: Path, frame_dims: tuple[int, int]) -> None:
        """Open ``path`` for frames of (height, width) = ``frame_dims``."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        h, w = frame_dims
        fourcc = cv2.VideoWriter_fourcc(*CONTAINERS[self.container_format][0])
        writer = cv2.VideoWriter(str(path), fourcc, self.frame_rate, (w, h))
        if not writer.isOpened():
            raise EncoderError(f"Cannot open {path} for writing ({self.container_format})")
        self._writer = writer
        self._size = (w, h)
        self.frames_written = 0

    def _conform(self, frame: np.ndarray) -> np.ndarray:
        if frame.dtype != np.uint8:
            frame = np.clip(frame, 0, 255).astype(np.uint8)
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        if (frame.shape[1], frame.shape[0]) != self._size:
            # VideoWriter silently drops frames of the wrong size
            logger.warning(f"Resizing frame {self.frames_written + 1} to {self._size}")
            frame = cv2.resize(frame, self._size, interpolation=cv2.INTER_LINEAR)
        return frame

    def write(self, frame: np.ndarray) -> None:
        if self._writer is None:
            raise EncoderError("Encoder is not open")
        self._writer.write(self._conform(frame))
        self.frames_written += 1

    def close(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None

    def __enter__(self) -> VideoEncoder:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def write_video(
    path: Path,
    frames: Iterable[np.ndarray],
    frame_rate: float,
    container_format: str = "mp4",
    frame_dims: tuple[int, int] | None = None,
) -> int:
    """Encode ``frames`` in order; frame size defaults to the first frame's."""
    frames = list(frames)
    if not frames:
        raise EncoderError(f"No frames to write to {path}")
    dims = frame_dims or frames[0].shape[:2]
    with VideoEncoder(container_format, frame_rate) as encoder:
        encoder.open(path, dims)
        for frame in frames:
            encoder.write(frame)
        written = encoder.frames_written
    logger.info(f"Stabilized video saved as: {path} ({written} frames @ {frame_rate:.2f} fps)")
    return written
