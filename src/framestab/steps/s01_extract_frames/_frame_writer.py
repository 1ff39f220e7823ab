"""Concurrent persistence of a frame set as numbered image files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import cv2
import numpy as np

from framestab.core.errors import FrameWriteError
from framestab.core.frames import is_empty_frame
from framestab.utils.parallel import run_parallel

logger = logging.getLogger(__name__)


def frame_filename(index: int, width: int = 4, image_format: str = "png") -> str:
    """``frame_0001.png`` style name for a 1-based frame index."""
    return f"frame_{index:0{width}d}.{image_format}"


def index_width_for(frame_count: int, minimum: int = 4) -> int:
    """Zero-padding wide enough that every index has the same length."""
    return max(minimum, len(str(frame_count)))


class ParallelFrameWriter:
    """Write each frame to its own file, one thread-pool task per frame.

    Tasks never share a file, so no locking is needed and the resulting
    directory is the same for any worker count.
    """

    def __init__(self, workers: int | None = None, image_format: str = "png", index_width: int = 4):
        self.workers = workers
        self.image_format = image_format.lstrip(".").lower()
        self.index_width = index_width

    def write_all(self, frames: Iterable[np.ndarray | None], directory: Path) -> list[Path]:
        """Write non-empty frames to ``directory``; returns written paths in index order."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        items = list(enumerate(frames, start=1))
        width = index_width_for(len(items), self.index_width)

        def _write(item: tuple[int, np.ndarray | None]) -> tuple[int, Path | None, bool]:
            index, frame = item
            if is_empty_frame(frame):
                logger.warning(f"Skipping empty frame {index}")
                return index, None, True
            path = directory / frame_filename(index, width, self.image_format)
            return index, path, bool(cv2.imwrite(str(path), frame))

        results = run_parallel(_write, items, workers=self.workers)

        failed = [index for index, _, ok in results if not ok]
        if failed:
            raise FrameWriteError(directory, failed)

        written = [path for _, path, _ in results if path is not None]
        logger.info(f"Saved {len(written)} frames in {directory}")
        return written
