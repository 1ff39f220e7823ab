"""In-memory frame sequence with 1-based indexing.

Frame indices are 1-based throughout framestab: the reference index passed
by callers, the numbers embedded in cache filenames and ``FrameSet.get`` all
agree. Index 1 is the first decoded frame.
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

from .errors import IncompleteFrameSetError

Frame = np.ndarray


def is_empty_frame(frame: Frame | None) -> bool:
    """True for missing or zero-size frames (e.g. corrupted captures)."""
    return frame is None or getattr(frame, "size", 0) == 0


class FrameSet:
    """Fixed-length ordered sequence of frames.

    The length is fixed at construction. Slots may be filled one by one with
    ``set`` (each concurrent task owns exactly one slot), and ``frames``
    refuses to hand out the sequence while any slot is still empty.
    """

    def __init__(self, length: int):
        if length < 0:
            raise ValueError(f"FrameSet length must be >= 0, got {length}")
        self._slots: list[Frame | None] = [None] * length

    @classmethod
    def from_frames(cls, frames: list[Frame]) -> FrameSet:
        frame_set = cls(len(frames))
        frame_set._slots = list(frames)
        return frame_set

    @classmethod
    def empty(cls, length: int) -> FrameSet:
        return cls(length)

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Frame | None]:
        return iter(self._slots)

    def indices(self) -> range:
        """All valid 1-based indices."""
        return range(1, len(self._slots) + 1)

    def validate_index(self, index: int) -> None:
        if not 1 <= index <= len(self._slots):
            raise ValueError(f"Frame index {index} out of range [1, {len(self._slots)}]")

    def get(self, index: int) -> Frame | None:
        self.validate_index(index)
        return self._slots[index - 1]

    def set(self, index: int, frame: Frame) -> None:
        self.validate_index(index)
        self._slots[index - 1] = frame

    def dimensions(self, index: int) -> tuple[int, int]:
        """(height, width) of the frame at ``index``."""
        frame = self.get(index)
        if is_empty_frame(frame):
            raise ValueError(f"Frame {index} is empty")
        h, w = frame.shape[:2]
        return int(h), int(w)

    def missing_indices(self) -> list[int]:
        return [i for i, f in zip(self.indices(), self._slots) if is_empty_frame(f)]

    def is_complete(self) -> bool:
        return not self.missing_indices()

    def frames(self) -> list[Frame]:
        """Return the frames in index order; every slot must be filled."""
        missing = self.missing_indices()
        if missing:
            raise IncompleteFrameSetError(f"FrameSet has empty slots at indices {missing}")
        return list(self._slots)
