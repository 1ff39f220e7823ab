"""Shared pytest fixtures for framestab tests."""

from pathlib import Path

import numpy as np
import pytest


def textured_frame(height: int = 120, width: int = 160, seed: int = 0) -> np.ndarray:
    """Smooth random texture: distinctive enough for correlation and keypoints."""
    cv2 = pytest.importorskip("cv2")
    rng = np.random.default_rng(seed)
    frame = rng.integers(0, 255, (height, width, 3), dtype=np.uint8)
    frame = cv2.GaussianBlur(frame, (5, 5), 0)
    for _ in range(25):
        x, y = int(rng.integers(0, width - 12)), int(rng.integers(0, height - 12))
        w, h = int(rng.integers(6, 24)), int(rng.integers(6, 24))
        color = tuple(int(c) for c in rng.integers(0, 255, 3))
        cv2.rectangle(frame, (x, y), (x + w, y + h), color, -1)
    return frame


def write_video(path: Path, frames: list[np.ndarray], fps: float = 30.0) -> Path:
    """Write frames as Motion JPEG AVI (reliable frame counts on read-back)."""
    cv2 = pytest.importorskip("cv2")
    h, w = frames[0].shape[:2]
    path.parent.mkdir(parents=True, exist_ok=True)
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (w, h))
    for frame in frames:
        writer.write(frame)
    writer.release()
    return path


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Create a temporary data root with standard directory structure."""
    for subdir in ["raw", "Extracted_Frames", "output"]:
        (tmp_path / subdir).mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture
def sample_frames() -> list[np.ndarray]:
    """Five distinct frames of identical size."""
    return [textured_frame(seed=i) for i in range(5)]


@pytest.fixture
def test_video(data_root: Path) -> Path:
    """Create a small 12-frame test video at 30 fps."""
    frames = [textured_frame(seed=i) for i in range(12)]
    return write_video(data_root / "raw" / "clip.avi", frames, fps=30.0)


@pytest.fixture
def make_frame():
    """Factory fixture: ``make_frame(height, width, seed)`` -> textured BGR frame."""
    return textured_frame


@pytest.fixture
def make_video():
    """Factory fixture: ``make_video(path, frames, fps)`` -> path of an MJPG AVI."""
    return write_video
