"""Fixtures for E2E pipeline tests."""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import pytest

MAX_SHIFT = 5


def make_scene(width: int, height: int, seed: int = 0) -> np.ndarray:
    """Rectangles on blurred noise: strong gradients everywhere."""
    rng = np.random.default_rng(seed)
    scene = rng.integers(0, 255, (height, width, 3), dtype=np.uint8)
    scene = cv2.GaussianBlur(scene, (7, 7), 0)
    for _ in range(40):
        x, y = int(rng.integers(0, width - 20)), int(rng.integers(0, height - 20))
        w, h = int(rng.integers(8, 40)), int(rng.integers(8, 40))
        color = tuple(int(c) for c in rng.integers(0, 255, 3))
        cv2.rectangle(scene, (x, y), (x + w, y + h), color, -1)
    return scene


def create_jittered_video(
    output_path: Path,
    num_frames: int = 20,
    size: tuple[int, int] = (320, 240),
    fps: float = 30.0,
    seed: int = 0,
) -> Path:
    """
    Write a shaky clip: one static scene translated by a random offset per frame.

    The first frame is the untranslated scene. Motion JPEG AVI keeps the
    frame count exact on read-back.
    """
    width, height = size
    scene = make_scene(width, height, seed)
    rng = np.random.default_rng(seed + 1)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    writer = cv2.VideoWriter(str(output_path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (width, height))
    writer.write(scene)
    for _ in range(num_frames - 1):
        dx, dy = rng.integers(-MAX_SHIFT, MAX_SHIFT + 1, 2)
        m = np.float32([[1, 0, dx], [0, 1, dy]])
        writer.write(cv2.warpAffine(scene, m, (width, height), borderMode=cv2.BORDER_REFLECT))
    writer.release()
    return output_path


@pytest.fixture
def jittered_video(tmp_path: Path) -> Path:
    """20-frame 320x240 shaky clip at 30 fps."""
    return create_jittered_video(tmp_path / "pipeline_data" / "raw" / "shaky.avi")
