"""Create a synthetic shaky MP4 for trying out the stabilizer.

A static textured scene is translated by a random jitter per frame, so a
correct stabilization run should produce an almost static video.
"""

from pathlib import Path
import sys

import cv2
import numpy as np


def make_scene(width: int, height: int, seed: int = 0) -> np.ndarray:
    """Random rectangles on a blurred noise background (plenty of corners and edges)."""
    rng = np.random.default_rng(seed)
    scene = rng.integers(0, 255, (height, width, 3), dtype=np.uint8)
    scene = cv2.GaussianBlur(scene, (7, 7), 0)
    for _ in range(40):
        x, y = int(rng.integers(0, width - 20)), int(rng.integers(0, height - 20))
        w, h = int(rng.integers(8, 40)), int(rng.integers(8, 40))
        color = tuple(int(c) for c in rng.integers(0, 255, 3))
        cv2.rectangle(scene, (x, y), (x + w, y + h), color, -1)
    return scene


def create_video(
    output_path: Path,
    num_frames: int = 60,
    size: tuple[int, int] = (320, 240),
    fps: float = 30.0,
    max_shift: int = 6,
    seed: int = 0,
) -> int:
    """Write a jittered clip. Returns number of frames written."""
    width, height = size
    scene = make_scene(width, height, seed)
    rng = np.random.default_rng(seed + 1)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(str(output_path), fourcc, fps, (width, height))

    for _ in range(num_frames):
        dx, dy = rng.integers(-max_shift, max_shift + 1, 2)
        m = np.float32([[1, 0, dx], [0, 1, dy]])
        writer.write(cv2.warpAffine(scene, m, (width, height), borderMode=cv2.BORDER_REFLECT))

    writer.release()
    print(f"Created {output_path}: {num_frames} frames, {width}x{height} @ {fps}fps")
    return num_frames


if __name__ == "__main__":
    output = Path("data/raw/shaky.mp4")
    num_frames = int(sys.argv[1]) if len(sys.argv) > 1 else 60
    create_video(output, num_frames=num_frames)
