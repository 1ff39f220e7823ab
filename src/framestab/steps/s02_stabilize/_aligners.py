"""Frame aligners: estimate a transform onto the reference, then warp.

Two strategies:
- GradientCorrelationAligner: phase correlation of Sobel gradient
  magnitudes, translation only (robust to global brightness changes).
- KeypointAligner: detect/describe keypoints, cross-checked brute-force
  matching, RANSAC affine estimate.

Both signal an unusable estimate by raising AlignmentFailure; the
stabilizer then keeps the original frame.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

import cv2
import numpy as np

from framestab.core.errors import AlignmentFailure
from .config import StabilizeConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transform:
    """2x3 affine matrix mapping moving-frame pixels onto the reference."""

    matrix: np.ndarray
    kind: str = "affine"


def to_gray(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 2:
        return frame
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    if frame.shape[2] == 1:
        return frame[:, :, 0]
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


class FrameAligner(ABC):
    """Pluggable alignment strategy.

    ``prepare`` is called once with the reference frame before any
    concurrent ``estimate_transform`` call; afterwards the aligner must be
    treated as read-only.
    """

    tag: str = "ALIGNED"

    def prepare(self, fixed: np.ndarray) -> None:
        return None

    @abstractmethod
    def estimate_transform(self, moving: np.ndarray, fixed: np.ndarray) -> Transform:
        """Return the transform aligning ``moving`` to ``fixed`` or raise AlignmentFailure."""
        ...

    def warp(self, frame: np.ndarray, transform: Transform, output_dims: tuple[int, int]) -> np.ndarray:
        """Resample ``frame`` into a new (height, width) = ``output_dims`` canvas."""
        h, w = output_dims
        return cv2.warpAffine(
            frame,
            np.asarray(transform.matrix, dtype=np.float64),
            (w, h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )


# ── Gradient correlation ─────────────────────────────────────────────

def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
    g = gray.astype(np.float32)
    gx = cv2.Sobel(g, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(g, cv2.CV_32F, 0, 1, ksize=3)
    return cv2.magnitude(gx, gy)


def _fit_to(image: np.ndarray, shape: tuple[int, int]) -> np.ndarray:
    """Place ``image`` at the top-left of a zero canvas of ``shape`` (cropping if larger)."""
    if image.shape[:2] == shape:
        return image
    canvas = np.zeros(shape, dtype=image.dtype)
    h = min(shape[0], image.shape[0])
    w = min(shape[1], image.shape[1])
    canvas[:h, :w] = image[:h, :w]
    return canvas


class GradientCorrelationAligner(FrameAligner):
    tag = "GRADIENT"

    def __init__(self, min_response: float = 0.01):
        self.min_response = min_response

    def estimate_transform(self, moving: np.ndarray, fixed: np.ndarray) -> Transform:
        fixed_g = gradient_magnitude(to_gray(fixed))
        moving_g = _fit_to(gradient_magnitude(to_gray(moving)), fixed_g.shape[:2])

        window = cv2.createHanningWindow((fixed_g.shape[1], fixed_g.shape[0]), cv2.CV_32F)
        (dx, dy), response = cv2.phaseCorrelate(fixed_g, moving_g, window)

        if not (math.isfinite(dx) and math.isfinite(dy) and math.isfinite(response)):
            raise AlignmentFailure("phase correlation produced a non-finite shift")
        if response < self.min_response:
            raise AlignmentFailure(f"correlation response {response:.4f} below {self.min_response}")

        # phaseCorrelate reports how far moving is shifted from fixed; undo it.
        matrix = np.array([[1.0, 0.0, -dx], [0.0, 1.0, -dy]], dtype=np.float64)
        return Transform(matrix=matrix, kind="translation")


# ── Keypoint matching ────────────────────────────────────────────────

_BINARY_DESCRIPTORS = {"ORB", "AKAZE"}


def create_detector(name: str, max_features: int = 2000):
    """Instantiate an OpenCV feature detector/descriptor by name."""
    name = name.upper()
    if name == "ORB":
        return cv2.ORB_create(nfeatures=max_features)
    if name == "SIFT":
        return cv2.SIFT_create(nfeatures=max_features)
    if name == "AKAZE":
        return cv2.AKAZE_create()
    if name == "SURF":
        try:
            return cv2.xfeatures2d.SURF_create(hessianThreshold=400)
        except (AttributeError, cv2.error) as exc:
            raise ValueError(
                "SURF needs an opencv-contrib build with non-free algorithms enabled"
            ) from exc
    raise ValueError(f"Unsupported feature detector: {name}")


class KeypointAligner(FrameAligner):
    def __init__(
        self,
        detector: str = "ORB",
        max_features: int = 2000,
        min_matches: int = 3,
        ransac_threshold: float = 3.0,
    ):
        if min_matches < 3:
            raise ValueError("An affine estimate needs at least 3 matched points")
        self.detector_name = detector.upper()
        self.max_features = max_features
        self.min_matches = min_matches
        self.ransac_threshold = ransac_threshold
        # Fail fast on an unavailable detector (e.g. SURF without contrib).
        create_detector(self.detector_name, max_features)
        self._reference: np.ndarray | None = None
        self._reference_features = None

    @property
    def tag(self) -> str:
        return self.detector_name

    def _features(self, frame: np.ndarray):
        # Detectors are created per call: OpenCV feature objects are not
        # safe to share between threads.
        detector = create_detector(self.detector_name, self.max_features)
        return detector.detectAndCompute(to_gray(frame), None)

    def prepare(self, fixed: np.ndarray) -> None:
        self._reference = fixed
        self._reference_features = self._features(fixed)

    def _matcher(self) -> cv2.BFMatcher:
        norm = cv2.NORM_HAMMING if self.detector_name in _BINARY_DESCRIPTORS else cv2.NORM_L2
        return cv2.BFMatcher(norm, crossCheck=True)

    def estimate_transform(self, moving: np.ndarray, fixed: np.ndarray) -> Transform:
        if fixed is self._reference and self._reference_features is not None:
            ref_kp, ref_desc = self._reference_features
        else:
            ref_kp, ref_desc = self._features(fixed)
        kp, desc = self._features(moving)

        if desc is None or ref_desc is None or len(kp) == 0 or len(ref_kp) == 0:
            raise AlignmentFailure("no keypoints detected")

        matches = self._matcher().match(desc, ref_desc)
        if len(matches) < self.min_matches:
            raise AlignmentFailure(f"only {len(matches)} matches (need {self.min_matches})")

        src = np.float32([kp[m.queryIdx].pt for m in matches]).reshape(-1, 1, 2)
        dst = np.float32([ref_kp[m.trainIdx].pt for m in matches]).reshape(-1, 1, 2)
        matrix, _ = cv2.estimateAffine2D(
            src, dst, method=cv2.RANSAC, ransacReprojThreshold=self.ransac_threshold
        )
        if matrix is None or not np.all(np.isfinite(matrix)):
            raise AlignmentFailure("affine estimate is degenerate")
        return Transform(matrix=matrix, kind="affine")


def build_aligner(config: StabilizeConfig) -> FrameAligner:
    if config.strategy == "gradient":
        return GradientCorrelationAligner(min_response=config.min_response)
    if config.strategy == "keypoint":
        return KeypointAligner(
            detector=config.detector,
            max_features=config.max_features,
            min_matches=config.min_matches,
            ransac_threshold=config.ransac_threshold,
        )
    raise ValueError(f"Unknown stabilization strategy: {config.strategy}")
