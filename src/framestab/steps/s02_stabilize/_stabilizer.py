"""Align every frame of a FrameSet to a reference frame.

The reference frame is passed through untouched. All other frames are
aligned concurrently; each task reads only its own frame and the shared
read-only reference, and writes only its own output slot. A frame whose
alignment fails is kept as-is so one bad frame never aborts the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from framestab.core.frames import FrameSet
from framestab.utils.parallel import run_parallel
from ._aligners import FrameAligner

logger = logging.getLogger(__name__)


@dataclass
class StabilizationReport:
    frame_count: int
    reference_index: int
    aligned: list[int] = field(default_factory=list)
    fallback: list[int] = field(default_factory=list)


def stabilize_with_report(
    frame_set: FrameSet,
    reference_index: int,
    aligner: FrameAligner,
    workers: int | None = None,
) -> tuple[FrameSet, StabilizationReport]:
    frame_set.validate_index(reference_index)
    frame_set.frames()  # raises on empty slots

    fixed = frame_set.get(reference_index)
    output_dims = frame_set.dimensions(reference_index)
    output = FrameSet.empty(len(frame_set))
    output.set(reference_index, fixed)

    prepare = getattr(aligner, "prepare", None)
    if prepare is not None:
        prepare(fixed)

    def _align(index: int) -> bool:
        moving = frame_set.get(index)
        try:
            estimate = aligner.estimate_transform(moving, fixed)
            aligned: np.ndarray = aligner.warp(moving, estimate, output_dims)
        except Exception as exc:
            logger.warning(f"Frame {index}: alignment failed ({exc}); keeping original frame")
            output.set(index, moving)
            return False
        output.set(index, aligned)
        return True

    indices = [i for i in frame_set.indices() if i != reference_index]
    outcomes = run_parallel(_align, indices, workers=workers)

    report = StabilizationReport(frame_count=len(frame_set), reference_index=reference_index)
    for index, ok in zip(indices, outcomes):
        (report.aligned if ok else report.fallback).append(index)

    output.frames()  # every slot is filled once the barrier has passed
    logger.info(
        f"Stabilized {len(report.aligned)}/{len(indices)} frames to reference {reference_index}"
        + (f", {len(report.fallback)} kept unaligned" if report.fallback else "")
    )
    return output, report


def stabilize(
    frame_set: FrameSet,
    reference_index: int,
    aligner: FrameAligner,
    workers: int | None = None,
) -> FrameSet:
    """Return a new FrameSet with every frame aligned to ``reference_index``."""
    output, _ = stabilize_with_report(frame_set, reference_index, aligner, workers=workers)
    return output
