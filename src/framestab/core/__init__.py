"""framestab core: pipeline runner, base step, shared contracts, errors."""

from .step_base import BaseStep
from .contracts import PipelineConfig, StepEntry, StepMeta, StreamMetadata, VideoSource
from .errors import (
    AlignmentFailure,
    CacheCorruptError,
    FramestabError,
    FrameRateUnavailable,
    SourceUnreadableError,
)
from .frames import FrameSet
from .pipeline_runner import run_pipeline, load_pipeline_config
from .logging import setup_logging

__all__ = [
    "BaseStep",
    "PipelineConfig",
    "StepEntry",
    "StepMeta",
    "StreamMetadata",
    "VideoSource",
    "FrameSet",
    "FramestabError",
    "SourceUnreadableError",
    "CacheCorruptError",
    "AlignmentFailure",
    "FrameRateUnavailable",
    "run_pipeline",
    "load_pipeline_config",
    "setup_logging",
]
