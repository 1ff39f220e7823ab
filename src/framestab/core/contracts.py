"""Common Pydantic models shared across pipeline steps."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_FRAME_RATE = 30.0


class StepMeta(BaseModel):
    """Metadata attached to every step output for reproducibility."""

    step_name: str
    elapsed_seconds: float = 0.0
    params: dict[str, Any] = Field(default_factory=dict)


class VideoSource(BaseModel):
    """Identity of an input video. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    path: Path

    @computed_field
    @property
    def name(self) -> str:
        return self.path.stem


class StreamMetadata(BaseModel):
    """Basic stream properties of a decoded (or cached) video.

    Width, height and duration are only known when the video was actually
    decoded; a cache load leaves them unset.
    """

    width: int | None = None
    height: int | None = None
    duration: float | None = None
    frame_rate: float = DEFAULT_FRAME_RATE
    estimated_frames: int | None = Field(None, description="floor(duration * frame_rate), capacity hint only")
    actual_frames: int = 0
    from_cache: bool = False
    frame_rate_fallback: bool = Field(False, description="True when frame_rate is the default fallback")


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration loaded from pipeline.yaml."""

    project_name: str = "framestab_project"
    data_root: Path = Path("./data")
    steps: list[StepEntry] = Field(default_factory=list)


class StepEntry(BaseModel):
    """One entry in the pipeline step list."""

    name: str
    module: str
    config_file: str
    depends_on: list[str] = Field(default_factory=list)
    inputs: dict[str, Any] = Field(default_factory=dict, description="Literal step inputs")
    enabled: bool = True


# Fix forward reference
PipelineConfig.model_rebuild()
