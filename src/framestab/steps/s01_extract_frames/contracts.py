"""I/O contracts for Step 01: Video to cached frames."""

from pathlib import Path

from pydantic import BaseModel, Field

from framestab.core.contracts import StepMeta, StreamMetadata


class ExtractFramesInput(BaseModel):
    video_path: Path = Field(..., description="Path to input video file")


class ExtractFramesOutput(BaseModel):
    video_path: Path = Field(..., description="Source video the frames belong to")
    frames_dir: Path = Field(..., description="Cache directory holding frame_NNNN images")
    image_format: str = Field("png", description="Image format of the cached frames")
    frame_count: int = Field(..., description="Number of frames in the frame set")
    frame_rate: float = Field(..., description="Source frame rate (or fallback)")
    cache_hit: bool = Field(..., description="True when frames were loaded from an existing cache")
    frame_list: list[str] = Field(default_factory=list, description="Frame filenames in natural order")
    metadata: StreamMetadata = Field(default_factory=StreamMetadata)
    meta: StepMeta | None = None
