"""I/O contracts for Step 02: Stabilize."""

from pathlib import Path

from pydantic import BaseModel, Field

from framestab.core.contracts import StepMeta


class StabilizeInput(BaseModel):
    video_path: Path = Field(..., description="Path to input video file")
    input_folder: Path | None = Field(
        None, description="Folder whose last component names the output video (default: video stem)"
    )
    frames_dir: Path | None = Field(
        None, description="Frame cache directory written by extract_frames (default: from config.extract)"
    )
    image_format: str | None = Field(None, description="Image format of frames_dir (default: config.extract)")


class StabilizeOutput(BaseModel):
    output_path: Path = Field(..., description="Path of the stabilized video")
    strategy: str = Field(..., description="Strategy tag used in the output name")
    frame_count: int = Field(..., description="Frames written to the output video")
    reference_index: int = Field(..., description="1-based reference frame index")
    frame_rate: float = Field(..., description="Output frame rate")
    cache_hit: bool = Field(..., description="True when frames came from the frame cache")
    aligned_frames: int = Field(0, description="Frames warped onto the reference")
    fallback_frames: list[int] = Field(
        default_factory=list, description="Indices kept unaligned after an alignment failure"
    )
    meta: StepMeta | None = None
