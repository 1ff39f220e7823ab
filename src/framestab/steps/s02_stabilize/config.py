"""Configuration for Step 02: Align frames to a reference and encode."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from framestab.steps.s01_extract_frames.config import ExtractFramesConfig


class StabilizeConfig(BaseModel):
    strategy: Literal["gradient", "keypoint"] = Field(
        "gradient", description="gradient = correlation translation, keypoint = feature-matched affine"
    )
    reference_index: int = Field(1, ge=1, description="1-based index of the reference frame")
    frame_rate: float | None = Field(None, gt=0, description="Output frame rate (None = source rate)")
    output_dir: Path = Field(Path("output"), description="Output folder (relative to data_root)")
    container_format: Literal["mp4", "avi"] = Field("mp4", description="Output container")
    workers: int | None = Field(None, ge=1, description="Alignment threads (None = one per CPU)")

    # Gradient correlation
    min_response: float = Field(0.01, ge=0, description="Minimum phase-correlation peak response")

    # Keypoint matching
    detector: Literal["ORB", "SIFT", "SURF", "AKAZE"] = Field("ORB", description="Keypoint detector")
    max_features: int = Field(2000, ge=10, description="Maximum keypoints per frame")
    min_matches: int = Field(3, ge=3, description="Minimum matched points for an affine estimate")
    ransac_threshold: float = Field(3.0, gt=0, description="RANSAC reprojection threshold (px)")

    # Frame cache settings for standalone runs; in a pipeline the cache
    # location and format come from the extract_frames output.
    extract: ExtractFramesConfig = Field(default_factory=ExtractFramesConfig)
