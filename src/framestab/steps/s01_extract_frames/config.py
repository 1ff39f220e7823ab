"""Configuration for Step 01: Video to cached frames."""

from pydantic import BaseModel, Field

from framestab.core.contracts import DEFAULT_FRAME_RATE


class ExtractFramesConfig(BaseModel):
    cache_dirname: str = Field("Extracted_Frames", description="Cache root, relative to data_root")
    image_format: str = Field("png", description="Frame image format (lossless recommended)")
    index_width: int = Field(4, ge=4, description="Minimum zero-padding of frame numbers")
    workers: int | None = Field(None, ge=1, description="Writer threads (None = one per CPU)")
    default_frame_rate: float = Field(
        DEFAULT_FRAME_RATE, gt=0, description="Frame rate used when the source cannot be re-queried"
    )
    refresh: bool = Field(False, description="Discard an existing cache directory before resolving")
