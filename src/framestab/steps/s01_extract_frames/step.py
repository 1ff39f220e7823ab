"""Step 01: Decode a video into the frame cache (or reuse an existing cache)."""

from __future__ import annotations

import logging
from typing import ClassVar

from framestab.core.contracts import VideoSource
from framestab.core.step_base import BaseStep
from .config import ExtractFramesConfig
from .contracts import ExtractFramesInput, ExtractFramesOutput
from ._frame_cache import FrameCache

logger = logging.getLogger(__name__)


class ExtractFramesStep(BaseStep[ExtractFramesInput, ExtractFramesOutput, ExtractFramesConfig]):
    name: ClassVar[str] = "extract_frames"
    input_type: ClassVar = ExtractFramesInput
    output_type: ClassVar = ExtractFramesOutput
    config_type: ClassVar = ExtractFramesConfig

    def build_cache(self) -> FrameCache:
        return FrameCache.from_config(self.config, self.data_root)

    def validate_inputs(self, inputs: ExtractFramesInput) -> bool:
        source = VideoSource(path=inputs.video_path)
        if inputs.video_path.exists():
            return True
        if not self.config.refresh and self.build_cache().is_cached(source):
            logger.warning(f"Video not found: {inputs.video_path}, relying on cached frames")
            return True
        logger.error(f"Video not found: {inputs.video_path}")
        return False

    def run(self, inputs: ExtractFramesInput) -> ExtractFramesOutput:
        cache = self.build_cache()
        source = VideoSource(path=inputs.video_path)
        if self.config.refresh:
            cache.invalidate(source)

        # Only the file listing is needed here; frames are loaded by the consumer.
        files, metadata = cache.inspect(source)

        logger.info(
            f"{len(files)} frames for '{source.name}' "
            f"({'cache hit' if metadata.from_cache else 'decoded'}) at {metadata.frame_rate:.2f} fps"
        )
        return ExtractFramesOutput(
            video_path=inputs.video_path,
            frames_dir=cache.directory_for(source),
            image_format=cache.image_format,
            frame_count=len(files),
            frame_rate=metadata.frame_rate,
            cache_hit=metadata.from_cache,
            frame_list=[p.name for p in files],
            metadata=metadata,
        )
