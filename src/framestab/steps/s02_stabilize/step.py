"""Step 02: Align all frames to a reference frame and encode the result."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from framestab.core.contracts import VideoSource
from framestab.core.step_base import BaseStep
from framestab.steps.s01_extract_frames._frame_cache import FrameCache
from .config import StabilizeConfig
from .contracts import StabilizeInput, StabilizeOutput
from ._aligners import build_aligner
from ._encoder import output_video_name, write_video
from ._stabilizer import stabilize_with_report

logger = logging.getLogger(__name__)


class StabilizeStep(BaseStep[StabilizeInput, StabilizeOutput, StabilizeConfig]):
    name: ClassVar[str] = "stabilize"
    input_type: ClassVar = StabilizeInput
    output_type: ClassVar = StabilizeOutput
    config_type: ClassVar = StabilizeConfig

    def build_cache(self, inputs: StabilizeInput | None = None) -> FrameCache:
        """The cache named by ``inputs.frames_dir`` if given, else the one ``config.extract`` describes."""
        extract = self.config.extract
        if inputs is None or inputs.frames_dir is None:
            return FrameCache.from_config(extract, self.data_root)
        return FrameCache(
            cache_root=inputs.frames_dir.parent,
            image_format=inputs.image_format or extract.image_format,
            index_width=extract.index_width,
            workers=extract.workers,
            default_frame_rate=extract.default_frame_rate,
        )

    def output_dir(self) -> Path:
        out = self.config.output_dir
        return out if out.is_absolute() else self.data_root / out

    def validate_inputs(self, inputs: StabilizeInput) -> bool:
        source = VideoSource(path=inputs.video_path)
        if inputs.frames_dir is not None and inputs.frames_dir.name != source.name:
            logger.error(f"Frame cache {inputs.frames_dir} does not belong to '{source.name}'")
            return False
        if inputs.video_path.exists():
            return True
        if not self.config.extract.refresh and self.build_cache(inputs).is_cached(source):
            logger.warning(f"Video not found: {inputs.video_path}, relying on cached frames")
            return True
        logger.error(f"Video not found: {inputs.video_path}")
        return False

    def run(self, inputs: StabilizeInput) -> StabilizeOutput:
        source = VideoSource(path=inputs.video_path)
        cache = self.build_cache(inputs)
        if inputs.frames_dir is None and self.config.extract.refresh:
            cache.invalidate(source)
        frame_set, metadata = cache.resolve(source)

        reference_index = self.config.reference_index
        if reference_index > len(frame_set):
            raise ValueError(
                f"Reference frame {reference_index} out of range: '{source.name}' has {len(frame_set)} frames"
            )

        aligner = build_aligner(self.config)
        logger.info(f"Aligning {len(frame_set)} frames to frame {reference_index} ({aligner.tag})")
        stabilized, report = stabilize_with_report(
            frame_set, reference_index, aligner, workers=self.config.workers
        )

        frame_rate = self.config.frame_rate or metadata.frame_rate
        name_source = inputs.input_folder if inputs.input_folder is not None else source.name
        output_path = self.output_dir() / output_video_name(
            name_source, aligner.tag, self.config.container_format
        )
        written = write_video(
            output_path,
            stabilized.frames(),
            frame_rate=frame_rate,
            container_format=self.config.container_format,
            frame_dims=frame_set.dimensions(reference_index),
        )

        return StabilizeOutput(
            output_path=output_path,
            strategy=aligner.tag,
            frame_count=written,
            reference_index=reference_index,
            frame_rate=frame_rate,
            cache_hit=metadata.from_cache,
            aligned_frames=len(report.aligned),
            fallback_frames=report.fallback,
        )
