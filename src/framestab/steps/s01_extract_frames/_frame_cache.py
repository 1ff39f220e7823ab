"""Decode-once frame cache keyed by video stem.

Layout: ``<cache_root>/<video stem>/frame_NNNN.<ext>`` with 1-based,
zero-padded frame numbers. A directory that exists is trusted only if it
holds at least one frame file and every frame filename carries a unique
number; anything else is a CacheCorruptError, never a silent re-decode.
Other entries in the directory and gaps in the numbering are tolerated
but logged: the frame set is the numbered files in order, nothing more.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

import cv2

from framestab.core.contracts import DEFAULT_FRAME_RATE, StreamMetadata, VideoSource
from framestab.core.errors import CacheCorruptError, FrameRateUnavailable, SourceUnreadableError
from framestab.core.frames import FrameSet
from framestab.utils.natural_sort import frame_index, natural_sort

from .config import ExtractFramesConfig
from ._decoder import VideoDecoder
from ._frame_writer import ParallelFrameWriter

logger = logging.getLogger(__name__)


class FrameCache:
    """Map a VideoSource to its FrameSet, decoding at most once."""

    def __init__(
        self,
        cache_root: Path,
        image_format: str = "png",
        index_width: int = 4,
        workers: int | None = None,
        default_frame_rate: float = DEFAULT_FRAME_RATE,
        decoder: VideoDecoder | None = None,
    ):
        self.cache_root = Path(cache_root)
        self.image_format = image_format.lstrip(".").lower()
        self.default_frame_rate = default_frame_rate
        self.decoder = decoder or VideoDecoder()
        self.writer = ParallelFrameWriter(
            workers=workers, image_format=self.image_format, index_width=index_width
        )

    @classmethod
    def from_config(
        cls, config: ExtractFramesConfig, data_root: Path, decoder: VideoDecoder | None = None
    ) -> FrameCache:
        return cls(
            cache_root=Path(data_root) / config.cache_dirname,
            image_format=config.image_format,
            index_width=config.index_width,
            workers=config.workers,
            default_frame_rate=config.default_frame_rate,
            decoder=decoder,
        )

    def directory_for(self, source: VideoSource) -> Path:
        return self.cache_root / source.name

    def frame_files(self, directory: Path) -> list[Path]:
        """Frame files of ``directory`` in natural order (validated)."""
        names = [p.name for p in directory.glob(f"frame_*.{self.image_format}") if p.is_file()]
        if not names:
            raise CacheCorruptError(directory, f"contains no frame_*.{self.image_format} files")
        try:
            ordered = natural_sort(names)
        except ValueError as exc:
            raise CacheCorruptError(directory, str(exc)) from exc

        indices = [frame_index(n) for n in ordered]
        if len(set(indices)) != len(indices):
            raise CacheCorruptError(directory, "duplicate frame numbers")

        known = set(names)
        strays = sorted(p.name for p in directory.iterdir() if p.name not in known)
        if strays:
            logger.warning(f"Ignoring {len(strays)} non-frame entries in {directory}: {strays[:5]}")
        missing = sorted(set(range(indices[0], indices[-1] + 1)) - set(indices))
        if missing:
            logger.warning(
                f"Frame numbers in {directory} skip {len(missing)} numbers (first missing: {missing[:5]}); "
                f"loading {len(indices)} frames in order"
            )
        return [directory / n for n in ordered]

    def is_cached(self, source: VideoSource) -> bool:
        return self.directory_for(source).is_dir()

    def invalidate(self, source: VideoSource) -> bool:
        """Remove the cache directory of ``source``. Returns True if one existed."""
        directory = self.directory_for(source)
        if not directory.exists():
            return False
        logger.info(f"Removing frame cache {directory}")
        shutil.rmtree(directory)
        return True

    def resolve(self, source: VideoSource) -> tuple[FrameSet, StreamMetadata]:
        directory = self.directory_for(source)
        if directory.exists():
            return self._load(source, directory)
        return self._decode_and_store(source, directory)

    def inspect(self, source: VideoSource) -> tuple[list[Path], StreamMetadata]:
        """Make sure ``source`` is cached and list its frame files.

        Unlike ``resolve`` a cache hit loads no image; a miss decodes and
        stores exactly as ``resolve`` would.
        """
        directory = self.directory_for(source)
        if directory.exists():
            if not directory.is_dir():
                raise CacheCorruptError(directory, "is not a directory")
            files = self.frame_files(directory)
            logger.info(f"Frame folder already exists: {directory} ({len(files)} frames)")
            return files, self._cached_metadata(source, len(files))
        _, metadata = self._decode_and_store(source, directory)
        return self.frame_files(directory), metadata

    def _cached_metadata(self, source: VideoSource, frame_count: int) -> StreamMetadata:
        metadata = StreamMetadata(actual_frames=frame_count, from_cache=True)
        try:
            metadata.frame_rate = self.decoder.probe_frame_rate(source.path)
            logger.info(f"Frame rate from original video: {metadata.frame_rate:.2f} fps")
        except (SourceUnreadableError, FrameRateUnavailable) as exc:
            metadata.frame_rate = self.default_frame_rate
            metadata.frame_rate_fallback = True
            logger.warning(f"{exc}; using default frame rate: {metadata.frame_rate:.2f} fps")
        return metadata

    def _load(self, source: VideoSource, directory: Path) -> tuple[FrameSet, StreamMetadata]:
        logger.info(f"Frame folder already exists. Loading frames from {directory}")
        if not directory.is_dir():
            raise CacheCorruptError(directory, "is not a directory")

        files = self.frame_files(directory)
        frames = []
        for path in files:
            frame = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
            if frame is None:
                raise CacheCorruptError(directory, f"cannot read {path.name}")
            frames.append(frame)

        metadata = self._cached_metadata(source, len(frames))
        logger.info(f"Loaded {len(frames)} cached frames for '{source.name}'")
        return FrameSet.from_frames(frames), metadata

    def _decode_and_store(self, source: VideoSource, directory: Path) -> tuple[FrameSet, StreamMetadata]:
        logger.info(f"Reading video and extracting frames from {source.path}")
        frame_set, metadata = self.decoder.decode(source)

        # Frames land in a private staging directory that is renamed into
        # place only once complete, so a partial cache is never visible.
        self.cache_root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{source.name}-", dir=self.cache_root))
        try:
            self.writer.write_all(frame_set, staging)
            staging.rename(directory)
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            if not directory.is_dir():
                raise
            logger.info(f"Frame cache {directory} was created concurrently; keeping it")
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info(f"Frames saved in {directory}")
        return frame_set, metadata
