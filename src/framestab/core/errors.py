"""Exception taxonomy for the framestab pipeline.

Fatal errors abort the whole invocation and carry the offending path.
Non-fatal conditions (``AlignmentFailure``, ``FrameRateUnavailable``) are
contained to a single frame or metadata field by their callers.
"""

from __future__ import annotations

from pathlib import Path


class FramestabError(Exception):
    """Base class for all framestab errors."""


class SourceUnreadableError(FramestabError):
    """The source video cannot be opened or yields no frames."""

    def __init__(self, path: Path | str, reason: str = "cannot be opened"):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Video source {self.path} {reason}")


class CacheCorruptError(FramestabError):
    """A cache directory exists but its contents cannot be trusted."""

    def __init__(self, directory: Path | str, reason: str):
        self.directory = Path(directory)
        self.reason = reason
        super().__init__(f"Frame cache {self.directory} is corrupt: {reason}")


class AlignmentFailure(FramestabError):
    """A frame aligner could not produce a usable transform (non-fatal)."""


class FrameRateUnavailable(FramestabError):
    """The source frame rate could not be re-queried (non-fatal)."""


class DecoderExhaustedError(FramestabError):
    """``next`` was called on a decoder handle with no frames left."""


class FrameWriteError(FramestabError):
    """One or more frames could not be written to the cache directory."""

    def __init__(self, directory: Path | str, indices: list[int]):
        self.directory = Path(directory)
        self.indices = sorted(indices)
        super().__init__(f"Failed to write frames {self.indices} to {self.directory}")


class EncoderError(FramestabError):
    """The output video container could not be opened for writing."""


class IncompleteFrameSetError(FramestabError):
    """A frame set was consumed before every slot had been filled."""
