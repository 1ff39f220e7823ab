"""Natural ordering of filenames with embedded frame numbers."""

from __future__ import annotations

import re
from typing import Iterable

_DIGITS = re.compile(r"\d+")


def frame_index(name: str) -> int:
    """Return the integer encoded in ``name``.

    Uses the last run of decimal digits, so ``take2_frame_0010.png`` -> 10.
    Raises ValueError when the name holds no digits.
    """
    runs = _DIGITS.findall(name)
    if not runs:
        raise ValueError(f"No frame number in filename: {name!r}")
    return int(runs[-1])


def natural_sort(names: Iterable[str]) -> list[str]:
    """Sort names by their embedded frame number (``frame_2`` before ``frame_10``).

    Stable for equal numbers. Raises ValueError if any name has no digits.
    """
    return sorted(names, key=frame_index)
