"""Breakpoint selection and ``srcset``/``sizes`` rendering.

Widths are derived from the image's own width rather than a fixed ladder:

    multipliers 0.25 .. 2.5  ->  bounded to [min, max]  ->  + 300w and the
    original width  ->  sorted, unique  ->  gaps wider than max_gap split evenly

Every candidate keeps the original aspect ratio. A lone candidate is requested
at ``dpr=2`` so high-density screens still get a sharper file.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .args import TransformArgs, merge_args
from .dimensions import ImageDimensions, round_half_up
from .providers import EdgeProvider

WIDTH_MULTIPLIERS = (0.25, 0.5, 1, 1.5, 2, 2.5)
MIN_SRCSET_WIDTH = 300
MAX_SRCSET_WIDTH = 2400
MAX_WIDTH_GAP = 200
SMALL_BREAKPOINT = 300

_CANDIDATE = re.compile(r'^(?P<url>\S+)(?:\s+(?P<descriptor>\d+(?:\.\d+)?[wx]))?$', re.IGNORECASE)


@dataclass(frozen=True)
class SrcsetEntry:
    width: int
    height: int
    url: str

    @property
    def descriptor(self) -> str:
        return f'{self.url} {self.width}w'


def fill_gaps(widths: Sequence[int], max_gap: int) -> List[int]:
    """Insert evenly spaced widths so no two neighbours are more than *max_gap* apart."""
    if max_gap <= 0:
        return list(widths)

    filled: List[int] = []
    for lower, upper in zip(widths, widths[1:]):
        filled.append(lower)
        gap = upper - lower
        if gap > max_gap:
            steps = math.ceil(gap / max_gap)
            filled.extend(lower + round_half_up(gap * step / steps) for step in range(1, steps))
    if widths:
        filled.append(widths[-1])
    return sorted(set(filled))


def candidate_widths(
    original_width: int,
    min_width: int = MIN_SRCSET_WIDTH,
    max_width: int = MAX_SRCSET_WIDTH,
    max_gap: int = MAX_WIDTH_GAP,
) -> List[int]:
    widths = {
        width
        for width in (round_half_up(original_width * m) for m in WIDTH_MULTIPLIERS)
        if min_width <= width <= max_width
    }
    pinned = {original_width}
    if original_width >= SMALL_BREAKPOINT / 2:
        pinned.add(SMALL_BREAKPOINT)
    widths |= pinned

    # The original and the 300w breakpoint stay even out of bounds; gap filling never goes past them.
    return [
        width
        for width in fill_gaps(sorted(widths), max_gap)
        if min_width <= width <= max_width or width in pinned
    ]


def generate(
    original: Optional[ImageDimensions],
    provider: EdgeProvider,
    path: str,
    args: Optional[TransformArgs] = None,
    min_width: int = MIN_SRCSET_WIDTH,
    max_width: int = MAX_SRCSET_WIDTH,
    max_gap: int = MAX_WIDTH_GAP,
) -> List[SrcsetEntry]:
    """Return one entry per breakpoint for the image at *path*, smallest first."""
    if original is None or original.width <= 0 or original.height <= 0:
        return []

    widths = candidate_widths(original.width, min_width, max_width, max_gap)
    base_args = dict(args or {})
    if len(widths) == 1:
        base_args['dpr'] = 2

    entries = []
    for width in widths:
        height = original.height_for(width)
        entry_args = merge_args(base_args, {'width': width, 'height': height})
        entries.append(SrcsetEntry(width, height, provider.build(path, entry_args)))
    return entries


def srcset_string(entries: Sequence[SrcsetEntry]) -> str:
    return ', '.join(entry.descriptor for entry in entries)


def default_sizes(width: int) -> str:
    return f'(max-width: {width}px) 100vw, {width}px'


def parse_srcset(value: str) -> List[Tuple[str, Optional[str]]]:
    """Split a srcset attribute into ``(url, descriptor)`` pairs.

    URLs may themselves contain commas (``auto=format,compress``), so
    candidates are split on a comma followed by whitespace.
    """
    candidates = []
    for chunk in re.split(r',\s+', value.strip()):
        chunk = chunk.strip().rstrip(',')
        if not chunk:
            continue
        match = _CANDIDATE.match(chunk)
        if match:
            candidates.append((match.group('url'), match.group('descriptor')))
        else:
            candidates.append((chunk, None))
    return candidates
