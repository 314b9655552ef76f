"""Resolve the pixel dimensions an image should be rendered at.

Sources are tried in order and the first one that yields both a width and a
height wins:

1. ``width``/``height`` already present on the ``<img>`` element;
2. a requested ``(width, height)`` pair;
3. a named size registered in ``EDGE_IMAGES_SIZES`` (``size-large`` class);
4. the dimensions of the file itself, read with Pillow.

Nothing is guessed: when no source answers, the image is left alone.
"""
from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import unquote, urlsplit

import pillow_heif  # type: ignore
from PIL import Image  # type: ignore

pillow_heif.register_heif_opener()  # pragma: no cover - registration has no return

logger = logging.getLogger(__name__)

RequestedSize = Union[str, Sequence[int], None]

# Pelican intra-site link markers that may prefix a src.
_SITE_MARKERS = re.compile(r'^(?:\{(?:static|attach|filename)\}|\|(?:static|attach|filename)\|)')
_NUMBER = re.compile(r'^\s*(\d+)(?:\.\d+)?\s*(?:px)?\s*$', re.IGNORECASE)


def round_half_up(value: float) -> int:
    """Round like PHP/JS do (0.5 goes up), not banker's rounding."""
    return int(math.floor(value + 0.5))


def to_int(value: Any) -> Optional[int]:
    """Parse ``640``, ``'640'`` or ``'640px'``; anything else is ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _NUMBER.match(str(value))
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class ImageDimensions:
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f'dimensions must be positive, got {self.width}x{self.height}')

    @classmethod
    def from_values(cls, width: Any, height: Any) -> Optional['ImageDimensions']:
        width, height = to_int(width), to_int(height)
        if not width or not height or width <= 0 or height <= 0:
            return None
        return cls(width, height)

    @property
    def ratio(self) -> float:
        return self.height / self.width

    def height_for(self, width: int) -> int:
        return max(1, round_half_up(width * self.height / self.width))

    def scale_to_width(self, width: int) -> 'ImageDimensions':
        return ImageDimensions(width, self.height_for(width))

    def as_size(self) -> str:
        return f'{self.width}x{self.height}'


def constrain(dimensions: ImageDimensions, max_content_width: Optional[int]) -> ImageDimensions:
    """Scale *dimensions* down so the width does not exceed *max_content_width*."""
    if not max_content_width or dimensions.width <= max_content_width:
        return dimensions
    return dimensions.scale_to_width(max_content_width)


def is_external(src: str) -> bool:
    return src.startswith(('http://', 'https://', '//'))


def strip_site_markers(src: str) -> str:
    return _SITE_MARKERS.sub('', src.strip())


class SizeRegistry:
    """Named image sizes (``thumbnail``, ``large``...) and their dimensions."""

    def __init__(self, sizes: Optional[Mapping[str, Tuple[int, int]]] = None):
        self._sizes: Dict[str, ImageDimensions] = {}
        for name, (width, height) in (sizes or {}).items():
            dimensions = ImageDimensions.from_values(width, height)
            if dimensions:
                self._sizes[name.lower()] = dimensions

    def get(self, name: str) -> Optional[ImageDimensions]:
        return self._sizes.get(str(name).lower())

    def names(self) -> List[str]:
        return list(self._sizes)

    def __contains__(self, name: object) -> bool:
        return str(name).lower() in self._sizes


class LocalImageStore:
    """Look up the recorded dimensions of images inside the Pelican content tree."""

    def __init__(self, content_path: Union[str, Path] = 'content'):
        self.content_path = Path(content_path)
        self._measured: Dict[Tuple[str, int], Optional[ImageDimensions]] = {}

    def locate(self, src: str, source_path: Optional[str] = None) -> Optional[Path]:
        path = unquote(urlsplit(strip_site_markers(src)).path)
        if not path or is_external(src):
            return None

        candidates: List[Path] = []
        if not path.startswith('/') and source_path:
            candidates.append(Path(source_path).parent.joinpath(path).resolve())

        trimmed = path.lstrip('/')
        while trimmed.startswith(('../', './')):
            trimmed = trimmed.split('/', 1)[1]
        candidates.append(self.content_path / trimmed)
        if not trimmed.startswith('media/'):
            candidates.append(self.content_path / 'media' / trimmed)

        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def site_path(self, src: str, source_path: Optional[str] = None) -> Optional[str]:
        """Path of the file *src* resolves to, relative to the content root."""
        local_path = self.locate(src, source_path)
        if local_path is None:
            return None
        try:
            relative = local_path.resolve().relative_to(self.content_path.resolve())
        except ValueError:
            return None
        return '/' + relative.as_posix()

    def get_dimensions(self, src: str, source_path: Optional[str] = None) -> Optional[ImageDimensions]:
        local_path = self.locate(src, source_path)
        if local_path is None:
            return None

        try:
            key = (str(local_path.resolve()), os.stat(local_path).st_mtime_ns)
        except OSError:
            return None
        if key not in self._measured:
            self._measured[key] = self._measure(local_path)
        return self._measured[key]

    def forget(self, src: str, source_path: Optional[str] = None) -> None:
        local_path = self.locate(src, source_path)
        if local_path is None:
            return
        resolved = str(local_path.resolve())
        for key in [key for key in self._measured if key[0] == resolved]:
            del self._measured[key]

    @staticmethod
    def _measure(local_path: Path) -> Optional[ImageDimensions]:
        try:
            with Image.open(local_path) as image:
                width, height = image.size
        except OSError as exc:
            logger.debug('Could not read dimensions of %s: %s', local_path, exc)
            return None
        return ImageDimensions.from_values(width, height)


@dataclass
class ImageRef:
    """An image as found in content: its src plus whatever the markup says."""

    src: str
    width: Any = None
    height: Any = None
    source_path: Optional[str] = None


class DimensionResolver:
    def __init__(self, sizes: SizeRegistry, store: Optional[LocalImageStore] = None):
        self.sizes = sizes
        self.store = store

    def resolve(self, ref: ImageRef, requested_size: RequestedSize = None) -> Optional[ImageDimensions]:
        explicit = ImageDimensions.from_values(ref.width, ref.height)
        if explicit:
            return explicit

        if requested_size is not None and not isinstance(requested_size, str):
            try:
                width, height = requested_size
            except (TypeError, ValueError):
                width = height = None
            pair = ImageDimensions.from_values(width, height)
            if pair:
                return pair

        if isinstance(requested_size, str) and requested_size:
            named = self.sizes.get(requested_size)
            if named:
                return named

        recorded = self.store.get_dimensions(ref.src, ref.source_path) if self.store else None
        if recorded is None:
            return None

        # A lone explicit width keeps the file's aspect ratio.
        width = to_int(ref.width)
        if width and width > 0 and to_int(ref.height) is None:
            return recorded.scale_to_width(width)
        return recorded
