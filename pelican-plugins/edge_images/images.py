"""Turn one image reference into edge URLs, srcset and sizes."""
from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote, unquote, urlsplit

from .args import TransformArgs, merge_args
from .cache import ImageCache
from .dimensions import (
    DimensionResolver,
    ImageDimensions,
    ImageRef,
    LocalImageStore,
    RequestedSize,
    SizeRegistry,
    constrain as constrain_to,
    is_external,
    strip_site_markers,
)
from .providers import EdgeProvider, ProviderRegistry
from .settings import EdgeImagesSettings
from .srcset import default_sizes, generate, srcset_string

logger = logging.getLogger(__name__)

_SIZE_SUFFIX = re.compile(r'-\d+x\d+(?=\.[a-z0-9]{3,4}$)', re.IGNORECASE)


def is_svg(src: str) -> bool:
    return urlsplit(src).path.lower().endswith('.svg')


@dataclass(frozen=True)
class EdgeImage:
    """Attribute values for one rendered ``<img>``."""

    src: str
    width: int
    height: int
    srcset: str = ''
    sizes: str = ''
    transformed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'EdgeImage':
        return cls(**data)


class EdgeImages:
    """Everything needed to transform images for one site configuration."""

    def __init__(
        self,
        settings: EdgeImagesSettings,
        registry: Optional[ProviderRegistry] = None,
        resolver: Optional[DimensionResolver] = None,
        cache: Optional[ImageCache] = None,
    ):
        self.settings = settings
        self.registry = registry or ProviderRegistry(settings)
        self.store = LocalImageStore(settings.content_path)
        self.resolver = resolver or DimensionResolver(SizeRegistry(settings.sizes), self.store)
        if cache is None:
            cache = ImageCache(settings.cache_path or None, settings.cache_ttl, settings.fingerprint())
        self.cache = cache

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> 'EdgeImages':
        return cls(EdgeImagesSettings.from_settings(settings))

    @property
    def provider(self) -> EdgeProvider:
        return self.registry.active

    @property
    def enabled(self) -> bool:
        provider = self.provider
        return not self.settings.disabled and provider.slug != EdgeProvider.slug and provider.is_configured

    def transform_args(self, overrides: Optional[Mapping[str, Any]] = None) -> TransformArgs:
        """Provider defaults < site defaults < per-image overrides."""
        return merge_args(self.provider.default_args, self.settings.defaults, overrides)

    def image_path(self, src: str, source_path: Optional[str] = None) -> Optional[str]:
        """Site-rooted path of the full-size original behind *src*, or ``None`` for foreign images.

        A src that maps to a file in the content tree gets that file's path,
        so the URL always points at the image the dimensions were read from.
        """
        src = strip_site_markers(src)
        if not src:
            return None

        original = self.registry.original_path(src)
        if original:
            src = original

        if is_external(src):
            site_host = urlsplit(self.settings.domain).netloc
            parts = urlsplit(src if not src.startswith('//') else f'https:{src}')
            if not site_host or parts.netloc != site_host:
                return None
            path = parts.path
        else:
            path = urlsplit(src).path

        path = self.store.site_path(path, source_path) or path
        trimmed = path.lstrip('/')
        while trimmed.startswith(('../', './')):
            trimmed = trimmed.split('/', 1)[1]
        if not trimmed:
            return None

        path = quote(posixpath.normpath(f'/{unquote(trimmed)}'), safe='/:%@!$&\'()*+,;=')
        return self._full_size(path)

    def _full_size(self, path: str) -> str:
        stripped = _SIZE_SUFFIX.sub('', path)
        if stripped != path and self.store.locate(stripped) is not None:
            return stripped
        return path

    def transform(
        self,
        src: str,
        width: Any = None,
        height: Any = None,
        size: RequestedSize = None,
        overrides: Optional[Mapping[str, Any]] = None,
        constrain: bool = True,
        sizes: Optional[str] = None,
        source_path: Optional[str] = None,
    ) -> Optional[EdgeImage]:
        """Return new attribute values for the image, or ``None`` to leave it alone."""
        if self.settings.disabled:
            return None

        path = self.image_path(src, source_path)
        if path is None:
            logger.debug('Skipping foreign image %s', src)
            return None

        # Relative srcs resolve against the source file; everything else by site path.
        rooted = self.registry.is_transformed(src) or is_external(strip_site_markers(src))
        lookup = path if rooted else src
        dimensions = self.resolver.resolve(ImageRef(lookup, width, height, source_path), size)
        if dimensions is None:
            logger.debug('No dimensions for %s; leaving it untouched', src)
            return None

        if constrain:
            dimensions = constrain_to(dimensions, self.settings.max_width)

        if is_svg(path) or not self.enabled:
            return EdgeImage(src, dimensions.width, dimensions.height)

        args = self.transform_args(overrides)
        cache_args = {'args': args, 'sizes': sizes or ''}
        cached = self.cache.get(path, (dimensions.width, dimensions.height), cache_args)
        if cached:
            return EdgeImage.from_dict(cached)

        image = self._build(path, dimensions, args, sizes)
        self.cache.set(path, (dimensions.width, dimensions.height), cache_args, image.to_dict())
        return image

    def _build(self, path: str, dimensions: ImageDimensions, args: TransformArgs, sizes: Optional[str]) -> EdgeImage:
        provider = self.provider
        primary = provider.build(path, merge_args(args, {'width': dimensions.width, 'height': dimensions.height}))
        entries = generate(
            dimensions,
            provider,
            path,
            args,
            min_width=self.settings.min_srcset_width,
            max_width=self.settings.max_srcset_width,
            max_gap=self.settings.max_width_gap,
        )
        srcset = srcset_string(entries)
        return EdgeImage(
            src=primary,
            width=dimensions.width,
            height=dimensions.height,
            srcset=srcset,
            sizes=(sizes or default_sizes(dimensions.width)) if srcset else '',
            transformed=True,
        )

    def purge(self, src: str, source_path: Optional[str] = None) -> None:
        """Forget cached results and measured dimensions for one image."""
        path = self.image_path(src, source_path)
        if path is None:
            return
        self.cache.purge_image(path)
        self.store.forget(path)

    def close(self) -> None:
        self.cache.close()
