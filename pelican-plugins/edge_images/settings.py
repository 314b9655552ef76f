"""Plugin configuration read from Pelican settings.

All options are optional; add any of them to ``pelicanconf.py``::

    EDGE_IMAGES_PROVIDER = 'cloudflare'       # none, cloudflare, accelerated_domains, bunny, imgix, imgproxy
    EDGE_IMAGES_DOMAIN = 'https://eloise.rip'  # defaults to SITEURL unless RELATIVE_URLS
    EDGE_IMAGES_MAX_WIDTH = 800                # content width ceiling
    EDGE_IMAGES_MIN_SRCSET_WIDTH = 300
    EDGE_IMAGES_MAX_SRCSET_WIDTH = 2400
    EDGE_IMAGES_MAX_WIDTH_GAP = 200
    EDGE_IMAGES_DEFAULTS = {'quality': 85}     # site-wide transform args
    EDGE_IMAGES_SIZES = {'large': (1024, 1024)}
    EDGE_IMAGES_BUNNY_SUBDOMAIN = ''
    EDGE_IMAGES_IMGIX_SUBDOMAIN = ''
    EDGE_IMAGES_IMGPROXY_URL = ''
    EDGE_IMAGES_PICTURE_WRAP = False
    EDGE_IMAGES_DISABLE = False
    EDGE_IMAGES_CACHE_TTL = 86400
    EDGE_IMAGES_CACHE_PATH = None             # defaults to CACHE_PATH/edge_images; '' for a temporary cache
    EDGE_IMAGES_LAZY_LOADING = True           # add loading="lazy" decoding="async" unless set

Invalid values are logged and replaced by their defaults.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = 'none'
DEFAULT_MAX_WIDTH = 800
DEFAULT_MIN_SRCSET_WIDTH = 300
DEFAULT_MAX_SRCSET_WIDTH = 2400
DEFAULT_MAX_WIDTH_GAP = 200
DEFAULT_CACHE_TTL = 24 * 60 * 60

DEFAULT_SIZES: Dict[str, Tuple[int, int]] = {
    'thumbnail': (150, 150),
    'medium': (300, 300),
    'large': (1024, 1024),
}


def _positive_int(settings: Mapping[str, Any], name: str, default: int) -> int:
    raw = settings.get(name, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning('%s must be an integer, got %r; using %d', name, raw, default)
        return default
    if value <= 0:
        logger.warning('%s must be positive, got %r; using %d', name, raw, default)
        return default
    return value


def _string(settings: Mapping[str, Any], name: str, default: str = '') -> str:
    raw = settings.get(name, default)
    if raw is None:
        return default
    return str(raw).strip()


def _sizes(settings: Mapping[str, Any]) -> Dict[str, Tuple[int, int]]:
    raw = settings.get('EDGE_IMAGES_SIZES')
    if raw is None:
        return dict(DEFAULT_SIZES)
    if not isinstance(raw, Mapping):
        logger.warning('EDGE_IMAGES_SIZES must be a mapping of name -> (width, height); ignoring it')
        return dict(DEFAULT_SIZES)

    sizes: Dict[str, Tuple[int, int]] = {}
    for name, pair in raw.items():
        try:
            width, height = (int(v) for v in pair)
        except (TypeError, ValueError):
            logger.warning('Ignoring image size %r: expected (width, height), got %r', name, pair)
            continue
        if width > 0 and height > 0:
            sizes[str(name)] = (width, height)
        else:
            logger.warning('Ignoring image size %r: dimensions must be positive', name)
    return sizes


def _cache_path(settings: Mapping[str, Any]) -> str:
    raw = settings.get('EDGE_IMAGES_CACHE_PATH')
    if raw is None:
        return os.path.join(str(settings.get('CACHE_PATH', 'cache')), 'edge_images')
    return str(raw).strip()


@dataclass(frozen=True)
class EdgeImagesSettings:
    provider: str = DEFAULT_PROVIDER
    domain: str = ''
    max_width: int = DEFAULT_MAX_WIDTH
    min_srcset_width: int = DEFAULT_MIN_SRCSET_WIDTH
    max_srcset_width: int = DEFAULT_MAX_SRCSET_WIDTH
    max_width_gap: int = DEFAULT_MAX_WIDTH_GAP
    defaults: Dict[str, Any] = field(default_factory=dict)
    sizes: Dict[str, Tuple[int, int]] = field(default_factory=lambda: dict(DEFAULT_SIZES))
    bunny_subdomain: str = ''
    imgix_subdomain: str = ''
    imgproxy_url: str = ''
    picture_wrap: bool = False
    disabled: bool = False
    cache_ttl: int = DEFAULT_CACHE_TTL
    content_path: str = 'content'
    cache_path: str = ''
    lazy_loading: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> 'EdgeImagesSettings':
        """Build settings from a Pelican settings mapping."""
        settings = settings or {}

        domain = settings.get('EDGE_IMAGES_DOMAIN')
        if domain is None:
            domain = '' if settings.get('RELATIVE_URLS', False) else settings.get('SITEURL', '')
        domain = str(domain or '').rstrip('/')

        min_width = _positive_int(settings, 'EDGE_IMAGES_MIN_SRCSET_WIDTH', DEFAULT_MIN_SRCSET_WIDTH)
        max_width = _positive_int(settings, 'EDGE_IMAGES_MAX_SRCSET_WIDTH', DEFAULT_MAX_SRCSET_WIDTH)
        if min_width > max_width:
            logger.warning(
                'EDGE_IMAGES_MIN_SRCSET_WIDTH (%d) exceeds EDGE_IMAGES_MAX_SRCSET_WIDTH (%d); using defaults',
                min_width, max_width,
            )
            min_width, max_width = DEFAULT_MIN_SRCSET_WIDTH, DEFAULT_MAX_SRCSET_WIDTH

        defaults = settings.get('EDGE_IMAGES_DEFAULTS') or {}
        if not isinstance(defaults, Mapping):
            logger.warning('EDGE_IMAGES_DEFAULTS must be a mapping; ignoring it')
            defaults = {}

        return cls(
            provider=_string(settings, 'EDGE_IMAGES_PROVIDER', DEFAULT_PROVIDER).lower() or DEFAULT_PROVIDER,
            domain=domain,
            max_width=_positive_int(settings, 'EDGE_IMAGES_MAX_WIDTH', DEFAULT_MAX_WIDTH),
            min_srcset_width=min_width,
            max_srcset_width=max_width,
            max_width_gap=_positive_int(settings, 'EDGE_IMAGES_MAX_WIDTH_GAP', DEFAULT_MAX_WIDTH_GAP),
            defaults=dict(defaults),
            sizes=_sizes(settings),
            bunny_subdomain=_string(settings, 'EDGE_IMAGES_BUNNY_SUBDOMAIN'),
            imgix_subdomain=_string(settings, 'EDGE_IMAGES_IMGIX_SUBDOMAIN'),
            imgproxy_url=_string(settings, 'EDGE_IMAGES_IMGPROXY_URL').rstrip('/'),
            picture_wrap=bool(settings.get('EDGE_IMAGES_PICTURE_WRAP', False)),
            disabled=bool(settings.get('EDGE_IMAGES_DISABLE', False)),
            cache_ttl=_positive_int(settings, 'EDGE_IMAGES_CACHE_TTL', DEFAULT_CACHE_TTL),
            content_path=str(settings.get('PATH', 'content')),
            cache_path=_cache_path(settings),
            lazy_loading=bool(settings.get('EDGE_IMAGES_LAZY_LOADING', True)),
        )

    def fingerprint(self) -> str:
        """Digest of the options that change generated URLs; part of every cache key."""
        relevant = {
            'provider': self.provider,
            'domain': self.domain,
            'max_width': self.max_width,
            'min_srcset_width': self.min_srcset_width,
            'max_srcset_width': self.max_srcset_width,
            'max_width_gap': self.max_width_gap,
            'defaults': self.defaults,
            'bunny_subdomain': self.bunny_subdomain,
            'imgix_subdomain': self.imgix_subdomain,
            'imgproxy_url': self.imgproxy_url,
        }
        encoded = json.dumps(relevant, sort_keys=True, default=str)
        return hashlib.md5(encoded.encode('utf-8')).hexdigest()
