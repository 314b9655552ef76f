"""Edge providers: one URL format per image CDN.

Each provider turns an image path plus normalised transform args into the URL
its service expects, and can parse such a URL back into ``(path, args)`` so
already-transformed images are recognised instead of being wrapped twice::

    Cloudflare    /cdn-cgi/image/f=auto%2Cwidth=640/media/a.jpg
    Accelerated   /acd-cgi/img/v1/media/a.jpg?width=640&f=auto
    Bunny         https://sub.b-cdn.net/width=640,format=auto/media/a.jpg
    Imgix         https://sub.imgix.net/media/a.jpg?w=640&auto=format%2Ccompress
    imgproxy      https://proxy.example/insecure/width:640/plain/media/a.jpg

Providers that need a subdomain or base URL fall back to the plain image URL
when it is missing, so a half-configured site still renders.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type
from urllib.parse import parse_qsl, unquote_plus, urlencode

from .args import FIT_MODES, GRAVITY_VALUES, TransformArgs
from .settings import EdgeImagesSettings

logger = logging.getLogger(__name__)

ParsedURL = Tuple[str, Dict[str, str]]

_NEVER = re.compile(r'(?!)')
_FOCAL_POINT = re.compile(r'^\d*\.?\d+x\d*\.?\d+$')


def _clamp(value: Any, low: int, high: int) -> Optional[int]:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return min(high, max(low, number))


class EdgeProvider:
    """Base provider; also the ``none`` passthrough."""

    slug = 'none'
    label = 'None (disabled)'
    url_pattern = ''

    default_args: Dict[str, Any] = {
        'fit': 'cover',
        'f': 'auto',
        'q': 85,
        'dpr': 1,
        'g': 'auto',
    }

    fit_map: Dict[str, str] = {mode: mode for mode in FIT_MODES}
    default_fit = 'cover'
    gravity_map: Dict[str, str] = {value: value for value in GRAVITY_VALUES}
    default_gravity = 'center'

    def __init__(self, domain: str = ''):
        self.domain = domain.rstrip('/')

    @classmethod
    def from_settings(cls, settings: EdgeImagesSettings) -> 'EdgeProvider':
        return cls(domain=settings.domain)

    @property
    def is_configured(self) -> bool:
        return True

    @property
    def transform_pattern(self) -> re.Pattern:
        return _NEVER

    def passthrough(self, path: str) -> str:
        return f'{self.domain}{_rooted(path)}'

    def build(self, path: str, args: TransformArgs) -> str:
        return self.passthrough(path)

    def parse(self, url: str) -> Optional[ParsedURL]:
        match = self.transform_pattern.search(url)
        if not match:
            return None
        return match.group('path'), self._parse_options(match)

    def is_transformed(self, url: str) -> bool:
        return self.transform_pattern.search(url) is not None

    def map_fit(self, fit: Any) -> str:
        return self.fit_map.get(str(fit).lower(), self.default_fit)

    def map_gravity(self, gravity: Any) -> str:
        return self.gravity_map.get(str(gravity).lower(), self.default_gravity)

    def _parse_options(self, match: re.Match) -> Dict[str, str]:
        return {}

    def __repr__(self) -> str:
        return f'<{type(self).__name__} slug={self.slug!r} configured={self.is_configured}>'


def _rooted(path: str) -> str:
    return path if path.startswith('/') else f'/{path}'


class Cloudflare(EdgeProvider):
    """Cloudflare Image Resizing, https://developers.cloudflare.com/images/transform-images/"""

    slug = 'cloudflare'
    label = 'Cloudflare'
    url_pattern = '/cdn-cgi/image/'

    default_args = dict(EdgeProvider.default_args, metadata='none')

    gravity_map = {
        'auto': 'auto',
        'center': '0.5x0.5',
        'north': 'top',
        'south': 'bottom',
        'east': 'right',
        'west': 'left',
        'left': 'left',
        'right': 'right',
    }
    default_gravity = '0.5x0.5'

    @property
    def transform_pattern(self) -> re.Pattern:
        return re.compile(r'/cdn-cgi/image/(?P<options>[^/]+)(?P<path>/.*)$')

    def map_gravity(self, gravity: Any) -> str:
        value = str(gravity).lower()
        if _FOCAL_POINT.match(value):
            return value
        return super().map_gravity(value)

    def build(self, path: str, args: TransformArgs) -> str:
        if not args:
            return self.passthrough(path)

        options = dict(args)
        if 'fit' in options:
            options['fit'] = self.map_fit(options['fit'])
        if 'g' in options:
            options['g'] = self.map_gravity(options['g'])

        query = urlencode(sorted(options.items())).replace('&', '%2C')
        return f'{self.domain}{self.url_pattern}{query}{_rooted(path)}'

    def _parse_options(self, match: re.Match) -> Dict[str, str]:
        options = {}
        for pair in re.split(r'%2C|,', match.group('options'), flags=re.IGNORECASE):
            key, _, value = pair.partition('=')
            if key:
                options[unquote_plus(key)] = unquote_plus(value)
        return options


class AcceleratedDomains(EdgeProvider):
    """Accelerated Domains image optimisation (query-string parameters, long names)."""

    slug = 'accelerated_domains'
    label = 'Accelerated Domains'
    url_pattern = '/acd-cgi/img/v1'

    long_names = {'g': 'gravity'}

    @property
    def transform_pattern(self) -> re.Pattern:
        return re.compile(r'/acd-cgi/img/v1(?P<path>/[^?]+)(?:\?(?P<query>.*))?$')

    def build(self, path: str, args: TransformArgs) -> str:
        # Unwrap a path that has already been through the endpoint.
        parsed = self.parse(path)
        if parsed:
            path = parsed[0]

        if not path.strip('/') or not args:
            return self.passthrough(path)

        query = []
        for key, value in args.items():
            if key == 'fit':
                value = self.map_fit(value)
            elif key == 'g':
                value = self.map_gravity(value)
            query.append((self.long_names.get(key, key), value))

        return f'{self.domain}{self.url_pattern}{_rooted(path)}?{urlencode(query)}'

    def _parse_options(self, match: re.Match) -> Dict[str, str]:
        return dict(parse_qsl(match.group('query') or ''))


class Bunny(EdgeProvider):
    """Bunny CDN optimiser; options travel as one comma-joined path segment."""

    slug = 'bunny'
    label = 'Bunny CDN'
    edge_root = '.b-cdn.net'

    fit_map = {
        'cover': 'force',
        'contain': 'contain',
        'scale-down': 'contain',
        'crop': 'force',
        'pad': 'stretch',
    }
    default_fit = 'force'
    gravity_map = {
        'auto': 'center',
        'center': 'center',
        'north': 'top',
        'south': 'bottom',
        'east': 'right',
        'west': 'left',
        'left': 'left',
        'right': 'right',
    }
    clamped = (
        ('blur', 0, 100),
        ('sharpen', 0, 100),
        ('brightness', -100, 100),
        ('contrast', -100, 100),
    )

    def __init__(self, domain: str = '', subdomain: str = ''):
        super().__init__(domain)
        self.subdomain = subdomain.strip().strip('.')

    @classmethod
    def from_settings(cls, settings: EdgeImagesSettings) -> 'Bunny':
        return cls(domain=settings.domain, subdomain=settings.bunny_subdomain)

    @property
    def is_configured(self) -> bool:
        return bool(self.subdomain)

    @property
    def url_pattern(self) -> str:  # type: ignore[override]
        if not self.subdomain:
            return ''
        return f'https://{self.subdomain}{self.edge_root}/'

    @property
    def transform_pattern(self) -> re.Pattern:
        if not self.subdomain:
            return _NEVER
        host = re.escape(f'{self.subdomain}{self.edge_root}')
        return re.compile(rf'^https://{host}(?:/(?P<options>[a-z_]+=[^/]*))?(?P<path>/.*)$')

    def segments(self, args: TransformArgs) -> List[str]:
        segments = []
        if 'width' in args:
            segments.append(f"width={args['width']}")
        if 'height' in args:
            segments.append(f"height={args['height']}")
        if 'fit' in args:
            segments.append(f"aspect_ratio={self.map_fit(args['fit'])}")
        if 'q' in args:
            segments.append(f"quality={args['q']}")
        if 'f' in args:
            segments.append(f"format={args['f']}")
        if 'g' in args:
            segments.append(f"gravity={self.map_gravity(args['g'])}")
        for key, low, high in self.clamped:
            value = _clamp(args[key], low, high) if key in args else None
            if value is not None:
                segments.append(f'{key}={value}')
        return segments

    def build(self, path: str, args: TransformArgs) -> str:
        if not self.is_configured:
            return self.passthrough(path)

        segments = self.segments(args)
        options = f"/{','.join(segments)}" if segments else ''
        return f'https://{self.subdomain}{self.edge_root}{options}{_rooted(path)}'

    def _parse_options(self, match: re.Match) -> Dict[str, str]:
        options = {}
        for pair in (match.group('options') or '').split(','):
            key, _, value = pair.partition('=')
            if key:
                options[key] = value
        return options


class Imgix(EdgeProvider):
    """Imgix rendering API, https://docs.imgix.com/apis/rendering"""

    slug = 'imgix'
    label = 'Imgix'
    edge_root = '.imgix.net'

    fit_map = {
        'cover': 'crop',
        'contain': 'fit',
        'scale-down': 'max',
        'crop': 'crop',
        'pad': 'fill',
    }
    default_fit = 'crop'
    gravity_map = {
        'north': 'top',
        'south': 'bottom',
        'east': 'right',
        'west': 'left',
        'left': 'left',
        'right': 'right',
        'center': 'center',
    }

    def __init__(self, domain: str = '', subdomain: str = ''):
        super().__init__(domain)
        self.subdomain = subdomain.strip().strip('.')

    @classmethod
    def from_settings(cls, settings: EdgeImagesSettings) -> 'Imgix':
        return cls(domain=settings.domain, subdomain=settings.imgix_subdomain)

    @property
    def is_configured(self) -> bool:
        return bool(self.subdomain)

    @property
    def url_pattern(self) -> str:  # type: ignore[override]
        return self.edge_root

    @property
    def transform_pattern(self) -> re.Pattern:
        if not self.subdomain:
            return _NEVER
        host = re.escape(f'{self.subdomain}{self.edge_root}')
        return re.compile(rf'^https://{host}(?P<path>/[^?]*)(?:\?(?P<query>.*))?$')

    def query(self, args: TransformArgs) -> List[Tuple[str, Any]]:
        query: List[Tuple[str, Any]] = []
        if 'width' in args:
            query.append(('w', args['width']))
        if 'height' in args:
            query.append(('h', args['height']))
        if 'fit' in args:
            query.append(('fit', self.map_fit(args['fit'])))
        if 'q' in args:
            query.append(('q', args['q']))
        if 'f' in args and str(args['f']) != 'auto':
            query.append(('fm', args['f']))
        else:
            query.append(('auto', 'format,compress'))
        if 'g' in args and str(args['g']) != 'auto':
            query.append(('crop', self.map_gravity(args['g'])))
        if 'blur' in args:
            query.append(('blur', args['blur']))
        if 'sharpen' in args:
            query.append(('sharp', args['sharpen']))
        query.append(('cs', 'srgb'))
        query.append(('dpr', args.get('dpr', 1)))
        return query

    def build(self, path: str, args: TransformArgs) -> str:
        if not self.is_configured:
            return self.passthrough(path)
        return f'https://{self.subdomain}{self.edge_root}{_rooted(path)}?{urlencode(self.query(args))}'

    def _parse_options(self, match: re.Match) -> Dict[str, str]:
        return dict(parse_qsl(match.group('query') or ''))


class Imgproxy(EdgeProvider):
    """Self-hosted imgproxy with unsigned (``insecure``) URLs."""

    slug = 'imgproxy'
    label = 'imgproxy'
    url_pattern = '/insecure/'

    gravity_map = {
        'north': 'north',
        'south': 'south',
        'east': 'east',
        'west': 'west',
        'center': 'center',
    }

    def __init__(self, domain: str = '', base_url: str = ''):
        super().__init__(domain)
        self.base_url = base_url.strip().rstrip('/')

    @classmethod
    def from_settings(cls, settings: EdgeImagesSettings) -> 'Imgproxy':
        return cls(domain=settings.domain, base_url=settings.imgproxy_url)

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    @property
    def transform_pattern(self) -> re.Pattern:
        if not self.base_url:
            return _NEVER
        base = re.escape(self.base_url)
        return re.compile(rf'^{base}/insecure/(?:(?P<options>[^/]+(?:/[^/]+)*?)/)?plain(?P<path>/.*)$')

    def segments(self, args: TransformArgs) -> List[str]:
        segments = []
        if 'width' in args:
            segments.append(f"width:{args['width']}")
        if 'height' in args:
            segments.append(f"height:{args['height']}")
        if 'fit' in args:
            segments.append(f"fit:{self.map_fit(args['fit'])}")
        if 'q' in args:
            segments.append(f"quality:{args['q']}")
        if 'f' in args and str(args['f']) != 'auto':
            segments.append(f"format:{args['f']}")
        if 'g' in args and str(args['g']) != 'auto':
            segments.append(f"gravity:{self.map_gravity(args['g'])}")
        if 'blur' in args:
            segments.append(f"blur:{args['blur']}")
        if 'sharpen' in args:
            segments.append(f"sharpen:{args['sharpen']}")
        return segments

    def build(self, path: str, args: TransformArgs) -> str:
        if not self.is_configured:
            return self.passthrough(path)
        parts = [self.base_url, 'insecure', *self.segments(args), 'plain']
        return '/'.join(parts) + _rooted(path)

    def _parse_options(self, match: re.Match) -> Dict[str, str]:
        options = {}
        for segment in (match.group('options') or '').split('/'):
            key, _, value = segment.partition(':')
            if key:
                options[key] = value
        return options


PROVIDER_CLASSES: Tuple[Type[EdgeProvider], ...] = (
    EdgeProvider,
    Cloudflare,
    AcceleratedDomains,
    Bunny,
    Imgix,
    Imgproxy,
)


class ProviderRegistry:
    """The providers available to one site configuration.

    Build one per settings object; nothing is shared between registries.
    """

    def __init__(self, settings: EdgeImagesSettings):
        self.settings = settings
        self._providers: Dict[str, EdgeProvider] = {
            cls.slug: cls.from_settings(settings) for cls in PROVIDER_CLASSES
        }
        self._warned: set = set()

    def slugs(self) -> List[str]:
        return list(self._providers)

    def labels(self) -> Mapping[str, str]:
        return {slug: provider.label for slug, provider in self._providers.items()}

    def is_valid(self, slug: str) -> bool:
        return slug in self._providers

    def get(self, slug: Optional[str] = None) -> EdgeProvider:
        """Return the provider for *slug* (default: the configured one)."""
        slug = (slug if slug is not None else self.settings.provider).lower()
        provider = self._providers.get(slug)
        if provider is None:
            self._warn_once(slug, 'Unknown edge provider %r; images will not be transformed', slug)
            return self._providers[EdgeProvider.slug]
        if not provider.is_configured:
            self._warn_once(
                slug, 'Edge provider %r is missing its subdomain/URL setting; serving original images', slug,
            )
        return provider

    @property
    def active(self) -> EdgeProvider:
        return self.get()

    def original_path(self, url: str) -> Optional[str]:
        """Return the source path of a URL built by any known provider."""
        for provider in self._providers.values():
            parsed = provider.parse(url)
            if parsed:
                return parsed[0]
        return None

    def is_transformed(self, url: str) -> bool:
        return self.original_path(url) is not None

    def _warn_once(self, key: str, message: str, *args: Any) -> None:
        if key in self._warned:
            return
        self._warned.add(key)
        logger.warning(message, *args)
