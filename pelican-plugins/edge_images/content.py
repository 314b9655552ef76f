"""Rewrite ``<img>`` tags in rendered article/page HTML.

Given content like::

    <figure class="alignwide"><img src="../media/images/cat.jpg" fit="contain"></figure>

every image gets an edge ``src``, ``width``/``height``, ``srcset`` and
``sizes``, loses its transform attributes (``fit``, ``quality``...) and is
tagged ``edge-images-processed`` so a second pass leaves it alone. Unless the
author chose otherwise it also gets ``loading="lazy"`` and ``decoding="async"``.

Images are found by walking the parsed tree; nested figures and links need no
special casing.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from .args import transform_attributes
from .images import EdgeImage, EdgeImages

logger = logging.getLogger(__name__)

PROCESSED_CLASS = 'edge-images-processed'
PICTURE_CLASS = 'edge-images-container'

FULL_WIDTH_CLASS = re.compile(r'^(alignfull|alignwide|full-width|width-full)$', re.IGNORECASE)
SIZE_CLASS = re.compile(r'^size-(?P<name>[\w-]+)$')


def _classes(tag: Optional[Tag]) -> List[str]:
    if tag is None:
        return []
    value = tag.get('class') or []
    if isinstance(value, str):
        return value.split()
    return list(value)


def requested_size(img: Tag) -> Optional[str]:
    for css_class in _classes(img):
        match = SIZE_CLASS.match(css_class)
        if match and match.group('name') != 'full':
            return match.group('name')
    return None


def should_constrain(img: Tag) -> bool:
    """Full-width and wide-aligned images may exceed the content width."""
    for tag in (img, img.find_parent('figure')):
        if any(FULL_WIDTH_CLASS.match(css_class) for css_class in _classes(tag)):
            return False
    return True


def wrap_in_picture(img: Tag, image: EdgeImage, soup: BeautifulSoup) -> None:
    if img.find_parent('picture') is not None:
        return
    picture = soup.new_tag(
        'picture',
        attrs={'class': PICTURE_CLASS, 'style': f'--max-width: {image.width}px;'},
    )
    img.wrap(picture)


def transform_img(img: Tag, edge_images: EdgeImages, soup: BeautifulSoup, source_path: Optional[str] = None) -> bool:
    """Rewrite one ``<img>`` in place; returns whether anything changed."""
    classes = _classes(img)
    if PROCESSED_CLASS in classes:
        return False

    src = img.get('src')
    if not src:
        return False

    override_names = transform_attributes(img.attrs)
    overrides = {name: img[name] for name in override_names}

    image = edge_images.transform(
        src,
        width=img.get('width'),
        height=img.get('height'),
        size=requested_size(img),
        overrides=overrides,
        constrain=should_constrain(img),
        sizes=img.get('sizes'),
        source_path=source_path,
    )
    if image is None:
        return False

    for name in override_names:
        del img[name]

    img['width'] = str(image.width)
    img['height'] = str(image.height)
    if image.transformed:
        img['src'] = image.src
        if image.srcset:
            img['srcset'] = image.srcset
            img['sizes'] = image.sizes
    img['class'] = classes + [PROCESSED_CLASS]
    if edge_images.settings.lazy_loading:
        img.attrs.setdefault('loading', 'lazy')
        img.attrs.setdefault('decoding', 'async')

    if image.transformed and edge_images.settings.picture_wrap:
        wrap_in_picture(img, image, soup)
    return True


def rewrite_images(soup: BeautifulSoup, edge_images: EdgeImages, source_path: Optional[str] = None) -> int:
    return sum(1 for img in soup.find_all('img') if transform_img(img, edge_images, soup, source_path))


def transform_content(content: str, edge_images: EdgeImages, source_path: Optional[str] = None) -> str:
    """Return *content* with its images rewritten; unchanged content is returned as-is."""
    if not content or '<img' not in content or edge_images.settings.disabled:
        return content

    soup = BeautifulSoup(content, 'html.parser')
    if not rewrite_images(soup, edge_images, source_path):
        return content
    return str(soup)
