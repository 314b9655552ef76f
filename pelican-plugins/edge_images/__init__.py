"""
Edge Images Plugin for Pelican

This plugin rewrites image references in article and page content so that
they are served, resized and re-encoded by an image CDN (Cloudflare,
Accelerated Domains, Bunny, Imgix or imgproxy) with a generated srcset.

It converts:
  <img src="../media/images/cat.jpg" alt="Cat">

To (Cloudflare, 800px content width):
  <img src="/cdn-cgi/image/f=auto%2Cfit=cover%2C...%2Cwidth=800/media/images/cat.jpg"
       alt="Cat" width="800" height="600"
       srcset="... 300w, ... 500w, ... 800w, ..." sizes="(max-width: 800px) 100vw, 800px"
       class="edge-images-processed">

Configuration lives in pelicanconf.py, see ``edge_images.settings``.
"""

import logging

from pelican import signals
from pelican.contents import Article, Page

from .content import transform_content
from .images import EdgeImage, EdgeImages
from .settings import EdgeImagesSettings

logger = logging.getLogger(__name__)

__all__ = ['EdgeImage', 'EdgeImages', 'EdgeImagesSettings', 'transform_content', 'register']


def transform_instance(instance, edge_images):
    """Rewrite the content and summary of one article/page."""
    if not isinstance(instance, (Article, Page)):
        return
    source_path = getattr(instance, 'source_path', None)
    content = getattr(instance, '_content', None)
    if content:
        instance._content = transform_content(content, edge_images, source_path)  # noqa: SLF001
    summary = getattr(instance, '_summary', None)
    if summary:
        instance._summary = transform_content(summary, edge_images, source_path)  # noqa: SLF001


def _transform_all(generator, attrs):
    settings = EdgeImagesSettings.from_settings(generator.settings)
    if settings.disabled:
        return
    edge_images = EdgeImages(settings)
    count = 0
    try:
        for attr in attrs:
            for instance in getattr(generator, attr, []):
                transform_instance(instance, edge_images)
                count += 1
    finally:
        edge_images.close()
    logger.debug('Edge images (%s): processed %d documents', edge_images.provider.slug, count)


def process_content(article_generator):
    """Process articles to transform images."""
    _transform_all(article_generator, ('articles', 'translations', 'drafts', 'drafts_translations'))


def process_pages(page_generator):
    """Process pages to transform images."""
    _transform_all(page_generator, ('pages', 'translations', 'hidden_pages', 'hidden_translations', 'draft_pages', 'draft_translations'))


def register():
    """Register the plugin with Pelican."""
    signals.article_generator_finalized.connect(process_content)
    signals.page_generator_finalized.connect(process_pages)
