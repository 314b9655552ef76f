from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image
from pelican.log import LimitFilter

from edge_images.images import EdgeImages


def write_image(path: Path, width: int, height: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new('RGB', (width, height), color=(200, 120, 80)).save(path)
    return path


@pytest.fixture(autouse=True)
def reset_pelican_log_dedup():
    """Pelican's logger class drops any warning it has already emitted in this process."""
    LimitFilter._raised_messages.clear()
    LimitFilter._group_count.clear()
    yield
    LimitFilter._raised_messages.clear()
    LimitFilter._group_count.clear()


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """A Pelican content tree with a couple of real images."""
    content = tmp_path / 'content'
    write_image(content / 'media' / 'images' / 'cat.jpg', 1600, 1200)
    write_image(content / 'media' / 'images' / 'small.png', 100, 80)
    (content / 'articles').mkdir(parents=True)
    (content / 'media' / 'images' / 'logo.svg').write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"></svg>'
    )
    return content


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / 'cache'


@pytest.fixture
def make_edge_images(content_dir: Path, cache_dir: Path):
    created = []

    def _make(**overrides) -> EdgeImages:
        settings = {
            'PATH': str(content_dir),
            'CACHE_PATH': str(cache_dir),
            'RELATIVE_URLS': True,
            'EDGE_IMAGES_PROVIDER': 'cloudflare',
        }
        settings.update(overrides)
        edge_images = EdgeImages.from_settings(settings)
        created.append(edge_images)
        return edge_images

    yield _make
    for edge_images in created:
        edge_images.close()
