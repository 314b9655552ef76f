import time

import pytest

from edge_images.cache import ImageCache


@pytest.fixture
def cache(cache_dir):
    image_cache = ImageCache(cache_dir, ttl=60, fingerprint='abc')
    yield image_cache
    image_cache.close()


def test_keys_depend_on_size_args_and_config(cache):
    key = cache.key('media/a.jpg', (800, 600), {'q': 85})
    assert key.startswith('image_media/a.jpg_800x600_')
    assert cache.key('media/a.jpg', None, {'q': 85}).startswith('image_media/a.jpg_full_')
    assert key != cache.key('media/a.jpg', (800, 600), {'q': 70})
    assert key == cache.key('media/a.jpg', [800, 600], {'q': 85})

    other = ImageCache(fingerprint='xyz')
    try:
        assert key != other.key('media/a.jpg', (800, 600), {'q': 85})
    finally:
        other.close()


def test_set_and_get_round_trip(cache):
    cache.set('a.jpg', 'large', {'q': 85}, {'src': '/x'})
    assert cache.get('a.jpg', 'large', {'q': 85}) == {'src': '/x'}
    assert cache.get('a.jpg', 'large', {'q': 70}) is None


def test_entries_carry_the_ttl(cache):
    before = time.time()
    cache.set('a.jpg', None, {}, 'value')
    _, expires = cache._cache.get(cache.key('a.jpg', None, {}), expire_time=True)
    assert before + 60 <= expires <= time.time() + 60


def test_results_survive_reopening(cache_dir):
    first = ImageCache(cache_dir, fingerprint='abc')
    first.set('a.jpg', 'large', {}, 'value')
    first.close()

    second = ImageCache(cache_dir, fingerprint='abc')
    try:
        assert second.get('a.jpg', 'large', {}) == 'value'
    finally:
        second.close()


def test_purge_image_drops_every_variant(cache):
    cache.set('a.jpg', 'large', {}, 1)
    cache.set('a.jpg', 'thumbnail', {}, 2)
    cache.set('b.jpg', 'large', {}, 3)

    cache.purge_image('a.jpg')

    assert cache.get('a.jpg', 'large', {}) is None
    assert cache.get('a.jpg', 'thumbnail', {}) is None
    assert cache.get('b.jpg', 'large', {}) == 3
    assert cache._cache.get('keys_a.jpg') is None


def test_invalidate_switches_fingerprint(cache):
    cache.set('a.jpg', None, {}, 'value')
    cache.invalidate('new')
    assert cache.fingerprint == 'new'
    assert len(cache) == 0


def test_without_directory_uses_a_temporary_cache():
    cache = ImageCache()
    try:
        cache.set('a.jpg', None, {}, 'value')
        assert cache.get('a.jpg', None, {}) == 'value'
        assert cache.directory
    finally:
        cache.close()
