"""Persistent cache for transformed images, stored with diskcache.

Keys look like ``image_<id>_<size>_<digest>`` where the digest covers the
transform args and the settings fingerprint, so changing the provider,
subdomain or width limits never serves a stale URL. Each image also keeps an
index of its keys so all of its variants can be purged at once.

The cache lives under Pelican's ``CACHE_PATH`` so results survive between the
article and page passes and between builds.
"""
from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import diskcache

DEFAULT_TTL = 24 * 60 * 60

Size = Union[str, Sequence[int], None]


def _size_label(size: Size) -> str:
    if size is None or size == '':
        return 'full'
    if isinstance(size, str):
        return size
    return 'x'.join(str(part) for part in size)


class ImageCache:
    """Fingerprinted results per image, expiring after *ttl* seconds.

    With no *directory* diskcache picks a temporary one, which is what the
    preview tool wants.
    """

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        ttl: int = DEFAULT_TTL,
        fingerprint: str = '',
    ):
        self._cache = diskcache.Cache(str(directory) if directory else None)
        self.ttl = ttl
        self.fingerprint = fingerprint

    @property
    def directory(self) -> str:
        return self._cache.directory

    def key(self, image_id: str, size: Size, args: Optional[Mapping[str, Any]] = None) -> str:
        payload = json.dumps({'args': dict(args or {}), 'config': self.fingerprint}, sort_keys=True, default=str)
        digest = hashlib.md5(payload.encode('utf-8')).hexdigest()
        return f'image_{image_id}_{_size_label(size)}_{digest}'

    @staticmethod
    def _index_key(image_id: str) -> str:
        return f'keys_{image_id}'

    def get(self, image_id: str, size: Size, args: Optional[Mapping[str, Any]] = None) -> Any:
        return self._cache.get(self.key(image_id, size, args))

    def set(self, image_id: str, size: Size, args: Optional[Mapping[str, Any]], value: Any) -> None:
        key = self.key(image_id, size, args)
        index_key = self._index_key(image_id)
        with self._cache.transact():
            keys = set(self._cache.get(index_key) or ())
            keys.add(key)
            self._cache.set(index_key, sorted(keys), expire=self.ttl)
            self._cache.set(key, value, expire=self.ttl)

    def purge_image(self, image_id: str) -> None:
        """Drop every cached variant of one image, e.g. after the file changed."""
        index_key = self._index_key(image_id)
        with self._cache.transact():
            for key in self._cache.get(index_key) or ():
                self._cache.delete(key)
            self._cache.delete(index_key)

    def invalidate(self, fingerprint: Optional[str] = None) -> None:
        """Forget everything; optionally switch to a new settings fingerprint."""
        self._cache.clear()
        if fingerprint is not None:
            self.fingerprint = fingerprint

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)
