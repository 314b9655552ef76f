"""Transform argument normalisation.

Every caller (site defaults, provider defaults, per-image overrides) may spell
transformation options in long or short form. Before a provider sees them they
are collapsed into one ordered mapping with canonical keys::

    normalize({'quality': 90, 'gravity': 'center'})
    # -> {'q': 90, 'g': 'center'}

Unknown keys are dropped rather than rejected so provider-specific extras in
site configuration never break a build.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

TransformArgs = Dict[str, Any]

# Canonical keys in output order.
CANONICAL_KEYS = (
    'width',
    'height',
    'fit',
    'f',
    'q',
    'dpr',
    'sharpen',
    'blur',
    'g',
    'metadata',
    'brightness',
    'contrast',
    'gamma',
)

ALIASES = {
    'format': 'f',
    'gravity': 'g',
    'quality': 'q',
    'w': 'width',
    'h': 'height',
}

FIT_MODES = ('cover', 'contain', 'crop', 'scale-down', 'pad')
GRAVITY_VALUES = ('auto', 'center', 'north', 'south', 'east', 'west', 'left', 'right')

# HTML attributes that are also transform options; never stripped from <img>.
_HTML_DIMENSION_ATTRS = {'width', 'height', 'w', 'h'}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def normalize(raw_args: Mapping[str, Any] | None) -> TransformArgs:
    """Return *raw_args* with aliases resolved, empties removed, keys ordered.

    When a key is given in both forms (``quality`` and ``q``) the canonical
    short form wins.
    """
    if not raw_args:
        return {}

    given = {
        str(key).strip().lower(): value
        for key, value in raw_args.items()
        if not _is_empty(value)
    }

    collected: TransformArgs = {key: value for key, value in given.items() if key in CANONICAL_KEYS}
    for alias, canonical in ALIASES.items():
        if alias in given and canonical not in collected:
            collected[canonical] = given[alias]

    return {key: collected[key] for key in CANONICAL_KEYS if key in collected}


def merge_args(*layers: Mapping[str, Any] | None) -> TransformArgs:
    """Normalise each layer and merge them; later layers win."""
    merged: TransformArgs = {}
    for layer in layers:
        merged.update(normalize(layer))
    return {key: merged[key] for key in CANONICAL_KEYS if key in merged}


def is_transform_attribute(name: str) -> bool:
    """True for ``<img>`` attributes that carry transform options (``fit``, ``quality``...)."""
    name = name.lower()
    if name in _HTML_DIMENSION_ATTRS:
        return False
    return name in CANONICAL_KEYS or name in ALIASES


def transform_attributes(attrs: Mapping[str, Any]) -> List[str]:
    return [name for name in attrs if is_transform_attribute(name)]
