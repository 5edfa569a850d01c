"""Parse ``KEY=VALUE,KEY=VALUE`` environment specifications."""

from __future__ import annotations

from typing import Dict

_PAIR_SEPARATOR = ","
_KEY_VALUE_SEPARATOR = "="


def parse_env(spec: str) -> Dict[str, str]:
    """
    Turn a flat ``KEY=VALUE,KEY=VALUE`` string into a mapping.

    Commas and ``=`` inside values cannot be escaped. Segments without ``=``,
    with an empty key or with an empty value are dropped.

    Args:
        spec: Comma separated pairs, e.g. ``"PORT=3000,NODE_ENV=test"``

    Returns:
        Mapping of trimmed keys to trimmed values
    """
    if not spec:
        return {}

    parsed: Dict[str, str] = {}
    for segment in spec.split(_PAIR_SEPARATOR):
        key, separator, value = segment.partition(_KEY_VALUE_SEPARATOR)
        if not separator:
            continue
        key = key.strip()
        value = value.strip()
        if not key or not value:
            continue
        parsed[key] = value
    return parsed


__all__ = ["parse_env"]
