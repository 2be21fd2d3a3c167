"""
Canonical attribute value object.

A product configuration reaches the engine in many spellings
(``frameColour``, ``mount_color``, ``Black`` vs ``black``). Once it has been
through the normalizer it is a CanonicalAttributes: a sorted tuple of
(key, value) string pairs that compares, hashes and serializes the same way
no matter how the input was written.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class CanonicalAttributes:
    """
    Immutable, sorted attribute pairs.

    Build through ``modules.attribute_normalizer.normalize_attributes``;
    the constructor only sorts and does not normalize.
    """

    pairs: Tuple[Tuple[str, str], ...] = ()
    """(key, value) pairs, lexicographically sorted by key."""

    def __post_init__(self):
        object.__setattr__(self, "pairs", tuple(sorted(self.pairs)))

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self.pairs)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for k, v in self.pairs:
            if k == key:
                return v
        return default

    def as_dict(self) -> Dict[str, str]:
        """Plain dict copy, in key order."""
        return dict(self.pairs)

    def serialize(self) -> str:
        """
        Compact JSON of the sorted pairs.

        JSON escaping keeps the encoding unambiguous even when a value
        contains separators such as ``:`` or ``,``.
        """
        return json.dumps([list(p) for p in self.pairs], separators=(",", ":"), ensure_ascii=False)

    def is_subset_of(self, other: "CanonicalAttributes") -> bool:
        """True when every pair here also appears in ``other``."""
        theirs = set(other.pairs)
        return all(pair in theirs for pair in self.pairs)
