#!/usr/bin/env python3
"""
Marking store: the live token count of every place.
"""

from typing import Dict, Iterator, Mapping
from collections.abc import MutableMapping


class Marking(MutableMapping):
    """Mutable mapping of place id -> non-negative token count.

    Counts never go below zero: ``take`` floors at 0 and assigning a negative
    value raises. Unknown places read as 0.
    """

    def __init__(self, counts: Mapping[str, int] = None):
        self._counts: Dict[str, int] = {}
        if counts:
            for place_id, tokens in counts.items():
                self[place_id] = tokens

    def __getitem__(self, place_id: str) -> int:
        return self._counts.get(place_id, 0)

    def __setitem__(self, place_id: str, tokens: int):
        tokens = int(tokens)
        if tokens < 0:
            raise ValueError(f"Place {place_id} cannot hold {tokens} tokens")
        self._counts[place_id] = tokens

    def __delitem__(self, place_id: str):
        del self._counts[place_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, place_id) -> bool:
        return place_id in self._counts

    def take(self, place_id: str, count: int) -> int:
        """Remove up to `count` tokens, floored at zero. Returns the new count."""
        self._counts[place_id] = max(0, self[place_id] - count)
        return self._counts[place_id]

    def give(self, place_id: str, count: int) -> int:
        """Add `count` tokens. Returns the new count."""
        self._counts[place_id] = self[place_id] + count
        return self._counts[place_id]

    def total(self) -> int:
        return sum(self._counts.values())

    def snapshot(self) -> Dict[str, int]:
        """Detached copy, safe to hand to callers"""
        return dict(self._counts)

    def __repr__(self):
        return f"Marking({self._counts!r})"
