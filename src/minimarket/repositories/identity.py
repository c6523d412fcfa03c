from __future__ import annotations

from typing import Iterable, Protocol


class HasId(Protocol):
    id: int


def next_id(items: Iterable[HasId]) -> int:
    """1 for an empty collection, otherwise the highest id + 1 (not count + 1)."""
    highest = 0
    for item in items:
        if int(item.id) > highest:
            highest = int(item.id)
    return highest + 1
