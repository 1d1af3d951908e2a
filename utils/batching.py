from __future__ import annotations

from typing import List, Sequence


def chunk_by_char_limit(items: Sequence[str], *, max_chars: int, max_items: int) -> List[List[int]]:
    """Group item indexes so each group stays under both limits.

    An item longer than max_chars still gets a group of its own.
    """
    batches: List[List[int]] = []
    current: List[int] = []
    char_count = 0
    for index, item in enumerate(items):
        item_len = len(item)
        if current and (char_count + item_len > max_chars or len(current) >= max_items):
            batches.append(current)
            current = []
            char_count = 0
        current.append(index)
        char_count += item_len
    if current:
        batches.append(current)
    return batches
