from __future__ import annotations

from typing import Iterable

from .dates import is_before
from .models import ConflictWarning, Item


def detect_conflicts(items: Iterable[Item]) -> list[ConflictWarning]:
    """
    Return one warning per item that starts before its predecessor ends.

    - The comparison is strict: starting on the predecessor's end day is fine.
    - Items without a predecessor, or whose predecessor id does not resolve, are skipped.
    - Warnings follow the order of `items`.
    """

    item_list = list(items)
    lookup = {item.id: item for item in item_list}
    warnings: list[ConflictWarning] = []

    for item in item_list:
        if item.predecessor_id is None:
            continue
        predecessor = lookup.get(item.predecessor_id)
        if predecessor is None:
            continue
        if is_before(item.start, predecessor.end):
            warnings.append(
                ConflictWarning(
                    item_id=item.id,
                    message=f'"{item.name}" starts before its predecessor "{predecessor.name}" ends.',
                )
            )
    return warnings
