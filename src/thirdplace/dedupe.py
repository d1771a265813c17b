"""Deduplication: drop items already present earlier in a merged list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TypeVar

from thirdplace.models import ScoredItem

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=ScoredItem)


def dedupe(items: Iterable[S]) -> list[S]:
    """Keep the first occurrence of each ``(kind, id)`` pair."""
    seen: set[tuple[str, str]] = set()
    unique: list[S] = []
    total = 0
    for scored in items:
        total += 1
        key = (str(scored.item.kind), scored.item.id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(scored)
    logger.info(
        "Dedupe: %d total → %d unique (filtered %d repeats)",
        total,
        len(unique),
        total - len(unique),
    )
    return unique
