"""Collaborator interfaces the engine pulls candidates and locations from."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol

from thirdplace.geo import within_radius
from thirdplace.models import (
    Article,
    ContentItem,
    ContentKind,
    Coordinates,
    QueryFilters,
)

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    """Search/index collaborator.

    Must return items already matching ``filters``; order is unspecified
    because the engine re-ranks. Failures should raise
    ``CandidateRetrievalError``.
    """

    def fetch_candidates(
        self, kind: ContentKind, filters: QueryFilters, limit: int
    ) -> list[ContentItem]: ...


class LocationProvider(Protocol):
    """Geolocation collaborator; any exception means "no location available"."""

    def current_location(self) -> Coordinates: ...


_EPOCH = datetime.min.replace(tzinfo=UTC)


def _popularity_key(item: ContentItem) -> int:
    return item.engagement.views if isinstance(item, Article) else item.engagement.regulars


def _recency_key(item: ContentItem) -> datetime:
    ts = item.timestamp
    if ts is None:
        return _EPOCH
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


class InMemoryCandidateSource:
    """Candidate source over a fixed list of items.

    Mirrors the index's behaviour: filter, order by regulars/views
    (``popular``) or by timestamp (``recent``), then cap at ``limit``.
    """

    def __init__(self, items: Iterable[ContentItem]) -> None:
        self._items: list[ContentItem] = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def _matches(self, item: ContentItem, filters: QueryFilters) -> bool:
        if filters.item_ids and item.id not in filters.item_ids:
            return False
        if filters.category and filters.category != "all" and item.category != filters.category:
            return False
        if filters.tags and not (item.tags & filters.tags):
            return False
        if filters.linked_venue_id is not None:
            if not isinstance(item, Article) or filters.linked_venue_id not in item.linked_venue_ids:
                return False
        if filters.near is not None and filters.radius is not None:
            if not within_radius(filters.near, filters.radius, item):
                return False
        return True

    def fetch_candidates(
        self, kind: ContentKind, filters: QueryFilters, limit: int
    ) -> list[ContentItem]:
        matched = [i for i in self._items if i.kind == kind and self._matches(i, filters)]
        if filters.sort_by == "recent":
            matched.sort(key=_recency_key, reverse=True)
        else:
            matched.sort(key=_popularity_key, reverse=True)
        logger.debug("In-memory fetch [%s]: %d matched, limit %d", kind, len(matched), limit)
        return matched[:limit]


class StaticLocation:
    """Location provider that always answers with the same coordinates."""

    def __init__(self, location: Coordinates) -> None:
        self._location = location

    def current_location(self) -> Coordinates:
        return self._location
