"""Minimal HTTP client for the search-index candidate endpoint (read-only)."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from pydantic import ValidationError

from thirdplace.errors import CandidateRetrievalError
from thirdplace.models import ContentItem, ContentKind, QueryFilters, content_adapter

logger = logging.getLogger(__name__)

_CANDIDATES_PATH = "/candidates"


class IndexClient:
    """Thin wrapper around ``GET {base_url}/candidates``.

    Implements the ``CandidateSource`` protocol. Every transport or protocol
    failure surfaces as ``CandidateRetrievalError``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("THIRDPLACE_INDEX_URL is required but was empty.")
        self._url = base_url.rstrip("/") + _CANDIDATES_PATH
        self._timeout = timeout
        self._session = session or requests.Session()
        if api_key:
            self._session.headers.update({"Authorization": f"Bearer {api_key}"})

    # ── public ──────────────────────────────────────────────────────────
    def fetch_candidates(
        self, kind: ContentKind, filters: QueryFilters, limit: int
    ) -> list[ContentItem]:
        """Fetch up to *limit* candidates of *kind* matching *filters*."""
        data = self._get(self._params(kind, filters, limit))
        records: list[dict[str, Any]] = data.get("data", [])
        if not records:
            logger.info("No candidates for kind=%s filters=%s", kind, filters.model_dump())
            return []

        items: list[ContentItem] = []
        for raw in records:
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object %s record %r", kind, raw)
                continue
            try:
                items.append(content_adapter.validate_python({**raw, "kind": str(kind)}))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed %s record %r: %d errors",
                    kind,
                    raw.get("id"),
                    exc.error_count(),
                )

        logger.info("Fetched %d %s candidates", len(items), kind)
        return items

    # ── private ─────────────────────────────────────────────────────────
    @staticmethod
    def _params(kind: ContentKind, filters: QueryFilters, limit: int) -> dict[str, Any]:
        params: dict[str, Any] = {
            "kind": str(kind),
            "sort": filters.sort_by,
            "limit": limit,
        }
        if filters.category:
            params["category"] = filters.category
        if filters.tags:
            params["tags"] = ",".join(sorted(filters.tags))
        if filters.item_ids:
            params["ids"] = ",".join(sorted(filters.item_ids))
        if filters.linked_venue_id:
            params["linked_venue"] = filters.linked_venue_id
        if filters.near is not None and filters.radius is not None:
            params["near"] = f"{filters.near.lat},{filters.near.lng}"
            params["radius"] = filters.radius
        return params

    def _request(self, params: dict[str, Any]) -> requests.Response:
        try:
            return self._session.get(self._url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise CandidateRetrievalError(f"Search index unreachable: {exc}") from exc

    def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        resp = self._request(params)
        if resp.status_code == 429:
            retry_after = int(resp.headers.get("Retry-After", "5"))
            logger.warning("Rate-limited; sleeping %ds", retry_after)
            time.sleep(retry_after)
            resp = self._request(params)
        if resp.status_code != 200:
            raise CandidateRetrievalError(
                f"Search index returned {resp.status_code}: {resp.text[:500]}"
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise CandidateRetrievalError("Search index returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise CandidateRetrievalError("Search index returned an unexpected payload")
        return payload
