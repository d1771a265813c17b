"""Load a YAML content catalog into venues and articles."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from thirdplace.models import ContentItem, content_adapter

logger = logging.getLogger(__name__)

# Top-level YAML keys and the content kind each holds.
_SECTIONS: dict[str, str] = {"venues": "venue", "articles": "article"}


def load_catalog(catalog_path: Path) -> list[ContentItem]:
    """Parse ``catalog.yml`` and return its items in file order.

    Expected layout::

        venues:
          - id: v1
            name: Corner Café
            coordinates: {lat: 51.5, lng: -0.12}
            engagement: {regulars: 12, blog_mentions: 3}
        articles:
          - id: a1
            title: Best study spots
            published_at: 2024-05-01T09:00:00Z
            linked_venue_ids: [v1]

    Records that fail validation are skipped with a warning.
    """
    with open(catalog_path, encoding="utf-8") as fh:
        cfg: dict[str, Any] = yaml.safe_load(fh) or {}

    items: list[ContentItem] = []
    for section, kind in _SECTIONS.items():
        records: list[dict[str, Any]] = cfg.get(section, []) or []
        for raw in records:
            try:
                items.append(content_adapter.validate_python({**raw, "kind": kind}))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed %s %r in %s: %d errors",
                    kind,
                    raw.get("id"),
                    catalog_path,
                    exc.error_count(),
                )
        logger.debug("Catalog [%s]: %d records", section, len(records))

    logger.info("Loaded %d items from %s", len(items), catalog_path)
    return items
