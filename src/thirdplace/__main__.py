"""CLI entry-point: ``python -m thirdplace popular|trending|personalized|related|feed``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from thirdplace import config
from thirdplace.candidates import CandidateSource, InMemoryCandidateSource
from thirdplace.catalog import load_catalog
from thirdplace.engine import DiscoveryEngine
from thirdplace.errors import CandidateRetrievalError, InvalidInputError
from thirdplace.geofilter import map_center
from thirdplace.index_client import IndexClient
from thirdplace.models import ContentKind, Coordinates, Timeframe, UserContext, UserPreferences

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _source(catalog: Path | None) -> CandidateSource:
    """Catalog file if given, otherwise the configured search index."""
    if catalog is not None:
        return InMemoryCandidateSource(load_catalog(catalog))
    if config.INDEX_URL:
        return IndexClient(
            base_url=config.INDEX_URL,
            api_key=config.INDEX_API_KEY,
            timeout=config.INDEX_TIMEOUT,
        )
    logger.error("No --catalog given and THIRDPLACE_INDEX_URL is not set.")
    sys.exit(2)


def _location(args: argparse.Namespace) -> Coordinates | None:
    if args.lat is None or args.lng is None:
        return None
    return Coordinates(lat=args.lat, lng=args.lng)


def _csv(value: str | None) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(v.strip() for v in value.split(",") if v.strip())


def _emit(payload: Any) -> None:
    if isinstance(payload, BaseModel):
        data = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        data = [p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in payload]
    else:
        data = payload
    json.dump(data, sys.stdout, indent=2)
    sys.stdout.write("\n")


def _run(args: argparse.Namespace) -> None:
    engine = DiscoveryEngine(
        _source(args.catalog),
        velocity_estimator=config.velocity_estimator(),
    )
    where = _location(args)

    if args.command == "popular":
        results = engine.get_popular(
            args.kind,
            limit=args.limit,
            timeframe=args.timeframe,
            location=where,
            radius=args.radius,
            category=args.category,
        )
        center = map_center(results, where) if args.kind == ContentKind.VENUE else None
        _emit(
            {
                "map_center": center.model_dump() if center else None,
                "results": [r.model_dump(mode="json") for r in results],
            }
        )
    elif args.command == "trending":
        _emit(
            engine.get_trending(
                args.kind,
                limit=args.limit,
                timeframe=args.timeframe,
                location=where,
                radius=args.radius,
                category=args.category,
            )
        )
    elif args.command == "personalized":
        prefs = UserPreferences(
            preferred_categories=_csv(args.categories),
            preferred_tags=_csv(args.tags),
            preferred_article_categories=_csv(args.article_categories),
            preferred_reading_time_minutes=args.reading_time,
            location=where,
        )
        _emit(engine.get_personalized(prefs, limit=args.limit))
    elif args.command == "related":
        _emit(engine.get_venue_related(args.venue_id, limit=args.limit))
    elif args.command == "feed":
        seen = _csv(args.seen) if args.seen is not None else None
        feed = engine.get_discovery_feed(
            UserContext(seen_content_types=seen),
            limit=args.limit,
            location=where,
            all_or_nothing=args.all_or_nothing,
        )
        if feed.degradation is not None:
            logger.warning(
                "Feed degraded; missing sections: %s",
                ", ".join(s.value for s in feed.degradation.missing_sections),
            )
        _emit(feed)


def _add_common(p: argparse.ArgumentParser, limit: int) -> None:
    p.add_argument("--catalog", type=Path, help="YAML catalog to rank instead of the index.")
    p.add_argument("--limit", type=int, default=limit, help=f"Result count (default: {limit}).")
    p.add_argument("--lat", type=float, help="Reference latitude.")
    p.add_argument("--lng", type=float, help="Reference longitude.")


def _add_ranking(p: argparse.ArgumentParser, timeframe: Timeframe) -> None:
    p.add_argument("--kind", choices=[k.value for k in ContentKind], default=ContentKind.VENUE.value)
    p.add_argument(
        "--timeframe",
        choices=[t.value for t in Timeframe],
        default=timeframe.value,
        help=f"Recency window (default: {timeframe.value}).",
    )
    p.add_argument("--radius", type=float, help=f"Radius in {config.DISTANCE_UNIT}.")
    p.add_argument("--category", help="Only rank this category.")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="thirdplace",
        description="Rank venues and articles for discovery surfaces.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── popular / trending ─────────────────────────────────────────────
    popular = sub.add_parser("popular", help="Popular venues or articles.")
    _add_common(popular, limit=20)
    _add_ranking(popular, Timeframe.MONTH)

    trending = sub.add_parser("trending", help="Trending venues or articles.")
    _add_common(trending, limit=15)
    _add_ranking(trending, Timeframe.WEEK)

    # ── personalized ───────────────────────────────────────────────────
    personalized = sub.add_parser("personalized", help="Recommendations for given preferences.")
    _add_common(personalized, limit=20)
    personalized.add_argument("--categories", help="Comma-separated venue categories.")
    personalized.add_argument("--tags", help="Comma-separated venue tags.")
    personalized.add_argument("--article-categories", help="Comma-separated article categories.")
    personalized.add_argument("--reading-time", type=float, help="Preferred reading time (minutes).")

    # ── related ────────────────────────────────────────────────────────
    related = sub.add_parser("related", help="Content related to one venue.")
    _add_common(related, limit=10)
    related.add_argument("venue_id", help="Venue identifier.")

    # ── feed ───────────────────────────────────────────────────────────
    feed = sub.add_parser("feed", help="Shuffled discovery feed.")
    _add_common(feed, limit=config.FEED_LIMIT)
    feed.add_argument("--seen", help="Comma-separated content types/sections already seen.")
    feed.add_argument(
        "--all-or-nothing",
        action="store_true",
        help="Fail instead of returning a partial feed when a section fails.",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _setup_logging()
    try:
        _run(args)
    except InvalidInputError as exc:
        logger.error("Invalid input: %s", exc)
        sys.exit(2)
    except CandidateRetrievalError as exc:
        logger.error("Could not compute results right now (retryable): %s", exc)
        sys.exit(3)


if __name__ == "__main__":
    main()
