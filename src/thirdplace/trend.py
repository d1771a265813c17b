"""Trend scoring: recency bonus plus an engagement-velocity estimate."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import NamedTuple, Protocol

from thirdplace.models import (
    Article,
    ContentItem,
    ScoredItem,
    Timeframe,
    TrendDirection,
)
from thirdplace.popularity import round_score
from thirdplace.recency import age_in_days, format_relative_age

logger = logging.getLogger(__name__)

# (max age in days, bonus), checked in order.
_VENUE_AGE_BONUS: list[tuple[float, float]] = [(7, 20.0), (30, 10.0), (90, 5.0)]
_ARTICLE_AGE_BONUS: list[tuple[float, float]] = [(1, 25.0), (7, 15.0), (30, 8.0)]


class Velocity(NamedTuple):
    value: float
    direction: TrendDirection


class VelocityEstimator(Protocol):
    """Estimates how fast an item is currently accruing engagement."""

    def estimate(self, item: ContentItem, age_days: float, timeframe: Timeframe) -> Velocity: ...


class NoSignalEstimator:
    """Used when no real velocity signal is available: zero, stable."""

    def estimate(self, item: ContentItem, age_days: float, timeframe: Timeframe) -> Velocity:
        return Velocity(0.0, TrendDirection.STABLE)


class AccrualRateEstimator:
    """Approximate velocity as lifetime engagement per day of age.

    Cumulative counters are all the index exposes, so this favours young items
    that have already gathered engagement. Velocity is capped per kind; the
    direction is ``rising`` above ``rising_rate`` engagements/day and
    ``declining`` for items older than ``stale_after_days`` accruing less than
    ``declining_rate``.
    """

    _CAPS: dict[str, float] = {"venue": 15.0, "article": 20.0}

    def __init__(
        self,
        rising_rate: float = 1.0,
        declining_rate: float = 0.1,
        stale_after_days: float = 90.0,
    ) -> None:
        self._rising_rate = rising_rate
        self._declining_rate = declining_rate
        self._stale_after = stale_after_days

    def estimate(self, item: ContentItem, age_days: float, timeframe: Timeframe) -> Velocity:
        e = item.engagement
        if isinstance(item, Article):
            accrued = e.views * 0.1 + len(item.linked_venue_ids)
        else:
            accrued = e.regulars + e.blog_mentions * 0.5
        rate = accrued / max(age_days, 1.0)
        value = min(self._CAPS[item.kind], rate)

        if rate >= self._rising_rate:
            direction = TrendDirection.RISING
        elif age_days > self._stale_after and rate < self._declining_rate:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE
        return Velocity(value, direction)


def _age_bonus(age_days: float, table: list[tuple[float, float]]) -> float:
    for max_age, bonus in table:
        if age_days <= max_age:
            return bonus
    return 0.0


class TrendScorer:
    """Scores items by how recently they appeared and how fast they are moving."""

    def __init__(self, estimator: VelocityEstimator | None = None) -> None:
        self._estimator: VelocityEstimator = estimator or NoSignalEstimator()

    def age_bonus(self, item: ContentItem, now: datetime) -> float:
        age = age_in_days(item.timestamp, now)
        table = _ARTICLE_AGE_BONUS if isinstance(item, Article) else _VENUE_AGE_BONUS
        return _age_bonus(age, table)

    def score(
        self, item: ContentItem, timeframe: Timeframe | str, now: datetime
    ) -> tuple[int, TrendDirection]:
        """Return ``(trend_score, trend_direction)`` for a single item."""
        age = age_in_days(item.timestamp, now)
        velocity = self._estimator.estimate(item, age, Timeframe(timeframe))
        total = self.age_bonus(item, now) + max(0.0, velocity.value)
        return round_score(total), velocity.direction

    def annotate(
        self, item: ContentItem, timeframe: Timeframe | str, now: datetime
    ) -> ScoredItem:
        trend_score, direction = self.score(item, timeframe, now)
        scored = ScoredItem(
            item=item,
            recommendation_type="trending",
            trend_score=trend_score,
            trend_direction=direction,
        )
        if isinstance(item, Article):
            scored.velocity_indicator = (
                "high" if direction is TrendDirection.RISING else "moderate"
            )
            scored.published_label = format_relative_age(item.published_at, now)
        return scored

    def rank(
        self,
        items: Iterable[ContentItem],
        timeframe: Timeframe | str,
        now: datetime,
    ) -> list[ScoredItem]:
        """Score and sort by trend score, descending and stable."""
        scored = [self.annotate(item, timeframe, now) for item in items]
        ranked = sorted(scored, key=lambda s: -(s.trend_score or 0))
        logger.info(
            "Ranked %d items by trend; top score=%d",
            len(ranked),
            ranked[0].trend_score if ranked else 0,
        )
        return ranked

