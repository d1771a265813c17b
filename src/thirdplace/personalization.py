"""Re-weight popularity-ranked items with a user's declared preferences."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from thirdplace.models import Article, ScoredItem, UserPreferences, Venue
from thirdplace.popularity import round_score

logger = logging.getLogger(__name__)

_BONUS_CATEGORY = 10
_W_TAG_MATCH = 3
_BONUS_READING_TIME = 5
_READING_TIME_TOLERANCE = 3


def personal_bonus(scored: ScoredItem, prefs: UserPreferences) -> int:
    """Additive preference bonus for one item; never negative."""
    item = scored.item
    bonus = 0
    if isinstance(item, Venue):
        if item.category is not None and item.category in prefs.preferred_categories:
            bonus += _BONUS_CATEGORY
        bonus += _W_TAG_MATCH * len(item.tags & prefs.preferred_tags)
    elif isinstance(item, Article):
        if item.category is not None and item.category in prefs.preferred_article_categories:
            bonus += _BONUS_CATEGORY
        preferred = prefs.preferred_reading_time_minutes
        if preferred is not None and abs(item.reading_time_minutes - preferred) <= _READING_TIME_TOLERANCE:
            bonus += _BONUS_READING_TIME
    return bonus


def personalize(items: Iterable[ScoredItem], prefs: UserPreferences) -> list[ScoredItem]:
    """Annotate ``personal_score`` and re-sort descending.

    Nothing is dropped: an item matching no preference keeps its popularity
    score. Ties keep the incoming order.
    """
    result: list[ScoredItem] = []
    for scored in items:
        personal = scored.model_copy(
            update={
                "personal_score": (scored.popularity_score or 0) + personal_bonus(scored, prefs),
                "recommendation_type": "personalized",
            }
        )
        result.append(personal)
    result.sort(key=lambda s: -(s.personal_score or 0))
    logger.info("Personalized %d items", len(result))
    return result


def personalization_factors(prefs: UserPreferences) -> list[str]:
    factors: list[str] = []
    if prefs.preferred_categories:
        factors.append("venue-categories")
    if prefs.preferred_tags:
        factors.append("venue-amenities")
    if prefs.preferred_article_categories:
        factors.append("article-interests")
    if prefs.location is not None:
        factors.append("location")
    return factors


def recommendation_quality(*groups: Iterable[ScoredItem]) -> int:
    """Mean personal (or popularity) score across all groups, rounded."""
    scores = [
        s.personal_score if s.personal_score is not None else (s.popularity_score or 0)
        for group in groups
        for s in group
    ]
    if not scores:
        return 0
    return round_score(sum(scores) / len(scores))
