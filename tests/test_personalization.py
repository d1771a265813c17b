"""Unit tests for preference-based re-ranking."""

from thirdplace.models import Article, Coordinates, ScoredItem, UserPreferences, Venue
from thirdplace.personalization import (
    personal_bonus,
    personalization_factors,
    personalize,
    recommendation_quality,
)


def _venue(
    venue_id: str,
    popularity: int,
    category: str | None = None,
    tags: list[str] | None = None,
) -> ScoredItem:
    return ScoredItem(
        item=Venue(id=venue_id, category=category, tags=tags or []),
        popularity_score=popularity,
    )


def _article(
    article_id: str,
    popularity: int,
    category: str | None = None,
    reading_time: int = 0,
) -> ScoredItem:
    return ScoredItem(
        item=Article(id=article_id, category=category, reading_time_minutes=reading_time),
        popularity_score=popularity,
    )


PREFS = UserPreferences(
    preferred_categories={"cafe"},
    preferred_tags={"wifi", "quiet", "outdoor"},
    preferred_article_categories={"guides"},
    preferred_reading_time_minutes=8,
)


class TestPersonalBonus:
    def test_venue_category_and_tags(self) -> None:
        scored = _venue("v", 20, category="cafe", tags=["wifi", "quiet", "dogs"])
        assert personal_bonus(scored, PREFS) == 10 + 2 * 3

    def test_venue_article_category_does_not_apply(self) -> None:
        assert personal_bonus(_venue("v", 0, category="guides"), PREFS) == 0

    def test_article_category_and_reading_time(self) -> None:
        assert personal_bonus(_article("a", 0, category="guides", reading_time=11), PREFS) == 15
        assert personal_bonus(_article("a", 0, category="guides", reading_time=12), PREFS) == 10

    def test_reading_time_only_when_preferred(self) -> None:
        prefs = UserPreferences(preferred_article_categories={"guides"})
        assert personal_bonus(_article("a", 0, reading_time=8), prefs) == 0

    def test_articles_ignore_tags(self) -> None:
        article = ScoredItem(item=Article(id="a", tags=["wifi"]), popularity_score=0)
        assert personal_bonus(article, PREFS) == 0


class TestPersonalize:
    def test_never_below_popularity(self) -> None:
        items = [
            _venue("a", 40),
            _venue("b", 5, category="cafe", tags=["outdoor"]),
            _article("c", 12, category="news", reading_time=30),
        ]
        for scored in personalize(items, PREFS):
            assert scored.personal_score is not None
            assert scored.popularity_score is not None
            assert scored.personal_score >= scored.popularity_score

    def test_preferences_reorder(self) -> None:
        items = [_venue("plain", 20), _venue("match", 12, category="cafe")]
        ranked = personalize(items, PREFS)
        assert [s.item.id for s in ranked] == ["match", "plain"]
        assert ranked[0].personal_score == 22
        assert ranked[0].recommendation_type == "personalized"

    def test_empty_preferences_keep_everything_in_order(self) -> None:
        items = [_venue("a", 30), _venue("b", 30), _venue("c", 10)]
        ranked = personalize(items, UserPreferences())
        assert [s.item.id for s in ranked] == ["a", "b", "c"]
        assert [s.personal_score for s in ranked] == [30, 30, 10]

    def test_inputs_not_mutated(self) -> None:
        item = _venue("a", 30, category="cafe")
        personalize([item], PREFS)
        assert item.personal_score is None


class TestFactors:
    def test_factors(self) -> None:
        prefs = PREFS.model_copy(update={"location": Coordinates(lat=51.5, lng=-0.1)})
        assert personalization_factors(prefs) == [
            "venue-categories",
            "venue-amenities",
            "article-interests",
            "location",
        ]

    def test_empty(self) -> None:
        assert personalization_factors(UserPreferences()) == []


class TestQuality:
    def test_mean_of_personal_scores(self) -> None:
        venues = personalize([_venue("a", 10), _venue("b", 21)], UserPreferences())
        assert recommendation_quality(venues, []) == 16

    def test_falls_back_to_popularity(self) -> None:
        assert recommendation_quality([_venue("a", 8)]) == 8

    def test_empty(self) -> None:
        assert recommendation_quality([], []) == 0
