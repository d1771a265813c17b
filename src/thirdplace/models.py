"""Domain models used across the engine."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

MAX_TAGS = 20


class ContentKind(StrEnum):
    VENUE = "venue"
    ARTICLE = "article"


class Timeframe(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class TrendDirection(StrEnum):
    RISING = "rising"
    STABLE = "stable"
    DECLINING = "declining"


class FeedSection(StrEnum):
    POPULAR_VENUES = "popular-venues"
    TRENDING_VENUES = "trending-venues"
    POPULAR_ARTICLES = "popular-articles"
    TRENDING_ARTICLES = "trending-articles"


class Coordinates(BaseModel):
    lat: float
    lng: float


class EngagementCounters(BaseModel):
    regulars: int = Field(default=0, ge=0)
    views: int = Field(default=0, ge=0)
    blog_mentions: int = Field(default=0, ge=0)


class CompletenessSignals(BaseModel):
    photo_count: int = Field(default=0, ge=0)
    description_length: int = Field(default=0, ge=0)


class ContentItem(BaseModel):
    id: str
    kind: ContentKind
    category: str | None = None
    tags: frozenset[str] = frozenset()
    engagement: EngagementCounters = Field(default_factory=EngagementCounters)
    coordinates: Coordinates | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _cap_tags(cls, value: object) -> object:
        # Keep the first MAX_TAGS distinct tags in input order; unordered
        # input is sorted first so the kept subset is stable.
        if isinstance(value, (list, tuple)):
            return list(dict.fromkeys(value))[:MAX_TAGS]
        if isinstance(value, (set, frozenset)):
            return sorted(value)[:MAX_TAGS]
        return value

    @property
    def timestamp(self) -> datetime | None:
        return None


class Venue(ContentItem):
    kind: Literal["venue"] = "venue"
    name: str = ""
    created_at: datetime | None = None
    completeness: CompletenessSignals = Field(default_factory=CompletenessSignals)

    @property
    def timestamp(self) -> datetime | None:
        return self.created_at


class Article(ContentItem):
    kind: Literal["article"] = "article"
    title: str = ""
    published_at: datetime | None = None
    reading_time_minutes: int = Field(default=0, ge=0)
    linked_venue_ids: list[str] = Field(default_factory=list)

    @property
    def timestamp(self) -> datetime | None:
        return self.published_at


Content = Annotated[Venue | Article, Field(discriminator="kind")]
content_adapter: TypeAdapter[Venue | Article] = TypeAdapter(Content)


class ArticleEngagement(BaseModel):
    views: int = 0
    reading_time: int = 0
    venue_connections: int = 0
    engagement_score: int = 0


class ScoredItem(BaseModel):
    item: Content
    recommendation_type: str = ""
    popularity_score: int | None = None
    reason_label: str | None = None
    trend_score: int | None = None
    trend_direction: TrendDirection | None = None
    velocity_indicator: str | None = None
    personal_score: int | None = None
    similarity_score: int | None = None
    distance: float | None = None
    distance_label: str | None = None
    published_label: str | None = None
    engagement_metrics: ArticleEngagement | None = None

    @property
    def kind(self) -> ContentKind:
        return ContentKind(self.item.kind)

    @property
    def rank_score(self) -> int:
        """The score the item was ranked by, falling back to zero."""
        for value in (self.popularity_score, self.trend_score):
            if value is not None:
                return value
        return 0


class DiscoveryFeedItem(ScoredItem):
    feed_section: FeedSection
    feed_position: int = 0
    discovery_score: int = 0


class UserPreferences(BaseModel):
    preferred_categories: frozenset[str] = frozenset()
    preferred_tags: frozenset[str] = frozenset()
    preferred_article_categories: frozenset[str] = frozenset()
    preferred_reading_time_minutes: float | None = None
    location: Coordinates | None = None


class UserContext(BaseModel):
    # ``None`` means the caller declared nothing, so no diversity bonus applies.
    seen_content_types: frozenset[str] | None = None
    preferences: UserPreferences | None = None
    location: Coordinates | None = None


class QueryFilters(BaseModel):
    """Filters handed to the candidate source; it must apply them itself."""

    category: str | None = None
    tags: frozenset[str] = frozenset()
    sort_by: Literal["popular", "recent"] = "popular"
    item_ids: frozenset[str] = frozenset()
    linked_venue_id: str | None = None
    near: Coordinates | None = None
    radius: float | None = None


class PartialDegradation(BaseModel):
    missing_sections: list[FeedSection] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


class DiscoveryFeed(BaseModel):
    items: list[DiscoveryFeedItem] = Field(default_factory=list)
    degradation: PartialDegradation | None = None

    def __len__(self) -> int:
        return len(self.items)


class PersonalizedResult(BaseModel):
    venues: list[ScoredItem] = Field(default_factory=list)
    articles: list[ScoredItem] = Field(default_factory=list)
    total_score: int = 0
    personalization_factors: list[str] = Field(default_factory=list)


class VenueRelatedResult(BaseModel):
    venue: Venue | None = None
    similar_venues: list[ScoredItem] = Field(default_factory=list)
    nearby_venues: list[ScoredItem] = Field(default_factory=list)
    related_articles: list[ScoredItem] = Field(default_factory=list)
