"""Discovery feed composition: merge ranked sections into one shuffled feed."""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence

from thirdplace import config
from thirdplace.dedupe import dedupe
from thirdplace.models import DiscoveryFeedItem, FeedSection, ScoredItem, UserContext

logger = logging.getLogger(__name__)


def shuffle(items: Sequence[DiscoveryFeedItem], rng: random.Random) -> list[DiscoveryFeedItem]:
    """Fisher–Yates shuffle driven by ``rng.random()``; the input is left untouched."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


class DiscoveryFeedComposer:
    """Builds the mixed home-surface feed.

    Order is randomized on every call so the surface does not look the same
    across refreshes; pass a seeded ``random.Random`` for reproducible output.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        diversity_bonus: int = config.DIVERSITY_BONUS,
    ) -> None:
        self._rng = rng or random.Random()
        self._diversity_bonus = diversity_bonus

    def discovery_score(self, item: DiscoveryFeedItem, context: UserContext) -> int:
        score = item.rank_score
        seen = context.seen_content_types
        if seen is not None and item.item.kind not in seen and item.feed_section.value not in seen:
            score += self._diversity_bonus
        return score

    def compose(
        self,
        sections: Mapping[FeedSection, Sequence[ScoredItem]],
        limit: int,
        context: UserContext | None = None,
    ) -> list[DiscoveryFeedItem]:
        context = context or UserContext()

        tagged: list[DiscoveryFeedItem] = []
        for section in FeedSection:
            for scored in sections.get(section, ()):
                tagged.append(
                    DiscoveryFeedItem.model_validate({**dict(scored), "feed_section": section})
                )

        unique = dedupe(tagged)
        picked = shuffle(unique, self._rng)[:limit]

        feed: list[DiscoveryFeedItem] = []
        for position, item in enumerate(picked):
            item.feed_position = position
            item.discovery_score = self.discovery_score(item, context)
            feed.append(item)

        logger.info(
            "Composed discovery feed: %d candidates → %d items (limit %d)",
            len(tagged),
            len(feed),
            limit,
        )
        return feed
