"""Preference-weighted ranking for digest selection."""

import math
from collections.abc import Iterable, Mapping

from loguru import logger

from ..models import EnrichedArticle, RankedArticle

# Blend of learned preference and source popularity
TAG_WEIGHT = 0.7
POPULARITY_WEIGHT = 0.3

# Weight for tags the user has never reacted to
NEUTRAL_WEIGHT = 1.0


class PreferenceRanker:
    """Ranks enriched articles by learned tag preference and popularity.

    Score = 0.7 * tag_score + 0.3 * log10(popularity + 1), where tag_score
    sums the learned weight of each tag. Tags without a learned weight
    count as NEUTRAL_WEIGHT rather than zero, so untried topics still
    compete. The log dampens runaway popularity so preference is not
    drowned out.
    """

    def __init__(
        self,
        tag_weight: float = TAG_WEIGHT,
        popularity_weight: float = POPULARITY_WEIGHT,
        neutral_weight: float = NEUTRAL_WEIGHT,
    ):
        self.tag_weight = tag_weight
        self.popularity_weight = popularity_weight
        self.neutral_weight = neutral_weight

    def tag_score(self, tags: Iterable[str], weights: Mapping[str, float]) -> float:
        return sum(weights.get(tag, self.neutral_weight) for tag in tags)

    def popularity_score(self, popularity: int) -> float:
        return math.log10(popularity + 1)

    def score(self, article: EnrichedArticle, weights: Mapping[str, float]) -> float:
        """Calculate the blended score for a single article.

        Args:
            article: Article to score
            weights: Learned tag weights

        Returns:
            Combined score
        """
        return (
            self.tag_weight * self.tag_score(article.tags, weights)
            + self.popularity_weight * self.popularity_score(article.popularity)
        )

    def rank(
        self,
        articles: Iterable[EnrichedArticle],
        weights: Mapping[str, float],
        limit: int | None = None,
    ) -> list[RankedArticle]:
        """Score and order articles.

        Args:
            articles: Articles to rank
            weights: Learned tag weights
            limit: Keep only the top N when given

        Returns:
            Articles sorted by score descending, ties by id ascending
        """
        ranked = [
            RankedArticle(article=article, score=self.score(article, weights))
            for article in articles
        ]
        ranked.sort(key=lambda r: (-r.score, r.article.id))

        if ranked:
            logger.info(
                f"Ranked {len(ranked)} articles "
                f"with scores {ranked[0].score:.3f} to {ranked[-1].score:.3f}"
            )

        if limit is not None:
            ranked = ranked[:limit]
        return ranked
