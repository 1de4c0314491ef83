"""Rarity scoring and top-N ranking over finalized collection stats."""

from __future__ import annotations

from typing import Sequence

from rarity_scan.aggregator import CollectionStats
from rarity_scan.models import RankedToken, ScoreCard, Token

DEFAULT_TOP = 5


def score(token: Token, stats: CollectionStats) -> ScoreCard:
    """Sum of 1 / (tokens carrying the value * distinct values in its category)."""
    rarity = 0.0
    for cate, value in token.attrs.items():
        count_with_value = stats.count_with_value(cate, value)
        values_in_category = stats.category_size(cate)
        if count_with_value and values_in_category:
            rarity += 1 / (count_with_value * values_in_category)
    return ScoreCard(id=token.id, rarity=rarity)


def score_all(stats: CollectionStats) -> list[ScoreCard]:
    return [score(token, stats) for token in stats.tokens]


def rank(cards: Sequence[ScoreCard], n: int = DEFAULT_TOP) -> list[RankedToken]:
    """Top *n* cards by descending rarity; ties keep their input order.

    Returns fewer than *n* entries when fewer cards exist.
    """
    if n <= 0:
        return []
    ordered = sorted(cards, key=lambda c: c.rarity, reverse=True)
    return [RankedToken(rank=i, id=c.id, rarity=c.rarity) for i, c in enumerate(ordered[:n], 1)]
