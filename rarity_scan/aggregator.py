"""Attribute frequency aggregation across a whole collection."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Hashable, Mapping

from rarity_scan.models import Token


@dataclass(frozen=True)
class CollectionStats:
    """Read-only snapshot produced by :meth:`Aggregator.finalize`."""

    tokens: tuple[Token, ...]
    values_in_category: Mapping[str, frozenset[str]]
    value_counts: Mapping[Hashable, int]
    per_category: bool = False

    def value_key(self, cate: str, value: str) -> Hashable:
        return (cate, value) if self.per_category else value

    def count_with_value(self, cate: str, value: str) -> int:
        return self.value_counts.get(self.value_key(cate, value), 0)

    def category_size(self, cate: str) -> int:
        return len(self.values_in_category.get(cate, ()))


class Aggregator:
    """Single-consumer accumulator for fetched tokens.

    Counts are keyed by the raw attribute value, so the same value string
    under two categories shares one count. ``per_category=True`` keys them
    by ``(category, value)`` instead.

    Not thread-safe: exactly one thread may call :meth:`record`.
    """

    def __init__(self, count: int, per_category: bool = False) -> None:
        self.count = count
        self.per_category = per_category
        self._tokens: list[Token | None] = [None] * count
        self._values_in_category: dict[str, set[str]] = {}
        self._value_counts: dict[Hashable, int] = {}
        self._finalized = False

    @property
    def recorded(self) -> int:
        return sum(1 for t in self._tokens if t is not None)

    def record(self, token: Token) -> None:
        if self._finalized:
            raise RuntimeError("Aggregator already finalized")
        if not 0 <= token.id < self.count:
            raise ValueError(f"token id {token.id} out of range [0, {self.count})")
        if self._tokens[token.id] is not None:
            raise ValueError(f"token {token.id} recorded twice")

        self._tokens[token.id] = token
        for cate, value in token.attrs.items():
            self._values_in_category.setdefault(cate, set()).add(value)
            key = (cate, value) if self.per_category else value
            self._value_counts[key] = self._value_counts.get(key, 0) + 1

    def finalize(self) -> CollectionStats:
        """Close the aggregator and return its frozen stats.

        Slots never recorded (failed or undispatched fetches) become tokens
        with no attributes.
        """
        if self._finalized:
            raise RuntimeError("Aggregator already finalized")
        self._finalized = True
        tokens = tuple(t if t is not None else Token(id=i) for i, t in enumerate(self._tokens))
        return CollectionStats(
            tokens=tokens,
            values_in_category=MappingProxyType({c: frozenset(v) for c, v in self._values_in_category.items()}),
            value_counts=MappingProxyType(dict(self._value_counts)),
            per_category=self.per_category,
        )
