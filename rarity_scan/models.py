"""Data classes for tokens, collection specs, and rarity scorecards."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


class ConfigError(ValueError):
    """Invalid run configuration, detected before any fetching starts."""


@dataclass(frozen=True)
class Token:
    id: int
    attrs: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))

    @property
    def is_empty(self) -> bool:
        return not self.attrs


@dataclass(frozen=True)
class CollectionSpec:
    count: int
    base_url: str

    def __post_init__(self) -> None:
        if self.count <= 0:
            raise ConfigError(f"count must be a positive integer, got {self.count}")
        if not self.base_url:
            raise ConfigError("base_url must not be empty")


@dataclass(frozen=True)
class ScoreCard:
    id: int
    rarity: float


@dataclass(frozen=True)
class RankedToken:
    rank: int  # 1-based
    id: int
    rarity: float

    def to_dict(self) -> dict:
        return {"rank": self.rank, "id": self.id, "rarity": self.rarity}
