from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from core.normalize import normalize_key


@dataclass(frozen=True)
class Category:
    name: str
    pct_change: float


@dataclass(frozen=True)
class Entity:
    name: str
    impressions: float


@dataclass(frozen=True)
class EntityDetail:
    """One advertiser across two periods; period A is the prior (baseline) period."""

    name: str
    impressions_a: Optional[float] = None
    impressions_b: Optional[float] = None
    reach_a: Optional[float] = None
    reach_b: Optional[float] = None
    frequency_a: Optional[float] = None
    frequency_b: Optional[float] = None


@dataclass(frozen=True)
class CategoryTable:
    categories: Tuple[Category, ...]
    overall_pct_change: float
    overall_from_sentinel: bool
    positives: Tuple[Category, ...]
    negatives: Tuple[Category, ...]
    columns: Dict[str, str] = field(default_factory=dict)
    dropped_rows: int = 0

    @property
    def top_positive(self) -> List[str]:
        return [c.name for c in self.positives[:2]]

    @property
    def top_negative(self) -> List[str]:
        return [c.name for c in self.negatives[:2]]

    @property
    def max_abs(self) -> float:
        m = max((abs(c.pct_change) for c in self.categories), default=0.0)
        return m if m > 0 else 1.0


@dataclass(frozen=True)
class EntityIndex:
    by_category: Dict[str, List[Entity]]
    unmatched: Tuple[str, ...] = ()
    columns: Dict[str, str] = field(default_factory=dict)

    def entities_for(self, category: Optional[str]) -> List[Entity]:
        if not category:
            return []
        hit = self.by_category.get(category)
        if hit is not None:
            return list(hit)
        key = normalize_key(category)
        for name, entities in self.by_category.items():
            if normalize_key(name) == key:
                return list(entities)
        return []


@dataclass(frozen=True)
class EnrichmentResult:
    """Year-over-year detail index, or an empty one with the reason it is missing."""

    details: Mapping[str, EntityDetail]
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def get(self, name: Optional[str]) -> Optional[EntityDetail]:
        if not name:
            return None
        return self.details.get(normalize_key(name))


@dataclass(frozen=True)
class ReconciledDataset:
    categories: CategoryTable
    entities: EntityIndex
    details: EnrichmentResult
    files: Tuple[str, ...] = ()

    def category_at(self, index: Optional[int]) -> Optional[Category]:
        if index is None or not (0 <= index < len(self.categories.categories)):
            return None
        return self.categories.categories[index]

    def entities_at(self, index: Optional[int]) -> List[Entity]:
        category = self.category_at(index)
        return self.entities.entities_for(category.name if category else None)
