from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from spendwise.schemas.common import Direction


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    # Stored category rows call the direction "type"
    direction: Direction = Field(validation_alias=AliasChoices("direction", "type"))
    icon: str | None = None


class CategoryTaxonomy(Mapping[str, Category]):
    """Read-only allow-list of categories keyed by id.

    Every id belongs to exactly one direction. Callers build a taxonomy from
    their persisted category list and hand the same snapshot to every stage
    of a classification call.
    """

    def __init__(self, categories: Iterable[Category] = ()) -> None:
        entries: dict[str, Category] = {}
        for cat in categories:
            if cat.id in entries:
                raise ValueError(f"Duplicate category id '{cat.id}' in taxonomy")
            entries[cat.id] = cat
        self._entries = entries

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> CategoryTaxonomy:
        return cls(Category.model_validate(dict(r)) for r in records)

    def __getitem__(self, category_id: str) -> Category:
        return self._entries[category_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CategoryTaxonomy({list(self._entries)!r})"

    def by_direction(self, direction: str) -> list[Category]:
        return [c for c in self._entries.values() if c.direction == direction]

    @property
    def income(self) -> list[Category]:
        return self.by_direction("income")

    @property
    def expense(self) -> list[Category]:
        return self.by_direction("expense")

    def contains(self, category_id: Any, direction: str) -> bool:
        """True when ``category_id`` exists and belongs to ``direction``."""
        if not isinstance(category_id, str):
            return False
        cat = self._entries.get(category_id)
        return cat is not None and cat.direction == direction
