"""
Dalil - Catalog Models
=======================
Read-only view of a recommendable venue / experience.

``CatalogItem`` is what every retrieval stage returns.  Taxonomy labels
are free text; comparisons against them are case-insensitive.
``embedding`` is ``None`` for rows that were never embedded — those rows
are skipped by vector scoring but still reachable by text search.
"""

from __future__ import annotations

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

# ── Type Aliases ──────────────────────────────────────────────────────
CatalogRecord = dict[str, str | bool | list[float] | None]

TEXT_FIELDS: tuple[str, ...] = ("name", "description", "information")


class CatalogItem(BaseModel):
    """A single catalog row (activity, venue, hotel, ...)."""

    model_config = ConfigDict(frozen=True)

    id: str
    original_id: str | None = None
    name: str
    slug: str | None = None
    category: str
    subcategory: str | None = None
    description: str | None = None
    information: str | None = None
    timing: str | None = None
    pricing: str | None = None
    booking_type: str | None = None
    address: str | None = None
    redirect_url: str | None = None
    embedding: list[float] | None = Field(default=None, repr=False)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


    def embedding_text(self) -> str:
        """Text fed to the embedding model when the item is ingested."""
        parts = [self.name, self.description, self.information, self.category, self.subcategory]
        return "\n".join(p for p in parts if p)


    def to_record(self, dim: int) -> CatalogRecord:
        """Flatten into a LanceDB row; missing vectors become zero vectors flagged ``has_embedding=False``."""
        record: CatalogRecord = self.model_dump(exclude={"embedding"})
        if self.embedding and len(self.embedding) == dim:
            record["vector"] = [float(v) for v in self.embedding]
            record["has_embedding"] = True
        else:
            record["vector"] = [0.0] * dim
            record["has_embedding"] = False
        return record


    @classmethod
    def from_record(cls, record: dict) -> CatalogItem:
        """Build an item from a LanceDB row (extra columns such as ``_distance`` are ignored)."""
        fields = {k: record.get(k) for k in cls.model_fields if k != "embedding"}
        if record.get("has_embedding") and record.get("vector") is not None:
            fields["embedding"] = [float(v) for v in record["vector"]]
        return cls(**fields)


class ScoredItem(NamedTuple):
    """A catalog item with its cosine distance to the query vector (lower is closer)."""

    item: CatalogItem
    distance: float
