"""Revision filters and store statistics."""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from docledger.errors import BadQueryError


class Query(BaseModel):
    """Filter applied to revision lookups.

    Empty ``tags`` match every revision; otherwise a revision matches when
    its tags intersect the query's. ``author_id=None`` matches every author,
    while ``author_id=""`` matches only revisions whose author is the empty
    string. Both predicates must hold.
    """

    model_config = ConfigDict(frozen=True)

    tags: frozenset[str] = Field(default_factory=frozenset)
    author_id: str | None = None

    def matches(self, tags: Iterable[str], author_id: str) -> bool:
        if self.tags and self.tags.isdisjoint(tags):
            return False
        if self.author_id is not None and self.author_id != author_id:
            return False
        return True


EMPTY_QUERY = Query()


def build_query(tags: Iterable[str] | None = None, author_id: str | None = None) -> Query:
    """Validate and build a :class:`Query`.

    Raises
    ------
    BadQueryError
        If any tag is blank.
    """
    cleaned = []
    for tag in tags or ():
        if not isinstance(tag, str) or not tag.strip():
            raise BadQueryError("query tags must be non-empty")
        cleaned.append(tag)
    return Query(tags=frozenset(cleaned), author_id=author_id)


class Statistics(BaseModel):
    """Counters over live (not deleted) revisions."""

    model_config = ConfigDict(frozen=True)

    total_revisions: int = 0
    distinct_resources: int = 0
    total_bytes: int = 0
