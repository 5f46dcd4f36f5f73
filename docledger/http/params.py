"""Query-string parsing shared by the ledger, content and journal routes.

Recognised parameters:

``resource_id``
    Canonical identifier; required by every route that reads or appends.
``query.tags``
    Comma-separated tags; the revision matches when any tag matches.
``query.author_id``
    Exact author match. Note the asymmetry: an absent parameter matches
    every author, while ``query.author_id=`` (present but empty) matches only
    revisions whose author is the empty string.
"""

from __future__ import annotations

from fastapi import Request

from docledger.errors import InvalidInputError
from docledger.models.identifier import parse_identifier
from docledger.models.query import Query, build_query


def resource_id_param(request: Request) -> str:
    value = request.query_params.get("resource_id")
    if not value:
        raise InvalidInputError("missing resource_id query")
    try:
        return parse_identifier(value)
    except InvalidInputError as exc:
        raise InvalidInputError(f"error parsing resource_id query: {value!r}") from exc


def query_param(request: Request) -> Query:
    params = request.query_params
    raw_tags = params.get("query.tags")
    tags = raw_tags.split(",") if raw_tags else None
    return build_query(tags=tags, author_id=params.get("query.author_id"))


def query_headers(resource_id: str, query: Query) -> dict[str, str]:
    headers = {"X-Resource-ID": resource_id}
    if query.tags:
        headers["X-Query-Tags"] = ",".join(sorted(query.tags))
    if query.author_id is not None:
        headers["X-Query-Author-ID"] = query.author_id
    return headers
