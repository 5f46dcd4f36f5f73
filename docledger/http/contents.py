"""Content routes: stream a document's payload, upload raw payloads."""

from __future__ import annotations

import io
import json

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response, StreamingResponse

from docledger.config import ServiceSettings
from docledger.core.repository import Repository
from docledger.errors import InvalidInputError
from docledger.http.deps import get_metrics, get_repository, get_settings, json_response
from docledger.http.metrics import ServiceMetrics
from docledger.http.params import query_headers, query_param, resource_id_param
from docledger.models.content import Content

router = APIRouter(prefix="/contents", tags=["contents"])


def declared_length(request: Request, limit: int) -> int:
    """Validate ``Content-Length`` against *limit* before the body is read."""
    raw = request.headers.get("content-length")
    if raw is None:
        raise InvalidInputError("missing content-length header")
    try:
        length = int(raw)
    except ValueError as exc:
        raise InvalidInputError(f"invalid content-length header: {raw!r}") from exc
    if length < 0:
        raise InvalidInputError(f"invalid content-length header: {raw!r}")
    if length > limit:
        raise InvalidInputError(f"payload too large: {length} bytes (limit {limit})")
    return length


@router.get("/")
def get_content(request: Request, repository: Repository = Depends(get_repository)) -> Response:
    resource_id = resource_id_param(request)
    query = query_param(request)
    content = repository.select_content(resource_id, query)
    headers = query_headers(resource_id, query)
    headers["Content-Type"] = content.content_type
    headers["Content-Length"] = str(content.size)
    return StreamingResponse(content.chunks(), headers=headers)


@router.get("/revisions/")
def get_content_revisions(
    request: Request, repository: Repository = Depends(get_repository)
) -> Response:
    resource_id = resource_id_param(request)
    query = query_param(request)
    descriptors = []
    for content in repository.select_contents(resource_id, query):
        descriptors.append(content.descriptor().model_dump())
        content.close()
    return json_response(json.dumps(descriptors), query_headers(resource_id, query))


@router.post("/")
async def post_content(
    request: Request,
    repository: Repository = Depends(get_repository),
    settings: ServiceSettings = Depends(get_settings),
    metrics: ServiceMetrics = Depends(get_metrics),
) -> Response:
    content_type = request.headers.get("content-type", "").strip()
    if not content_type:
        raise InvalidInputError("missing content-type header")
    length = declared_length(request, settings.max_content_bytes)

    body = await request.body()
    if len(body) != length:
        raise InvalidInputError(
            f"body length {len(body)} does not match content-length {length}"
        )
    content = Content.from_reader(io.BytesIO(body), size=length, content_type=content_type)
    stored = await run_in_threadpool(repository.put_content, content)
    metrics.record_content(stored.size)
    return json_response(stored.descriptor().model_dump_json())
