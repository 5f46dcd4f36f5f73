"""Ledger routes: read, create, append, fork and list revisions."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import ValidationError

from docledger.core.repository import Repository
from docledger.errors import InvalidInputError
from docledger.http.deps import get_metrics, get_repository, json_response, ledgers_response
from docledger.http.metrics import ServiceMetrics
from docledger.http.params import query_headers, query_param, resource_id_param
from docledger.models.identifier import new_identifier
from docledger.models.ledger import LedgerInput

router = APIRouter(prefix="/ledgers", tags=["ledgers"])


async def read_ledger_input(request: Request) -> LedgerInput:
    """Decode a JSON ledger body; anything but ``application/json`` is rejected."""
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if media_type != "application/json":
        raise InvalidInputError("expected content-type application/json")
    body = await request.body()
    try:
        return LedgerInput.model_validate_json(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "body"
        raise InvalidInputError(f"invalid ledger body ({field}: {first['msg']})") from exc


def resource_response(resource_id: str) -> Response:
    return json_response(json.dumps({"resource_id": resource_id}))


@router.get("/")
def get_ledger(request: Request, repository: Repository = Depends(get_repository)) -> Response:
    resource_id = resource_id_param(request)
    query = query_param(request)
    ledger = repository.select_ledger(resource_id, query)
    return json_response(ledger.model_dump_json(), query_headers(resource_id, query))


@router.post("/")
async def post_ledger(
    request: Request,
    repository: Repository = Depends(get_repository),
    metrics: ServiceMetrics = Depends(get_metrics),
) -> Response:
    body = await read_ledger_input(request)
    ledger = body.to_ledger(new_identifier())
    stored = await run_in_threadpool(repository.insert_ledger, ledger)
    metrics.record_revision("insert")
    return resource_response(stored.resource_id)


@router.put("/")
async def put_ledger(
    request: Request,
    repository: Repository = Depends(get_repository),
    metrics: ServiceMetrics = Depends(get_metrics),
) -> Response:
    resource_id = resource_id_param(request)
    body = await read_ledger_input(request)
    stored = await run_in_threadpool(
        repository.append_ledger, resource_id, body.to_ledger(resource_id)
    )
    metrics.record_revision("append")
    return resource_response(stored.resource_id)


@router.put("/fork/")
async def fork_ledger(
    request: Request,
    repository: Repository = Depends(get_repository),
    metrics: ServiceMetrics = Depends(get_metrics),
) -> Response:
    resource_id = resource_id_param(request)
    body = await read_ledger_input(request)
    stored = await run_in_threadpool(
        repository.fork_ledger, resource_id, body.to_ledger(resource_id)
    )
    metrics.record_revision("fork")
    return resource_response(stored.resource_id)


@router.get("/revisions/")
def get_revisions(request: Request, repository: Repository = Depends(get_repository)) -> Response:
    resource_id = resource_id_param(request)
    query = query_param(request)
    ledgers = repository.select_ledgers(resource_id, query)
    return ledgers_response(ledgers, query_headers(resource_id, query))


@router.get("/fork/revisions/")
def get_fork_revisions(
    request: Request, repository: Repository = Depends(get_repository)
) -> Response:
    resource_id = resource_id_param(request)
    ledgers = repository.select_fork_ledgers(resource_id)
    return ledgers_response(ledgers, {"X-Resource-ID": resource_id})
