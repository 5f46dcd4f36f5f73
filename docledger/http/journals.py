"""Journal routes: store a payload and its ledger in one multipart request.

The request carries two parts: ``content`` (the payload bytes, ideally with
its own content type) and ``document`` (the ledger JSON). The content is
stored first; the ledger then references it by address.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile

from docledger.config import ServiceSettings
from docledger.core.hasher import AddressEncoding
from docledger.core.repository import Repository
from docledger.errors import InvalidInputError
from docledger.http.contents import declared_length
from docledger.http.deps import get_metrics, get_repository, get_settings, json_response
from docledger.http.metrics import ServiceMetrics
from docledger.http.params import resource_id_param
from docledger.models.content import DEFAULT_CONTENT_TYPE, Content
from docledger.models.identifier import new_identifier
from docledger.models.ledger import Ledger, LedgerInput

router = APIRouter(prefix="/journals", tags=["journals"])


async def _part_bytes(form: FormData, name: str) -> tuple[bytes, str]:
    part = form.get(name)
    if part is None:
        raise InvalidInputError(f"missing multipart part {name!r}")
    if isinstance(part, UploadFile):
        data = await part.read()
        await part.close()
        return data, part.content_type or DEFAULT_CONTENT_TYPE
    return part.encode("utf-8"), DEFAULT_CONTENT_TYPE


async def read_journal(
    request: Request, limit: int, encoding: AddressEncoding = "hex"
) -> tuple[Content, LedgerInput]:
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if media_type != "multipart/form-data":
        raise InvalidInputError("expected content-type multipart/form-data")
    if request.headers.get("content-length") is not None:
        declared_length(request, limit)

    form = await request.form()
    try:
        payload, content_type = await _part_bytes(form, "content")
        document, _ = await _part_bytes(form, "document")
    finally:
        await form.close()
    if len(payload) + len(document) > limit:
        raise InvalidInputError(f"payload too large (limit {limit})")

    try:
        body = LedgerInput.model_validate_json(document)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"]) or "document"
        raise InvalidInputError(f"invalid document part ({field}: {first['msg']})") from exc
    return Content.from_bytes(payload, content_type, encoding), body


def store_journal(
    repository: Repository,
    content: Content,
    body: LedgerInput,
    append_to: str | None = None,
) -> Ledger:
    stored = repository.put_content(content)
    resource_id = append_to or new_identifier()
    ledger = body.to_ledger(
        resource_id,
        resource_address=stored.address,
        resource_size=stored.size,
        resource_content_type=stored.content_type,
    )
    if append_to is not None:
        return repository.append_ledger(append_to, ledger)
    return repository.insert_ledger(ledger)


@router.post("/")
async def post_journal(
    request: Request,
    repository: Repository = Depends(get_repository),
    settings: ServiceSettings = Depends(get_settings),
    metrics: ServiceMetrics = Depends(get_metrics),
) -> Response:
    content, body = await read_journal(
        request, settings.max_journal_bytes, settings.address_encoding
    )
    stored = await run_in_threadpool(store_journal, repository, content, body)
    metrics.record_content(stored.resource_size)
    metrics.record_revision("insert")
    return json_response(json.dumps({"resource_id": stored.resource_id}))


@router.put("/")
async def put_journal(
    request: Request,
    repository: Repository = Depends(get_repository),
    settings: ServiceSettings = Depends(get_settings),
    metrics: ServiceMetrics = Depends(get_metrics),
) -> Response:
    resource_id = resource_id_param(request)
    content, body = await read_journal(
        request, settings.max_journal_bytes, settings.address_encoding
    )
    stored = await run_in_threadpool(store_journal, repository, content, body, resource_id)
    metrics.record_content(stored.resource_size)
    metrics.record_revision("append")
    return json_response(json.dumps({"resource_id": stored.resource_id}))
