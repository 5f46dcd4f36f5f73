"""Request-scoped access to the collaborators stored on ``app.state``."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import Response
from pydantic import TypeAdapter

from docledger.config import ServiceSettings
from docledger.core.repository import Repository
from docledger.http.errors import JSON_CONTENT_TYPE
from docledger.http.metrics import ServiceMetrics
from docledger.models.ledger import Ledger

_LEDGER_LIST = TypeAdapter(list[Ledger])


def get_repository(request: Request) -> Repository:
    return request.app.state.repository


def get_metrics(request: Request) -> ServiceMetrics:
    return request.app.state.metrics


def get_settings(request: Request) -> ServiceSettings:
    return request.app.state.settings


def json_response(body: bytes | str, headers: dict[str, str] | None = None) -> Response:
    return Response(content=body, media_type=JSON_CONTENT_TYPE, headers=headers)


def ledgers_response(ledgers: list[Ledger], headers: dict[str, str] | None = None) -> Response:
    return json_response(_LEDGER_LIST.dump_json(ledgers), headers)
