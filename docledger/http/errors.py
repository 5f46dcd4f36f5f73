"""Exception handlers mapping the error taxonomy onto HTTP responses.

Every error body is ``{"description": ..., "code": ...}`` served as
``application/json; charset=utf-8`` with ``X-Content-Type-Options: nosniff``.
"""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from docledger.errors import DocLedgerError, NotFoundError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


def error_response(description: str, code: int) -> Response:
    body = json.dumps({"description": description, "code": code}, separators=(",", ":"))
    return Response(
        content=body,
        status_code=code,
        media_type=JSON_CONTENT_TYPE,
        headers={"X-Content-Type-Options": "nosniff"},
    )


async def _docledger_error(request: Request, exc: DocLedgerError) -> Response:
    if isinstance(exc, NotFoundError):
        logger.info("%s %s: %s", request.method, request.url.path, exc)
        return error_response("not found", exc.status_code)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return error_response(exc.message, exc.status_code)


async def _http_error(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 404:
        return error_response("not found", 404)
    return error_response(str(exc.detail), exc.status_code)


async def _validation_error(request: Request, exc: RequestValidationError) -> Response:
    errors = exc.errors()
    detail = errors[0].get("msg", "invalid request") if errors else "invalid request"
    return error_response(f"bad request: {detail}", 400)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocLedgerError, _docledger_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
