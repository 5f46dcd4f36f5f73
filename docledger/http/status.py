"""Liveness route."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response

from docledger.http.deps import json_response

router = APIRouter(prefix="/status", tags=["status"])


@router.get("/")
def get_status() -> Response:
    return json_response("{}")
