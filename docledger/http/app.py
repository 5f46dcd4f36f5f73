"""FastAPI application assembly and the uvicorn entry point."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response

from docledger import __version__
from docledger.config import ServiceSettings
from docledger.core.repository import Repository
from docledger.http import contents, journals, ledgers, status
from docledger.http.errors import install_error_handlers
from docledger.http.metrics import ServiceMetrics

logger = logging.getLogger(__name__)


def create_app(
    repository: Repository,
    *,
    settings: ServiceSettings | None = None,
    metrics: ServiceMetrics | None = None,
) -> FastAPI:
    """Create the document service around *repository*.

    Parameters
    ----------
    repository:
        The document repository every route operates on.
    settings:
        Size limits and other request policy; environment defaults if omitted.
    metrics:
        Request instrumentation; built from *settings* if omitted, which
        records nothing unless ``enable_metrics`` is set.
    """
    app = FastAPI(title="docledger", version=__version__)
    app.state.repository = repository
    app.state.settings = settings or ServiceSettings()
    app.state.metrics = metrics or ServiceMetrics.from_settings(app.state.settings)

    install_error_handlers(app)

    @app.middleware("http")
    async def observe(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        service_metrics: ServiceMetrics = request.app.state.metrics
        logger.info("%s %s", request.method, request.url)
        service_metrics.connected_clients.add(1)
        begin = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            elapsed = time.perf_counter() - begin
            service_metrics.connected_clients.add(-1)
            service_metrics.observe_request(
                request.method, request.url.path, status_code, elapsed
            )
        response.headers["X-Duration"] = f"{elapsed:.6f}s"
        return response

    for module in (ledgers, contents, journals, status):
        app.include_router(module.router)
    return app


def run_app(app: FastAPI, *, host: str = "0.0.0.0", port: int = 8080, log_level: str = "info") -> None:
    """Serve *app* through uvicorn until interrupted."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)
