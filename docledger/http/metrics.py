"""Request metrics for the HTTP service.

Instruments are created on an OpenTelemetry meter handed in by the caller.
With ``enable_metrics`` off the meter is a no-op; with it on, the global
provider is used, which also records nothing until an SDK is installed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import metrics

if TYPE_CHECKING:
    from opentelemetry.metrics import Meter

    from docledger.config import ServiceSettings


class ServiceMetrics:
    """Instruments for the document service.

    All metrics use the ``docledger.`` prefix.
    """

    def __init__(self, meter: Meter | None = None) -> None:
        meter = meter or metrics.get_meter("docledger")
        self.connected_clients = meter.create_up_down_counter(
            "docledger.http.connected_clients",
            description="Requests currently being served",
            unit="1",
        )
        self.request_duration = meter.create_histogram(
            "docledger.http.request_duration",
            description="Request latency by method, path and status",
            unit="s",
        )
        self.content_bytes = meter.create_counter(
            "docledger.content.bytes_written",
            description="Payload bytes accepted for storage",
            unit="By",
        )
        self.revisions_written = meter.create_counter(
            "docledger.ledgers.revisions_written",
            description="Ledger revisions stored",
            unit="1",
        )

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> ServiceMetrics:
        """Instruments on the global provider when metrics are enabled, no-ops otherwise."""
        if settings.enable_metrics:
            return cls()
        return cls(metrics.NoOpMeter("docledger"))

    def observe_request(self, method: str, path: str, status: int, seconds: float) -> None:
        self.request_duration.record(
            seconds,
            attributes={"method": method, "path": path, "status": str(status)},
        )

    def record_content(self, size: int) -> None:
        self.content_bytes.add(size)

    def record_revision(self, kind: str) -> None:
        self.revisions_written.add(1, attributes={"kind": kind})
