"""HTTP exposition of the flat JSON document using FastAPI."""
from typing import Optional
from fastapi import FastAPI, HTTPException, Response
import io
import logging
import time

from prometheus_client import CollectorRegistry

from flatmetrics.config import ServerConfig
from flatmetrics.json_encoder import JsonEncoder, FlatMetricsError
from flatmetrics.self_metrics import SelfMetrics
from flatmetrics.snapshot import collect_families

logger = logging.getLogger(__name__)


class JsonMetricsAPI:
    """FastAPI app serving a registry as flat JSON."""

    def __init__(
        self,
        registry: CollectorRegistry,
        encoder: JsonEncoder,
        config: ServerConfig,
        self_metrics: Optional[SelfMetrics] = None
    ):
        """
        Initialize the exposition API.

        Args:
            registry: Registry snapshotted on every scrape
            encoder: Encoder producing the response body
            config: Server configuration (metrics path)
            self_metrics: Optional exporter self-metrics
        """
        self.registry = registry
        self.encoder = encoder
        self.config = config
        self.self_metrics = self_metrics
        self.app = FastAPI(title="Flat JSON Metrics Exporter")

        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get(self.config.path)
        def metrics():
            """Current registry snapshot as a flat JSON object."""
            try:
                body = self.render()
            except FlatMetricsError as e:
                logger.error(f"Failed to encode metrics: {e}")
                if self.self_metrics:
                    self.self_metrics.record_scrape("error")
                raise HTTPException(status_code=500, detail=str(e))

            if self.self_metrics:
                self.self_metrics.record_scrape("ok")
            return Response(content=body, media_type=self.encoder.format_type())

    def render(self) -> bytes:
        """Snapshot the registry and encode it."""
        start = time.perf_counter()
        buf = io.BytesIO()
        key_count = self.encoder.encode(collect_families(self.registry), buf)

        if self.self_metrics:
            self.self_metrics.record_encode_duration(time.perf_counter() - start)
            self.self_metrics.set_exported_keys(key_count)

        logger.debug(f"Encoded {key_count} keys")
        return buf.getvalue()

    def run(self, host: str = "0.0.0.0", port: int = 8000):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
