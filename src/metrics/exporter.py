"""HTTP listener exposing a metrics registry for scraping."""

import logging

from prometheus_client import CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


def serve_metrics(port: int, registry: CollectorRegistry, addr: str = "0.0.0.0") -> None:
    """Start the Prometheus exporter in a background thread."""
    start_http_server(port, addr=addr, registry=registry)
    logger.info("Serving metrics on %s:%d", addr, port)
