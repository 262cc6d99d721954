"""
HTTP server exposing maintenance worker metrics to Prometheus.
"""
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import REGISTRY

logger = logging.getLogger(__name__)


class MetricsHandler(BaseHTTPRequestHandler):
    """Serves GET /metrics; everything else is 404."""

    def do_GET(self):
        if self.path == '/metrics':
            self.send_response(200)
            self.send_header('Content-Type', CONTENT_TYPE_LATEST)
            self.end_headers()
            self.wfile.write(generate_latest(REGISTRY))
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, format, *args):
        """Suppress default access logging."""
        pass


def start_metrics_server(port: int = 9090, host: str = '0.0.0.0') -> HTTPServer:
    """
    Start a daemon HTTP server for Prometheus metrics.

    Args:
        port: Port to listen on (0 picks a free port)
        host: Interface to bind

    Returns:
        The running HTTPServer (call shutdown() to stop it)
    """
    try:
        server = HTTPServer((host, port), MetricsHandler)
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")
        raise

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info(f"Metrics server started on port {server.server_port}")
    return server
