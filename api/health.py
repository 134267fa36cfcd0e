"""Health check endpoint.

Reports whether the sync backend is configured to reach its storage and the
listings provider. It never calls either service.
"""

from http.server import BaseHTTPRequestHandler
from urllib.parse import urlparse
import json
import os

from src.utils.sync_config import SyncConfig


def readiness() -> tuple[int, dict]:
    """HTTP status and body for the current configuration."""
    checks = {
        "storage_configured": bool(
            os.environ.get("SUPABASE_URL") and os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        ),
        "provider_api_host": urlparse(SyncConfig.PROVIDER_API_BASE_URL).hostname,
        "publish_timeout_seconds": SyncConfig.PUBLISH_TIMEOUT_SECONDS,
    }
    ready = checks["storage_configured"] and bool(checks["provider_api_host"])
    body = {
        "status": "ok" if ready else "degraded",
        "service": "listing-sync-backend",
        "provider": SyncConfig.PROVIDER_NAME,
        "checks": checks,
    }
    return (200 if ready else 503), body


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        status_code, body = readiness()
        self.send_response(status_code)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Cache-Control', 'no-store')
        self.end_headers()
        self.wfile.write(json.dumps(body).encode('utf-8'))

    def do_POST(self):
        """Same as GET."""
        self.do_GET()
