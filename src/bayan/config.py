"""Central configuration for endpoints, keys, paths and limits."""

import os
from pathlib import Path

# Address the app is served on
HOST = os.environ.get("BAYAN_HOST", "127.0.0.1")
PORT = int(os.environ.get("BAYAN_PORT", "8050"))


def local_service_url(host: str, port: int) -> str:
    """URL at which this process reaches its own proxy endpoints."""
    if host in ("", "0.0.0.0", "::"):
        host = "127.0.0.1"
    elif ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}"


# Proxy endpoints as seen by the client
SERVICE_URL = os.environ.get("BAYAN_SERVICE_URL") or local_service_url(HOST, PORT)
PUBLIC_KEY = os.environ.get("BAYAN_PUBLIC_KEY", "")
FUNCTIONS_PREFIX = "/functions/v1"

# Upstream gateway; the key itself is read at request time
GATEWAY_URL = os.environ.get("BAYAN_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1")
GATEWAY_KEY_ENV = "LOVABLE_API_KEY"
DEFAULT_MODEL = os.environ.get("BAYAN_MODEL", "google/gemini-2.5-flash")

# Saved chat archive
DATA_DIR = Path(os.environ.get("BAYAN_DATA_DIR", str(Path.home() / ".bayan")))
ARCHIVE_KEY = "chatHistories"

# Limits
MAX_IMAGE_BYTES = 5 * 1024 * 1024
TITLE_LENGTH = 50
MAX_LINE_CHARS = 64 * 1024

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}
