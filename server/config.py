"""Configuration settings for the upload server."""

import os
from pathlib import Path

from common.constants import DEFAULT_SERVER_PORT, DEFAULT_STAGING_DIRNAME, DEFAULT_UPLOAD_ROOT


UPLOAD_ROOT = Path(os.environ.get("UPLOAD_ROOT", DEFAULT_UPLOAD_ROOT))

UPLOAD_STAGING_DIR = Path(os.environ.get("UPLOAD_STAGING_DIR", str(UPLOAD_ROOT / DEFAULT_STAGING_DIRNAME)))

UPLOAD_SERVER_HOST = os.environ.get("UPLOAD_SERVER_HOST", "0.0.0.0")

UPLOAD_SERVER_PORT = int(os.environ.get("UPLOAD_SERVER_PORT", str(DEFAULT_SERVER_PORT)))

UPLOAD_PUBLIC_BASE_URL = os.environ.get(
    "UPLOAD_PUBLIC_BASE_URL", f"http://localhost:{UPLOAD_SERVER_PORT}"
).rstrip("/")

ARTIFACT_URL_PREFIX = "/ReceivedFiles"

SESSION_TTL_SECONDS = float(os.environ.get("SESSION_TTL_SECONDS", "86400"))

SESSION_REAP_INTERVAL_SECONDS = float(os.environ.get("SESSION_REAP_INTERVAL_SECONDS", "3600"))

CORS_ALLOW_ORIGINS = [
    origin.strip() for origin in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",") if origin.strip()
]
