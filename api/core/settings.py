"""
Environment-driven settings.

Each knob is read through a small accessor so tests can monkeypatch the
environment and the service never caches a stale value at import time.
"""

from __future__ import annotations

import os

from .errors import ServiceError

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_HTTP_TIMEOUT_SECONDS = 20.0
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_SHIPMENTS_LIMIT = 10


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def catalog_backend() -> str:
    return _env_str("CATALOG_BACKEND", "sheet").lower()


def storage_backend() -> str:
    return _env_str("STORAGE_BACKEND", "drive").lower()


def sheet_csv_url() -> str:
    return _env_str("SHEET_CSV_URL")


def sheet_group_cell() -> tuple[int, int] | None:
    """
    SHEET_GROUP_CELL="row,col" (0-based, counted over data rows).
    Anything unparsable disables the shipment stamp.
    """
    raw = _env_str("SHEET_GROUP_CELL")
    if not raw:
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 2:
        return None
    try:
        row, col = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if row < 0 or col < 0:
        return None
    return row, col


def cache_ttl_seconds() -> float:
    value = _env_float("CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)
    return value if value >= 0 else DEFAULT_CACHE_TTL_SECONDS


def http_timeout_seconds() -> float:
    value = _env_float("HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS)
    return value if value > 0 else DEFAULT_HTTP_TIMEOUT_SECONDS


def shipments_limit() -> int:
    value = _env_int("SHIPMENTS_LIMIT", DEFAULT_SHIPMENTS_LIMIT)
    return value if value > 0 else DEFAULT_SHIPMENTS_LIMIT


def drive_root_folder_id() -> str:
    return _env_str("DRIVE_ROOT_FOLDER_ID")


def drive_access_token() -> str:
    return _env_str("DRIVE_ACCESS_TOKEN")


def drive_base_url() -> str:
    return _env_str("DRIVE_BASE_URL", "https://www.googleapis.com")


def s3_bucket() -> str:
    return _env_str("S3_BUCKET")


def s3_prefix() -> str:
    return _env_str("S3_PREFIX", "auditoria").strip("/")


def aws_region() -> str:
    return _env_str("AWS_REGION", "us-east-1")


def cors_origins() -> list[str]:
    raw = _env_str("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


def static_dir() -> str:
    return _env_str("STATIC_DIR", "public")


def max_upload_bytes() -> int:
    """
    Read MAX_UPLOAD_BYTES from env, falling back to 10 MiB.
    """
    raw = os.environ.get("MAX_UPLOAD_BYTES", "").strip()
    if not raw:
        return DEFAULT_MAX_UPLOAD_BYTES

    try:
        value = int(raw)
    except ValueError:
        raise ServiceError("Invalid MAX_UPLOAD_BYTES. It must be an integer.")

    if value <= 0:
        raise ServiceError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

    return value
