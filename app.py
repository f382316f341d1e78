"""FastAPI service for AI-assistant Wrapped statistics.

Serves the statistics bundle for a configured export archive (cached, since
the data only changes on a new export) and computes bundles for uploaded
archives on demand.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import logging
import os
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from analytics import build_wrapped_stats
from export_errors import AmbiguousProvider, ParseError
from export_providers import Provider
from sharing import sanitize_for_sharing

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
ARCHIVE_PATH = Path(
    os.environ.get("WRAPPED_ARCHIVE_PATH", str(Path(__file__).parent / "export.zip"))
)
CACHE_TTL_SECONDS = int(os.environ.get("WRAPPED_CACHE_TTL", "3600"))
MAX_UPLOAD_BYTES = 512 * 1024 * 1024

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="AI Wrapped Statistics",
    root_path="/ai_wrapped",
)

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "data": None,
    "built_at": 0.0,
}


def _get_cached_data(force_refresh: bool = False) -> dict[str, Any]:
    """Return cached stats for ARCHIVE_PATH, rebuilding if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["data"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["data"]

    try:
        stats = build_wrapped_stats(str(ARCHIVE_PATH))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Export archive not found")
    except ParseError as exc:
        logger.warning("Configured archive could not be parsed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    data = {"generated_at": datetime.now().isoformat(), "stats": stats}
    with _cache_lock:
        _cache["data"] = data
        _cache["built_at"] = time.monotonic()

    return data


def _parse_error_response(exc: ParseError) -> JSONResponse:
    if isinstance(exc, AmbiguousProvider):
        return JSONResponse(
            status_code=422,
            content={"error": "ambiguous_provider", "detail": str(exc)},
        )
    return JSONResponse(
        status_code=400,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/data")
def api_data():
    """Return the cached statistics for the configured archive."""
    return _get_cached_data()


@app.get("/api/refresh")
def api_refresh():
    """Force a cache rebuild and return fresh data."""
    data = _get_cached_data(force_refresh=True)
    return {
        "status": "refreshed",
        "generated_at": data["generated_at"],
    }


@app.post("/api/wrapped")
def api_wrapped(
    file: UploadFile = File(...),
    provider: Provider | None = Form(None),
    shareable: bool = False,
):
    """Compute statistics for an uploaded export archive.

    A 422 with ``error == "ambiguous_provider"`` means the client should ask
    the user to choose a provider and resubmit with the ``provider`` field.
    """
    payload = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(payload) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Export archive is too large")

    try:
        stats = build_wrapped_stats(payload, provider_override=provider, filename=file.filename)
    except ParseError as exc:
        logger.info("Rejected upload %s: %s", file.filename, exc)
        return _parse_error_response(exc)

    return sanitize_for_sharing(stats) if shareable else stats
