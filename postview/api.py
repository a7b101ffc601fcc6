"""Postview HTTP API — FastAPI endpoint for the viewer frontend.

Usage:
    uvicorn postview.api:app --port 3000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import config
from .errors import InvalidUrlError, PostviewError
from .extractors import ytdlp
from .extractors.browser import shutdown_browser
from .service import extract

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=config.get("POSTVIEW_LOG_LEVEL", "INFO").upper())
    try:
        yield
    finally:
        await shutdown_browser()


app = FastAPI(title="Postview", version="0.1.0", lifespan=lifespan)


class ExtractRequest(BaseModel):
    url: Optional[str] = None


def _error(exc: PostviewError, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=exc.to_response().model_dump())


@app.get("/api/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "ytdlp": "available" if ytdlp.is_available() else "not installed",
    }


@app.post("/api/extract")
async def extract_post(req: ExtractRequest):
    if not req.url:
        return _error(InvalidUrlError("Please provide a social media URL to view"), 400)
    try:
        record = await extract(req.url)
    except PostviewError as exc:
        if exc.kind == "extraction_failed":
            logger.exception("Extraction error for %s", req.url)
            return _error(exc, 500)
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("Extraction error for %s", req.url)
        return _error(PostviewError(str(exc) or "Failed to extract content from the URL"), 500)
    return record.to_json()
