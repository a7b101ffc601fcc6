"""
postview — view social-media posts without an account.

Usage:
    from postview import view, view_batch

    # Resolve a single post
    record = view("https://x.com/user/status/123")
    print(record.to_json())

    # Several posts at once (order preserved)
    records = view_batch([
        "https://www.instagram.com/reel/Cxyz123/",
        "https://www.tiktok.com/@user/video/7300000000000000000",
    ])

    # Inside an event loop
    record = await extract("https://x.com/user/status/123")
"""

from __future__ import annotations

import asyncio

from .errors import PostviewError
from .extractors import detect_platform
from .extractors.browser import shutdown_browser
from .schemas import ContentRecord, Platform
from .service import extract, run_pipeline

__version__ = "0.1.0"


async def _run_then_close(coro):
    try:
        return await coro
    finally:
        await shutdown_browser()


def view(url: str) -> ContentRecord:
    """Synchronous extract(); starts and stops its own browser."""
    return asyncio.run(_run_then_close(extract(url)))


async def _gather(urls: list[str]) -> list[ContentRecord | PostviewError]:
    results = await asyncio.gather(*(extract(url) for url in urls), return_exceptions=True)
    out: list[ContentRecord | PostviewError] = []
    for result in results:
        if isinstance(result, PostviewError) or isinstance(result, ContentRecord):
            out.append(result)
        else:
            raise result
    return out


def view_batch(urls: list[str]) -> list[ContentRecord | PostviewError]:
    """Resolve several URLs concurrently. Returns records or user-facing errors, in input order."""
    return asyncio.run(_run_then_close(_gather(urls)))


__all__ = [
    "ContentRecord",
    "Platform",
    "PostviewError",
    "detect_platform",
    "extract",
    "run_pipeline",
    "view",
    "view_batch",
]
