"""Embed fallback — hands rendering to the platform's official widget.

Used when neither tier produced usable media. Pure and synchronous;
an unrecognized URL shape comes back unchanged rather than failing.
"""

from __future__ import annotations

import re

from .extractors import parse_post
from .schemas import ContentRecord, Platform

_X_HOSTS = re.compile(r"^(https?://)(?:www\.|mobile\.)?(?:x|twitter)\.com(?=/|$)", re.IGNORECASE)


def build_embed_url(platform: Platform, url: str) -> str:
    ref = parse_post(url)
    if ref is None or ref.platform != platform:
        # Still fold alternate Twitter domains onto twitter.com
        if platform == Platform.TWITTER:
            return _X_HOSTS.sub(r"\1twitter.com", url.strip())
        return url

    if platform == Platform.TWITTER:
        # widgets.js only recognizes twitter.com permalinks
        return f"https://twitter.com/{ref.username}/status/{ref.post_id}"
    if platform == Platform.INSTAGRAM:
        return f"https://www.instagram.com/p/{ref.post_id}/embed/"
    if platform == Platform.TIKTOK and ref.kind == "video":
        return f"https://www.tiktok.com/embed/v2/{ref.post_id}"
    return url


def build_embed_record(platform: Platform, url: str) -> ContentRecord:
    return ContentRecord(
        platform=platform,
        original_url=url,
        embed_mode=True,
        embed_url=build_embed_url(platform, url),
    )
