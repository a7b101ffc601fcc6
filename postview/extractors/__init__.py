"""Platform detection — routes post URLs to the right extractors.

Classification is structural: the host must be one of the platform's
domains AND the path must have the shape of a post. A tweet link sitting
in the query string of some other site does not match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from ..errors import InvalidUrlError
from ..schemas import Platform

if TYPE_CHECKING:
    from .scrape import ScrapeProfile

TWITTER_HOSTS = {"twitter.com", "x.com", "mobile.twitter.com", "mobile.x.com"}
INSTAGRAM_HOSTS = {"instagram.com", "instagr.am"}
TIKTOK_HOSTS = {"tiktok.com", "m.tiktok.com"}
TIKTOK_SHORT_HOSTS = {"vm.tiktok.com", "vt.tiktok.com"}

_TWITTER_PATH = re.compile(r"^/(?:#!/)?(\w{1,50})/status(?:es)?/(\d+)(?:/|$)", re.IGNORECASE)
_INSTAGRAM_PATH = re.compile(r"^/(?:[\w.]+/)?(p|reel|reels|tv)/([A-Za-z0-9_-]+)(?:/|$)")
_TIKTOK_PATHS = (
    re.compile(r"^/@([\w.-]+)/(video|photo)/(\d+)(?:/|$)"),
    re.compile(r"^/(t)/([A-Za-z0-9]+)(?:/|$)"),
    re.compile(r"^/(v)/(\d+)(?:\.html)?(?:/|$)"),
)
_TIKTOK_SHORT_PATH = re.compile(r"^/([A-Za-z0-9]+)/?$")


@dataclass(frozen=True)
class PostRef:
    """What the URL says about the post."""
    platform: Platform
    post_id: str        # tweet id / shortcode / video id / short-link code
    username: str = ""
    kind: str = ""      # "status", "p", "reel", "tv", "video", "photo", "short"


def _host(parsed) -> str:
    host = (parsed.hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def _path(parsed) -> str:
    # twitter.com/#!/user/status/1 keeps the interesting part in the fragment
    if parsed.fragment.startswith("!/"):
        return "/#" + parsed.fragment
    return parsed.path or "/"


def validate_url(url: str) -> str:
    """Return the cleaned URL, or raise InvalidUrlError."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError("URL is required")
    url = url.strip()
    if "://" not in url:
        url = "https://" + url
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError as exc:
        raise InvalidUrlError(f"The provided URL is not valid: {exc}") from exc
    if parsed.scheme.lower() not in ("http", "https") or not host or "." not in host:
        raise InvalidUrlError("The provided URL is not valid")
    return url


def parse_post(url: str) -> Optional[PostRef]:
    """Structural match of a URL against every platform's post shapes."""
    try:
        parsed = urlparse(url.strip())
        host = _host(parsed)
    except (AttributeError, ValueError):
        return None
    if parsed.scheme.lower() not in ("http", "https"):
        return None
    path = _path(parsed)

    if host in TWITTER_HOSTS:
        match = _TWITTER_PATH.match(path)
        if match:
            return PostRef(Platform.TWITTER, match.group(2), username=match.group(1), kind="status")
        return None

    if host in INSTAGRAM_HOSTS:
        match = _INSTAGRAM_PATH.match(path)
        if match:
            kind = "reel" if match.group(1) == "reels" else match.group(1)
            return PostRef(Platform.INSTAGRAM, match.group(2), kind=kind)
        return None

    if host in TIKTOK_HOSTS:
        match = _TIKTOK_PATHS[0].match(path)
        if match:
            return PostRef(Platform.TIKTOK, match.group(3), username=match.group(1), kind=match.group(2))
        match = _TIKTOK_PATHS[1].match(path)
        if match:
            return PostRef(Platform.TIKTOK, match.group(2), kind="short")
        match = _TIKTOK_PATHS[2].match(path)
        if match:
            return PostRef(Platform.TIKTOK, match.group(2), kind="video")
        return None

    if host in TIKTOK_SHORT_HOSTS:
        match = _TIKTOK_SHORT_PATH.match(path)
        if match:
            return PostRef(Platform.TIKTOK, match.group(1), kind="short")

    return None


def detect_platform(url: str) -> Optional[Platform]:
    """Classify a URL. Pure, no I/O. None for anything unrecognized."""
    ref = parse_post(url)
    return ref.platform if ref else None


def canonical_url(ref: PostRef) -> str:
    """The post's canonical page, as the browser tier navigates to it."""
    if ref.platform == Platform.TWITTER:
        return f"https://twitter.com/{ref.username}/status/{ref.post_id}"
    if ref.platform == Platform.INSTAGRAM:
        segment = "reel" if ref.kind == "reel" else "p"
        return f"https://www.instagram.com/{segment}/{ref.post_id}/"
    if ref.kind in ("video", "photo") and ref.username:
        return f"https://www.tiktok.com/@{ref.username}/{ref.kind}/{ref.post_id}"
    if ref.kind == "video":
        return f"https://m.tiktok.com/v/{ref.post_id}.html"
    return f"https://vm.tiktok.com/{ref.post_id}/"


def secondary_for(platform: Platform) -> Optional[ScrapeProfile]:
    """Browser-tier configuration for a platform, or None if it has none."""
    if platform == Platform.TWITTER:
        from .twitter import PROFILE
        return PROFILE
    if platform == Platform.INSTAGRAM:
        from .instagram import PROFILE
        return PROFILE
    return None


__all__ = [
    "PostRef",
    "canonical_url",
    "detect_platform",
    "parse_post",
    "secondary_for",
    "validate_url",
]
