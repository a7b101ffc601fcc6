"""Normalizer — maps any extractor's raw candidate into a ContentRecord.

Extractors hand over an ExtractionCandidate: loose, possibly half-empty
fields straight from yt-dlp JSON or an in-page DOM pass. normalize()
coerces every field into the ContentRecord schema so the caller never
sees None/undefined leaking through, and guarantees content.media only
holds fully-resolved items.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from .errors import NormalizationError
from .schemas import Author, Content, ContentRecord, MediaItem, MediaType, Platform, Stats

logger = logging.getLogger(__name__)

_MEDIA_TYPES = {t.value for t in MediaType}
_STAT_KEYS = ("likes", "retweets", "replies", "views", "comments")


# ── Candidate shape ──────────────────────────────────────────

@dataclass(slots=True)
class RawMedia:
    type: str
    url: str = ""
    thumbnail: str = ""

    @property
    def is_placeholder(self) -> bool:
        return self.type == MediaType.VIDEO.value and not self.url


@dataclass(slots=True)
class ExtractionCandidate:
    author: dict[str, Any] = field(default_factory=dict)
    text: str = ""
    media: list[RawMedia] = field(default_factory=list)
    timestamp: Any = ""  # ISO string, epoch seconds or YYYYMMDD
    stats: dict[str, Any] = field(default_factory=dict)


def candidate_from_mapping(data: Any) -> ExtractionCandidate:
    """Build a candidate from the plain dict an in-page script returns."""
    if not isinstance(data, Mapping):
        raise NormalizationError(f"expected an object, got {type(data).__name__}")

    author = data.get("author") or {}
    content = data.get("content") or {}
    stats = data.get("stats") or {}
    if not isinstance(author, Mapping) or not isinstance(content, Mapping) or not isinstance(stats, Mapping):
        raise NormalizationError("author, content and stats must be objects")

    raw_media = content.get("media") or []
    if not isinstance(raw_media, list):
        raise NormalizationError("content.media must be a list")

    media = []
    for item in raw_media:
        if not isinstance(item, Mapping):
            continue
        media.append(RawMedia(
            type=str(item.get("type") or ""),
            url=str(item.get("url") or ""),
            thumbnail=str(item.get("thumbnail") or ""),
        ))

    return ExtractionCandidate(
        author=dict(author),
        text=str(content.get("text") or ""),
        media=media,
        timestamp=data.get("timestamp") or "",
        stats=dict(stats),
    )


# ── Field coercion ───────────────────────────────────────────

_COUNT_RE = re.compile(r"(\d+(?:[.,]\d+)*)\s*([KMB](?![A-Za-z]))?", re.IGNORECASE)
_MULTIPLIERS = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}
_GROUPED_RE = re.compile(r"\d{1,3}(?:[.,]\d{3})+")  # 3,456 or 1.234.567


def parse_count(value: Any) -> int | None:
    """Parse a stat value: 42, "3,456", "1.2K", "4.5M". None if unreadable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return max(0, int(value))

    text = str(value).strip()
    if not text:
        return None
    match = _COUNT_RE.search(text)
    if not match:
        return None

    number, suffix = match.groups()
    if suffix:
        number = number.replace(",", "")
        try:
            return int(round(float(number) * _MULTIPLIERS[suffix.upper()]))
        except ValueError:
            return None
    if _GROUPED_RE.fullmatch(number):
        return int(re.sub(r"[.,]", "", number))
    try:
        return int(float(number.replace(",", ".")))
    except ValueError:
        return None


def to_iso(value: Any) -> str:
    """Epoch seconds or ms, YYYYMMDD or an ISO string → ISO-8601. '' if unknown or unparsable."""
    if value is None or value == "" or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        if value > 1e11:
            value = value / 1000  # milliseconds
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return ""
        return dt.isoformat().replace("+00:00", "Z")

    text = str(value).strip()
    if re.fullmatch(r"\d{8}", text):
        try:
            dt = datetime.strptime(text, "%Y%m%d").replace(tzinfo=timezone.utc)
        except ValueError:
            return ""
        return dt.isoformat().replace("+00:00", "Z")
    if re.fullmatch(r"\d{9,13}", text):
        return to_iso(int(text))
    try:
        datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
    except ValueError:
        logger.debug("Dropping unparsable timestamp %r", text)
        return ""
    return text


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _media(items: list[RawMedia]) -> list[MediaItem]:
    media: list[MediaItem] = []
    seen: set[tuple[str, str]] = set()
    for item in items:
        if item.type not in _MEDIA_TYPES:
            logger.debug("Dropping media of unknown type %r", item.type)
            continue
        if not item.url:
            # unresolved placeholder (or an image with no src)
            continue
        key = (item.type, item.url)
        if key in seen:
            continue
        seen.add(key)
        thumbnail = None
        if item.type != MediaType.IMAGE.value and item.thumbnail:
            thumbnail = item.thumbnail
        media.append(MediaItem(type=item.type, url=item.url, thumbnail=thumbnail))
    return media


# ── Entry point ──────────────────────────────────────────────

def normalize(candidate: ExtractionCandidate, platform: Platform, original_url: str) -> ContentRecord:
    """Map a candidate into the canonical record.

    Raises NormalizationError when the candidate is malformed or has no
    media, no text and no author — nothing a viewer could show.
    """
    if not isinstance(candidate, ExtractionCandidate):
        raise NormalizationError(f"not a candidate: {type(candidate).__name__}")
    if not isinstance(candidate.author, Mapping) or not isinstance(candidate.stats, Mapping):
        raise NormalizationError("author and stats must be mappings")

    author = Author(
        username=_text(candidate.author.get("username")).lstrip("@"),
        display_name=_text(candidate.author.get("displayName")),
        avatar=_text(candidate.author.get("avatar")),
        verified=bool(candidate.author.get("verified")),
    )
    content = Content(text=_text(candidate.text), media=_media(candidate.media))

    if not content.media and not content.text and not author.username:
        raise NormalizationError("candidate carries no media, text or author")

    stats = Stats(**{key: parse_count(candidate.stats.get(key)) for key in _STAT_KEYS})

    return ContentRecord(
        platform=platform,
        original_url=original_url,
        author=author,
        content=content,
        timestamp=to_iso(candidate.timestamp),
        stats=stats,
    )
