"""Capture reconciler — merges DOM placeholders with URLs seen on the wire.

Short-form video platforms render the <video> element before its byte
stream URL is known, so the DOM pass often reports "a video is here"
with an empty url. The network observer meanwhile records every media
URL the page requests. reconcile() is the only place those two sources
are merged:

  1. DOM video with a url              → kept as-is
  2. DOM video placeholder + evidence  → filled (quality token, else newest)
  3. no DOM media + image evidence     → best image (quality token, else newest)
  4. placeholder still empty           → dropped
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Iterable

from .normalizer import ExtractionCandidate, RawMedia
from .schemas import MediaType

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


class CapturedNetworkEvidence:
    """Per-attempt log of media URLs observed on the network.

    Partitioned by type, deduplicated by exact URL, ordered by
    observation time. Bounded: once full, the oldest entry is evicted.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT) -> None:
        self._videos: deque[str] = deque(maxlen=limit)
        self._images: deque[str] = deque(maxlen=limit)
        self._seen: set[str] = set()

    def add_video(self, url: str) -> bool:
        return self._add(self._videos, url)

    def add_image(self, url: str) -> bool:
        return self._add(self._images, url)

    def _add(self, log: deque[str], url: str) -> bool:
        if not url or url in self._seen:
            return False
        self._seen.add(url)
        log.append(url)
        return True

    @property
    def videos(self) -> list[str]:
        return list(self._videos)

    @property
    def images(self) -> list[str]:
        return list(self._images)

    def snapshot(self) -> CapturedNetworkEvidence:
        """Frozen-in-time copy; later observations do not show up in it."""
        copy = CapturedNetworkEvidence(limit=self._videos.maxlen or DEFAULT_LIMIT)
        copy._videos.extend(self._videos)
        copy._images.extend(self._images)
        copy._seen = set(self._seen)
        return copy

    def __len__(self) -> int:
        return len(self._videos) + len(self._images)

    def __repr__(self) -> str:
        return f"CapturedNetworkEvidence(videos={len(self._videos)}, images={len(self._images)})"


@dataclass(frozen=True)
class ReconcilePolicy:
    """Platform-stated quality preference.

    Tokens are ordered best-first; the first evidence URL containing
    the highest-ranked token wins.
    """
    video_tokens: tuple[str, ...] = ()
    image_tokens: tuple[str, ...] = ()
    promote_video: bool = False  # insert captured video when the DOM found none


def pick_best(urls: list[str], tokens: Iterable[str] = ()) -> str:
    """Highest-ranked token match, else the most recently observed URL."""
    if not urls:
        return ""
    for token in tokens:
        for url in urls:
            if token in url:
                return url
    return urls[-1]


def reconcile(
    candidate: ExtractionCandidate,
    evidence: CapturedNetworkEvidence,
    policy: ReconcilePolicy = ReconcilePolicy(),
) -> ExtractionCandidate:
    """Merge the DOM candidate with captured evidence. Pure: inputs are not mutated."""
    video_type = MediaType.VIDEO.value
    media = [replace(m) for m in candidate.media]

    known = {m.url for m in media if m.url}
    available = [url for url in evidence.videos if url not in known]

    # Rule 2: fill placeholders, best pick first, each with a distinct URL
    for item in media:
        if not item.is_placeholder or not available:
            continue
        best = pick_best(available, policy.video_tokens)
        item.url = best
        available.remove(best)
        logger.debug("Filled video placeholder from network: %s", best[:100])

    has_video = any(m.type == video_type for m in media)
    if not has_video and policy.promote_video and available:
        best = pick_best(available, policy.video_tokens)
        thumbnail = evidence.images[0] if evidence.images else ""
        media.insert(0, RawMedia(type=video_type, url=best, thumbnail=thumbnail))
        logger.debug("Promoted captured video: %s", best[:100])

    # Rule 3: nothing in the DOM, only images on the wire
    if not media and not evidence.videos and evidence.images:
        best = pick_best(evidence.images, policy.image_tokens)
        media.append(RawMedia(type=MediaType.IMAGE.value, url=best))

    # Rule 4
    dropped = sum(1 for m in media if m.is_placeholder)
    if dropped:
        logger.info("Dropping %d unresolved video placeholder(s)", dropped)
    media = [m for m in media if not m.is_placeholder]

    return replace(candidate, media=media)
