"""Postview service — the extraction orchestrator.

Callers hand in a post URL and always get back exactly one ContentRecord,
unless the URL itself is invalid or from an unsupported platform.

Flow:
  1. validate + detect platform        → InvalidUrlError / UnsupportedPlatformError
  2. primary: yt-dlp metadata          → success only with a playable video
  3. secondary: live page in a browser → success with any usable record
  4. embed fallback                    → always succeeds

Each tier runs at most once per request; a failing tier is logged and
the next one takes over.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .embed import build_embed_record
from .errors import ExternalToolError, NormalizationError, ScrapeError, UnsupportedPlatformError
from .extractors import canonical_url, parse_post, secondary_for, validate_url
from .normalizer import normalize
from .schemas import ContentRecord, Platform

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    EMBED = "embed"


@dataclass(frozen=True)
class PipelineResult:
    tier: Tier
    record: ContentRecord


async def _try_primary(url: str, platform: Platform) -> ContentRecord | None:
    from .extractors import ytdlp

    logger.info("Extracting %s content with yt-dlp: %s", platform.value, url)
    try:
        candidate = await ytdlp.extract(url)
        record = normalize(candidate, platform, url)
    except (ExternalToolError, NormalizationError) as exc:
        logger.warning("yt-dlp tier failed for %s: %s", url, exc)
        return None

    if not record.has_video:
        logger.info("yt-dlp returned no playable video for %s", url)
        return None
    return record


async def _try_secondary(url: str, platform: Platform, page_url: str) -> ContentRecord | None:
    from .extractors.scrape import scrape

    profile = secondary_for(platform)
    if profile is None:
        logger.info("No browser tier for %s", platform.value)
        return None

    try:
        candidate = await scrape(profile, page_url)
        return normalize(candidate, platform, url)
    except (ScrapeError, NormalizationError) as exc:
        logger.warning("Browser tier failed for %s: %s", url, exc)
        return None


async def run_pipeline(url: str) -> PipelineResult:
    """Run the tiers in order and report which one produced the record.

    Raises:
        InvalidUrlError: url is empty or not an http(s) URL
        UnsupportedPlatformError: no platform recognizes the URL
    """
    url = validate_url(url)
    ref = parse_post(url)
    if ref is None:
        raise UnsupportedPlatformError(
            "Currently only Twitter/X, Instagram, and TikTok post links are supported"
        )
    platform = ref.platform

    record = await _try_primary(url, platform)
    if record is not None:
        logger.info("yt-dlp extraction successful with video for %s", url)
        return PipelineResult(Tier.PRIMARY, record)

    record = await _try_secondary(url, platform, canonical_url(ref))
    if record is not None:
        logger.info("Browser extraction successful for %s (%d media)", url, len(record.content.media))
        return PipelineResult(Tier.SECONDARY, record)

    logger.info("Falling back to embed mode for %s", url)
    return PipelineResult(Tier.EMBED, build_embed_record(platform, url))


async def extract(url: str) -> ContentRecord:
    """Main entry point: resolve a post URL into a ContentRecord."""
    result = await run_pipeline(url)
    return result.record
