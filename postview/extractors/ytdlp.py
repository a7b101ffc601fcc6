"""Primary extractor — structured metadata via yt-dlp.

Runs `yt-dlp --dump-json --no-download <url>` (metadata only, nothing is
downloaded), parses the JSON and picks one playable media URL:

  1. formats with a video track and explicit height
  2. progressive (audio+video in one file) beats segmented DASH
  3. then the tallest; ties broken on width, bitrate, url, format_id
  4. no such format → yt-dlp's own top-level url
  5. no url at all → the thumbnail, as an image

The choice depends only on the formats list, not its order.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from typing import Any

from .. import config
from ..errors import ExternalToolError
from ..normalizer import ExtractionCandidate, RawMedia
from ..schemas import MediaType

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


# ── Format selection ─────────────────────────────────────────

def _has_video(fmt: dict[str, Any]) -> bool:
    if not fmt.get("url") or not fmt.get("height"):
        return False
    return fmt.get("vcodec") != "none" and fmt.get("video_ext") != "none"


def _is_progressive(fmt: dict[str, Any]) -> bool:
    format_id = str(fmt.get("format_id") or "").lower()
    if "dash" in format_id:
        return False
    return fmt.get("ext") == "mp4" or fmt.get("video_ext") == "mp4"


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _rank(fmt: dict[str, Any]) -> tuple:
    # sorted() ascending, so negate everything that should win when larger
    return (
        not _is_progressive(fmt),
        -_number(fmt.get("height")),
        -_number(fmt.get("width")),
        -_number(fmt.get("tbr")),
        str(fmt.get("url")),
        str(fmt.get("format_id") or ""),
    )


def select_video_url(formats: list[dict[str, Any]]) -> str:
    """Best progressive-first, tallest format url. '' if none qualifies."""
    candidates = [f for f in formats or [] if isinstance(f, dict) and _has_video(f)]
    if not candidates:
        return ""
    return sorted(candidates, key=_rank)[0]["url"]


# ── JSON → candidate ─────────────────────────────────────────

def candidate_from_info(info: dict[str, Any]) -> ExtractionCandidate:
    video_url = select_video_url(info.get("formats") or []) or info.get("url") or ""
    thumbnail = info.get("thumbnail") or ""

    media: list[RawMedia] = []
    if video_url:
        media.append(RawMedia(type=MediaType.VIDEO.value, url=video_url, thumbnail=thumbnail))
    elif thumbnail:
        media.append(RawMedia(type=MediaType.IMAGE.value, url=thumbnail))

    return ExtractionCandidate(
        author={
            "username": info.get("uploader_id") or info.get("channel_id") or info.get("uploader") or "",
            "displayName": info.get("uploader") or info.get("channel") or "",
            "verified": bool(info.get("channel_is_verified")),
        },
        text=info.get("description") or info.get("title") or "",
        media=media,
        timestamp=info.get("timestamp") or info.get("upload_date") or "",
        stats={
            "likes": info.get("like_count"),
            "views": info.get("view_count"),
            "comments": info.get("comment_count"),
            "retweets": info.get("repost_count"),
        },
    )


def parse_output(stdout: str) -> dict[str, Any]:
    """First JSON object of the dump (multi-entry posts print one per line)."""
    for line in stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            info = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ExternalToolError(f"yt-dlp printed unparsable output: {exc}") from exc
        if not isinstance(info, dict):
            raise ExternalToolError("yt-dlp output is not a JSON object")
        return info
    raise ExternalToolError("yt-dlp printed nothing")


# ── Process ──────────────────────────────────────────────────

def _tool_path() -> str | None:
    return shutil.which(config.get("POSTVIEW_YTDLP_PATH", "yt-dlp"))


def is_available() -> bool:
    return _tool_path() is not None


async def _run(cmd: list[str], timeout: float) -> str:
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ExternalToolError(f"could not start yt-dlp: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise ExternalToolError(f"yt-dlp timed out after {timeout:.0f}s") from exc
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip().splitlines()
        reason = message[-1] if message else f"exit code {proc.returncode}"
        raise ExternalToolError(f"yt-dlp failed: {reason}")
    return stdout.decode("utf-8", errors="replace")


async def extract(url: str, timeout: float | None = None) -> ExtractionCandidate:
    """Run yt-dlp against the URL and build a candidate from its metadata."""
    tool = _tool_path()
    if not tool:
        raise ExternalToolError("yt-dlp is not installed")

    if timeout is None:
        timeout = config.get_float("POSTVIEW_YTDLP_TIMEOUT", DEFAULT_TIMEOUT)

    cmd = [tool, "--dump-json", "--no-download", "--no-warnings", url]
    logger.debug("Running %s", " ".join(cmd))
    info = parse_output(await _run(cmd, timeout))

    candidate = candidate_from_info(info)
    logger.info(
        "yt-dlp: %s (%s), %d media item(s)",
        info.get("extractor", "?"), str(info.get("title") or "")[:50], len(candidate.media),
    )
    return candidate
