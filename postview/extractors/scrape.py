"""Secondary extractor — drive the post page in the shared browser.

Every platform runs the same protocol, only the ScrapeProfile differs:

  1. open an isolated context + page on the shared browser
  2. attach the network observer (runs for the whole page lifetime)
  3. navigate until DOMContentLoaded (navigation timeout is fatal)
  4. wait for network idle and the content selector (bounded, not fatal)
  5. settle delay, optional simulated play for lazy video
  6. DOM pass inside the page, bounded → candidate
  7. reconcile the candidate with the evidence captured so far
  8. close the page and context, whatever happened
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Request, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .. import config
from ..errors import NormalizationError, ScrapeError
from ..normalizer import ExtractionCandidate, candidate_from_mapping
from ..reconcile import CapturedNetworkEvidence, ReconcilePolicy, reconcile
from .browser import get_browser

logger = logging.getLogger(__name__)

DESKTOP_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)

NAV_TIMEOUT = 30.0
CONTENT_TIMEOUT = 10.0
SETTLE_DELAY = 2.0


@dataclass(frozen=True)
class ScrapeProfile:
    """Everything platform-specific about the browser tier.

    is_video_url / is_image_url classify observed network traffic:
    (url, content_type) → bool. content_type is '' for requests.
    dom_script is a JS function source evaluated in the page with
    {url: <page url>} as its argument; it must return
    {found, author, content, timestamp, stats} and never throw.
    """
    name: str
    dom_script: str
    is_video_url: Callable[[str, str], bool]
    is_image_url: Callable[[str, str], bool] = lambda url, content_type: False
    content_selector: str = "video, img"
    user_agent: str = DESKTOP_UA
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1920, "height": 1080})
    wait_until: str = "domcontentloaded"
    video_tokens: tuple[str, ...] = ()
    image_tokens: tuple[str, ...] = ()
    # lazy-loading platforms: extra wait + one click on the <video>
    try_play: Callable[[str], bool] = lambda url: False
    play_delay: float = 2.0
    promote_video: Callable[[str], bool] = lambda url: False

    def policy_for(self, url: str) -> ReconcilePolicy:
        return ReconcilePolicy(
            video_tokens=self.video_tokens,
            image_tokens=self.image_tokens,
            promote_video=self.promote_video(url),
        )


class NetworkObserver:
    """Feeds page traffic into the attempt's evidence log.

    Attach with page.on("request", ...) and page.on("response", ...).
    Handlers never raise: Playwright would swallow it anyway.
    """

    def __init__(self, profile: ScrapeProfile, evidence: CapturedNetworkEvidence) -> None:
        self.profile = profile
        self.evidence = evidence

    def _observe(self, url: str, content_type: str) -> None:
        if self.profile.is_video_url(url, content_type):
            if self.evidence.add_video(url):
                logger.debug("Captured video URL: %s", url[:100])
        elif self.profile.is_image_url(url, content_type):
            self.evidence.add_image(url)

    def on_request(self, request: Request) -> None:
        self._observe(request.url, "")

    def on_response(self, response: Response) -> None:
        content_type = response.headers.get("content-type", "")
        self._observe(response.url, content_type.lower())


async def _wait_for_idle(page: Page, profile: ScrapeProfile, timeout: float) -> None:
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout * 1000)
    except PlaywrightTimeoutError:
        # streaming media keeps the network busy
        logger.info("%s: network still busy after %.0fs, continuing", profile.name, timeout)


async def _wait_for_content(page: Page, profile: ScrapeProfile, timeout: float) -> None:
    try:
        await page.wait_for_selector(profile.content_selector, timeout=timeout * 1000)
    except PlaywrightTimeoutError:
        logger.info("%s: no %r after %.0fs, extracting anyway", profile.name, profile.content_selector, timeout)


async def _simulate_play(page: Page, profile: ScrapeProfile) -> None:
    try:
        await page.click("video", timeout=2000)
    except PlaywrightError as exc:
        logger.debug("%s: play click failed: %s", profile.name, exc)
    await asyncio.sleep(profile.play_delay)


async def _close(page: Optional[Page], context: Any) -> None:
    for closable in (page, context):
        if closable is None:
            continue
        try:
            await closable.close()
        except PlaywrightError as exc:
            logger.debug("Close failed: %s", exc)


async def scrape(
    profile: ScrapeProfile,
    url: str,
    *,
    nav_timeout: float | None = None,
    content_timeout: float | None = None,
    settle_delay: float | None = None,
) -> ExtractionCandidate:
    """Load the canonical post URL and return a reconciled candidate.

    Raises ScrapeError on navigation or DOM pass timeout, missing post
    markup or a browser failure. The network-idle and content waits are
    bounded but not fatal.
    """
    if nav_timeout is None:
        nav_timeout = config.get_float("POSTVIEW_NAV_TIMEOUT", NAV_TIMEOUT)
    if content_timeout is None:
        content_timeout = config.get_float("POSTVIEW_CONTENT_TIMEOUT", CONTENT_TIMEOUT)
    if settle_delay is None:
        settle_delay = config.get_float("POSTVIEW_SETTLE_DELAY", SETTLE_DELAY)

    evidence = CapturedNetworkEvidence(limit=config.get_int("POSTVIEW_EVIDENCE_LIMIT", 100))
    observer = NetworkObserver(profile, evidence)
    context = None
    page = None

    try:
        browser = await get_browser()
        context = await browser.new_context(
            user_agent=profile.user_agent,
            viewport=profile.viewport,
            locale="en-US",
        )
        page = await context.new_page()
        page.on("request", observer.on_request)
        page.on("response", observer.on_response)

        logger.info("%s: loading %s", profile.name, url)
        try:
            await page.goto(url, wait_until=profile.wait_until, timeout=nav_timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise ScrapeError(f"{profile.name}: navigation timed out after {nav_timeout:.0f}s") from exc

        await _wait_for_idle(page, profile, content_timeout)
        await _wait_for_content(page, profile, content_timeout)
        await asyncio.sleep(settle_delay)
        if profile.try_play(url):
            await _simulate_play(page, profile)

        try:
            data = await asyncio.wait_for(page.evaluate(profile.dom_script, {"url": url}), timeout=content_timeout)
        except asyncio.TimeoutError as exc:
            raise ScrapeError(f"{profile.name}: DOM pass timed out after {content_timeout:.0f}s") from exc
        captured = evidence.snapshot()
    except PlaywrightError as exc:
        raise ScrapeError(f"{profile.name}: browser failure: {exc}") from exc
    finally:
        await _close(page, context)

    if not isinstance(data, dict) or not data.get("found"):
        raise ScrapeError(f"{profile.name}: expected post markup not found on {url}")

    try:
        candidate = candidate_from_mapping(data)
    except NormalizationError as exc:
        raise ScrapeError(f"{profile.name}: unreadable DOM pass result: {exc}") from exc

    logger.info("%s: DOM pass found %d media item(s), network evidence %r",
                profile.name, len(candidate.media), captured)
    return reconcile(candidate, captured, profile.policy_for(url))
