"""Tests for the browser tier, driven by an in-memory fake of the page API."""

import asyncio
from dataclasses import replace

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from postview.errors import ScrapeError
from postview.extractors import instagram, twitter
from postview.extractors.scrape import scrape


class FakeRequest:
    def __init__(self, url):
        self.url = url


class FakeResponse:
    def __init__(self, url, content_type):
        self.url = url
        self.headers = {"content-type": content_type}


class FakePage:
    def __init__(self, dom, traffic=(), play_traffic=(), goto_error=None, evaluate_error=None,
                 idle_error=None, evaluate_hangs=False):
        self.dom = dom
        self.traffic = list(traffic)
        self.play_traffic = list(play_traffic)
        self.goto_error = goto_error
        self.evaluate_error = evaluate_error
        self.idle_error = idle_error
        self.evaluate_hangs = evaluate_hangs
        self.goto_options = {}
        self.evaluate_args = []
        self.handlers = {"request": [], "response": []}
        self.visited = []
        self.clicked = []
        self.closed = False

    def on(self, event, handler):
        self.handlers[event].append(handler)

    def _fire(self, traffic):
        for url, content_type in traffic:
            for handler in self.handlers["request"]:
                handler(FakeRequest(url))
            for handler in self.handlers["response"]:
                handler(FakeResponse(url, content_type))

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        self.goto_options = {"wait_until": wait_until, "timeout": timeout}
        if self.goto_error is not None:
            raise self.goto_error
        self._fire(self.traffic)

    async def wait_for_load_state(self, state, timeout=None):
        if self.idle_error is not None:
            raise self.idle_error

    async def wait_for_selector(self, selector, timeout=None):
        return None

    async def click(self, selector, timeout=None):
        self.clicked.append(selector)
        self._fire(self.play_traffic)

    async def evaluate(self, script, arg=None):
        self.evaluate_args.append(arg)
        if self.evaluate_hangs:
            await asyncio.sleep(3600)
        if self.evaluate_error is not None:
            raise self.evaluate_error
        return self.dom

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.options = {}
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page):
        self.context = FakeContext(page)

    async def new_context(self, **options):
        self.context.options = options
        return self.context


def _install(monkeypatch, page) -> FakeBrowser:
    browser = FakeBrowser(page)

    async def fake_get_browser():
        return browser

    monkeypatch.setattr("postview.extractors.scrape.get_browser", fake_get_browser)
    return browser


def _dom(media=(), **extra):
    data = {
        "found": True,
        "author": {"username": "jack", "displayName": "Jack", "avatar": "", "verified": False},
        "content": {"text": "hello", "media": list(media)},
        "timestamp": "2024-01-02T03:04:05.000Z",
        "stats": {"likes": "12 Likes. Like"},
    }
    data.update(extra)
    return data


TWEET = "https://twitter.com/jack/status/20"
VIDEO_BASE = "https://video.twimg.com/ext_tw_video/20/pu"


def test_twitter_placeholder_filled_from_traffic(monkeypatch) -> None:
    page = FakePage(
        _dom([{"type": "video", "url": "", "thumbnail": "https://pbs.twimg.com/poster.jpg"}]),
        traffic=[
            (f"{VIDEO_BASE}/pl/playlist.m3u8", "application/x-mpegurl"),
            (f"{VIDEO_BASE}/vid/avc1/640x360/a.mp4", "video/mp4"),
            (f"{VIDEO_BASE}/vid/avc1/1280x720/b.mp4", "video/mp4"),
            (f"{VIDEO_BASE}/vid/avc1/0/3000/480x270/seg.m4s", "video/iso.segment"),
            (f"{VIDEO_BASE}/aud/mp4a/0/3000/32000/seg.mp4", "audio/mp4"),
        ],
    )
    browser = _install(monkeypatch, page)

    candidate = asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))

    assert [(m.type, m.url, m.thumbnail) for m in candidate.media] == [
        ("video", f"{VIDEO_BASE}/vid/avc1/1280x720/b.mp4", "https://pbs.twimg.com/poster.jpg"),
    ]
    assert candidate.author["username"] == "jack"
    assert page.visited == [TWEET]
    assert page.clicked == []
    assert page.closed and browser.context.closed
    assert browser.context.options["user_agent"] == twitter.PROFILE.user_agent


def test_unfilled_placeholder_is_dropped(monkeypatch) -> None:
    page = FakePage(_dom([{"type": "video", "url": "", "thumbnail": "p.jpg"}]))
    _install(monkeypatch, page)
    candidate = asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))
    assert candidate.media == []
    assert candidate.text == "hello"


def test_navigation_timeout_raises_and_closes(monkeypatch) -> None:
    page = FakePage(_dom(), goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded"))
    browser = _install(monkeypatch, page)

    with pytest.raises(ScrapeError, match="navigation timed out"):
        asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))
    assert page.closed and browser.context.closed


def test_navigates_on_domcontentloaded_and_passes_page_url(monkeypatch) -> None:
    page = FakePage(_dom())
    _install(monkeypatch, page)
    asyncio.run(scrape(twitter.PROFILE, TWEET, nav_timeout=30, settle_delay=0))

    assert page.goto_options == {"wait_until": "domcontentloaded", "timeout": 30000}
    assert page.evaluate_args == [{"url": TWEET}]
    assert "args.url" in twitter.DOM_SCRIPT


def test_busy_network_is_not_fatal(monkeypatch) -> None:
    page = FakePage(
        _dom([{"type": "video", "url": "", "thumbnail": "p.jpg"}]),
        traffic=[(f"{VIDEO_BASE}/vid/avc1/1280x720/b.mp4", "video/mp4")],
        idle_error=PlaywrightTimeoutError("Timeout 10000ms exceeded"),
    )
    _install(monkeypatch, page)

    candidate = asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))

    assert [m.url for m in candidate.media] == [f"{VIDEO_BASE}/vid/avc1/1280x720/b.mp4"]
    assert page.closed


def test_stuck_dom_pass_raises_and_closes(monkeypatch) -> None:
    page = FakePage(_dom(), evaluate_hangs=True)
    browser = _install(monkeypatch, page)

    async def run():
        return await asyncio.wait_for(scrape(twitter.PROFILE, TWEET, content_timeout=0.05, settle_delay=0), 5)

    with pytest.raises(ScrapeError, match="DOM pass timed out"):
        asyncio.run(run())
    assert page.closed and browser.context.closed


def test_browser_failure_raises_and_closes(monkeypatch) -> None:
    page = FakePage(_dom(), evaluate_error=PlaywrightError("Target page, context or browser has been closed"))
    _install(monkeypatch, page)

    with pytest.raises(ScrapeError, match="browser failure"):
        asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))
    assert page.closed


@pytest.mark.parametrize("dom", [{"found": False}, None, "oops"])
def test_missing_post_markup_raises(monkeypatch, dom) -> None:
    page = FakePage(dom)
    _install(monkeypatch, page)
    with pytest.raises(ScrapeError, match="not found"):
        asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))
    assert page.closed


def test_malformed_dom_result_raises(monkeypatch) -> None:
    _install(monkeypatch, FakePage(_dom(content={"media": "nope"})))
    with pytest.raises(ScrapeError, match="unreadable"):
        asyncio.run(scrape(twitter.PROFILE, TWEET, settle_delay=0))


def test_instagram_reel_plays_and_promotes_video(monkeypatch) -> None:
    cdn = "https://scontent-lax3-1.cdninstagram.com"
    page = FakePage(
        _dom([{"type": "image", "url": f"{cdn}/v/t51/s1080x1080/cover.jpg"}]),
        traffic=[
            (f"{cdn}/v/t51/s150x150/avatar.jpg", "image/jpeg"),
            (f"{cdn}/v/t51/s640x640/frame.jpg", "image/jpeg"),
        ],
        play_traffic=[(f"{cdn}/o1/v/t16/f2/m86/clip.mp4?efg=abc", "video/mp4")],
    )
    _install(monkeypatch, page)
    profile = replace(instagram.PROFILE, play_delay=0)

    candidate = asyncio.run(scrape(profile, "https://www.instagram.com/reel/Abc123/", settle_delay=0))

    assert page.clicked == ["video"]
    assert [(m.type, m.url, m.thumbnail) for m in candidate.media] == [
        ("video", f"{cdn}/o1/v/t16/f2/m86/clip.mp4?efg=abc", f"{cdn}/v/t51/s640x640/frame.jpg"),
        ("image", f"{cdn}/v/t51/s1080x1080/cover.jpg", ""),
    ]


def test_instagram_post_does_not_play_or_promote(monkeypatch) -> None:
    cdn = "https://scontent.cdninstagram.com"
    page = FakePage(
        _dom([{"type": "image", "url": f"{cdn}/v/t51/s1080x1080/cover.jpg"}]),
        traffic=[(f"{cdn}/o1/v/t16/clip.mp4", "video/mp4")],
    )
    _install(monkeypatch, page)
    profile = replace(instagram.PROFILE, play_delay=0)

    candidate = asyncio.run(scrape(profile, "https://www.instagram.com/p/Abc123/", settle_delay=0))

    assert page.clicked == []
    assert [m.type for m in candidate.media] == ["image"]


def test_instagram_image_evidence_when_dom_is_empty(monkeypatch) -> None:
    cdn = "https://scontent.cdninstagram.com"
    page = FakePage(
        _dom([]),
        traffic=[
            (f"{cdn}/v/t51/s640x640/small.jpg", "image/jpeg"),
            (f"{cdn}/v/t51/s1440x1440/large.jpg", "image/jpeg"),
            (f"{cdn}/v/t51/s320x320/thumb.webp", "image/webp"),
        ],
    )
    _install(monkeypatch, page)
    profile = replace(instagram.PROFILE, play_delay=0)

    candidate = asyncio.run(scrape(profile, "https://www.instagram.com/p/Abc123/", settle_delay=0))

    assert [(m.type, m.url) for m in candidate.media] == [("image", f"{cdn}/v/t51/s1440x1440/large.jpg")]


def test_traffic_classifiers() -> None:
    assert twitter.is_video_url("https://video.twimg.com/tweet_video/abc.mp4", "")
    assert not twitter.is_video_url("https://video.twimg.com/x/pl/list.m3u8", "")
    assert not twitter.is_video_url("https://pbs.twimg.com/media/a.jpg", "image/jpeg")

    assert instagram.is_video_url("https://x.fbcdn.net/v/clip", "video/mp4")
    assert instagram.is_image_url("https://x.cdninstagram.com/v/a.jpg", "")
    assert not instagram.is_image_url("https://x.cdninstagram.com/v/profile/a.jpg", "image/jpeg")
    assert not instagram.is_image_url("https://example.com/a.jpg", "image/jpeg")
    assert instagram.is_reel("https://www.instagram.com/reels/Abc/")
    assert not instagram.is_reel("https://www.instagram.com/p/Abc/")
