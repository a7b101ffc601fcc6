"""Instagram browser-tier configuration.

Instagram serves a mobile page whose metadata lives in og: meta tags and
whose media URLs sit in JSON embedded in <script> tags. Reels load their
byte stream only after the player starts, so reels get a settle delay,
one simulated click, and captured-video promotion when the DOM pass
found no video element at all.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from .scrape import MOBILE_UA, ScrapeProfile

CDN_HOSTS = ("cdninstagram.com", "fbcdn.net")
IMAGE_TOKENS = ("1440", "1080")

_REEL_PATH = re.compile(r"/reels?/")
_EXCLUDED_IMAGE_HINTS = ("150x150", "profile", "s150x150")

DOM_SCRIPT = r"""
() => {
  const result = {
    found: false,
    author: { username: '', displayName: '', avatar: '', verified: false },
    content: { text: '', media: [] },
    timestamp: '',
    stats: {},
  };
  const safe = (fn) => { try { fn(); } catch (e) { /* partial markup */ } };
  const meta = (prop) => {
    const el = document.querySelector(`meta[property="${prop}"]`);
    return el ? (el.getAttribute('content') || '') : '';
  };
  const unescape = (s) => s.replace(/\\u0026/g, '&').replace(/\\\//g, '/');
  const push = (item) => {
    if (!result.content.media.some((m) => m.url && m.url === item.url)) result.content.media.push(item);
  };

  // Embedded JSON payloads
  safe(() => {
    for (const script of document.querySelectorAll('script')) {
      const text = script.textContent || '';
      const video = text.match(/"video_url"\s*:\s*"([^"]+)"/) || text.match(/"playback_url"\s*:\s*"([^"]+)"/);
      if (video) push({ type: 'video', url: unescape(video[1]) });
      if (!result.content.media.length) {
        const image = text.match(/"display_url"\s*:\s*"([^"]+)"/);
        if (image) push({ type: 'image', url: unescape(image[1]) });
      }
    }
  });

  // Author: og:title is "Name (@user) on Instagram: ..." or "user on Instagram: ..."
  safe(() => {
    const title = meta('og:title');
    const handle = title.match(/\(@([\w.]+)\)/) || title.match(/@([\w.]+)/) || title.match(/^([\w.]+)\s+on Instagram/);
    if (handle) result.author.username = handle[1];
    const name = title.match(/^(.+?)\s+\(@[\w.]+\)/);
    if (name) result.author.displayName = name[1].trim();
  });

  safe(() => {
    if (result.author.username) return;
    for (const link of document.querySelectorAll('a[href^="/"]')) {
      const href = link.getAttribute('href') || '';
      if (/^\/[\w.]+\/?$/.test(href) && !/^\/(p|reel|reels|tv|explore|accounts)\//.test(href + '/')) {
        result.author.username = href.replace(/\//g, '');
        break;
      }
    }
  });

  safe(() => {
    const avatar = document.querySelector('img[alt*="profile picture"]');
    if (avatar) result.author.avatar = avatar.getAttribute('src') || '';
  });

  // Caption and counts: og:description is "1,234 likes, 56 comments - user on ...: caption"
  safe(() => {
    const desc = meta('og:description');
    const counts = desc.match(/^([\d.,]+[KMB]?)\s+likes?,\s*([\d.,]+[KMB]?)\s+comments?/i);
    if (counts) {
      result.stats.likes = counts[1];
      result.stats.comments = counts[2];
    }
    let text = desc.replace(/^[\d.,]+[KMB]?\s*likes?,?\s*[\d.,]+[KMB]?\s*comments?\s*-?\s*/i, '');
    const quoted = text.match(/:\s*["“]([\s\S]*)["”]\.?\s*$/);
    result.content.text = (quoted ? quoted[1] : text).trim();
  });

  // <video> element: real src, or a placeholder to fill from the network
  safe(() => {
    if (result.content.media.some((m) => m.type === 'video')) return;
    const video = document.querySelector('video');
    if (!video) return;
    const src = video.getAttribute('src') || video.currentSrc || '';
    const poster = video.getAttribute('poster') || '';
    if (src.startsWith('http')) push({ type: 'video', url: src, thumbnail: poster });
    else result.content.media.push({ type: 'video', url: '', thumbnail: poster });
  });

  safe(() => {
    const ogVideo = meta('og:video') || meta('og:video:url');
    if (!ogVideo) return;
    const placeholder = result.content.media.find((m) => m.type === 'video' && !m.url);
    if (placeholder) placeholder.url = ogVideo;
    else if (!result.content.media.some((m) => m.type === 'video')) push({ type: 'video', url: ogVideo });
  });

  safe(() => {
    if (result.content.media.length) return;
    const ogImage = meta('og:image');
    if (ogImage) push({ type: 'image', url: ogImage });
  });

  safe(() => {
    const time = document.querySelector('time[datetime]');
    if (time) result.timestamp = time.getAttribute('datetime') || '';
  });

  result.found = !!(meta('og:title') || meta('og:url') || result.content.media.length || document.querySelector('article'));
  return result;
}
"""


def _on_cdn(url: str) -> bool:
    host = urlparse(url).hostname or ""
    return host.endswith(CDN_HOSTS)


def is_video_url(url: str, content_type: str) -> bool:
    if content_type.startswith("video/"):
        return True
    path = urlparse(url).path.lower()
    return path.endswith(".mp4") or (_on_cdn(url) and "video" in url)


def is_image_url(url: str, content_type: str) -> bool:
    if not _on_cdn(url) or any(hint in url for hint in _EXCLUDED_IMAGE_HINTS):
        return False
    path = urlparse(url).path.lower()
    return content_type.startswith("image/") or path.endswith((".jpg", ".jpeg", ".webp"))


def is_reel(url: str) -> bool:
    return bool(_REEL_PATH.search(urlparse(url).path))


PROFILE = ScrapeProfile(
    name="instagram",
    dom_script=DOM_SCRIPT,
    is_video_url=is_video_url,
    is_image_url=is_image_url,
    content_selector="video, img",
    user_agent=MOBILE_UA,
    viewport={"width": 390, "height": 844},
    image_tokens=IMAGE_TOKENS,
    try_play=is_reel,
    play_delay=2.0,
    promote_video=is_reel,
)
