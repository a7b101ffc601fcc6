"""Twitter/X browser-tier configuration.

The tweet page renders a <video> with a poster but streams the file
from video.twimg.com, so video items come out of the DOM pass as
placeholders and are filled from captured traffic. Progressive mp4
variants carry their size in the path (…/vid/1280x720/…).
"""

from __future__ import annotations

from urllib.parse import urlparse

from .scrape import DESKTOP_UA, ScrapeProfile

VIDEO_HOST = "video.twimg.com"
_SEGMENT_SUFFIXES = (".m4s", ".ts", ".m3u8")

# best first; landscape then portrait variants
QUALITY_TOKENS = ("1920x1080", "1080x1920", "1280x720", "720x1280")

DOM_SCRIPT = r"""
(args) => {
  const result = {
    found: false,
    author: { username: '', displayName: '', avatar: '', verified: false },
    content: { text: '', media: [] },
    timestamp: '',
    stats: {},
  };
  const safe = (fn) => { try { fn(); } catch (e) { /* partial markup */ } };

  // on a reply permalink the parent tweets render first; pick the requested one
  const statusId = ((args && args.url) || '').match(/\/status(?:es)?\/(\d+)/);
  const articles = Array.from(document.querySelectorAll('article[data-testid="tweet"]'));
  const ownLink = statusId ? new RegExp(`/status/${statusId[1]}(?:[/?#]|$)`) : null;
  const isRequested = (a) => Array.from(a.querySelectorAll('a[href*="/status/"]'))
    .some((link) => ownLink.test(link.getAttribute('href') || ''));
  const article = (ownLink && articles.find(isRequested))
    || articles[0] || document.querySelector('article');
  if (!article) return result;
  result.found = true;

  safe(() => {
    const nameEl = article.querySelector('[data-testid="User-Name"]');
    if (!nameEl) return;
    const spans = nameEl.querySelectorAll('span');
    if (spans.length) result.author.displayName = (spans[0].textContent || '').trim();
    const handle = Array.from(nameEl.querySelectorAll('a[href^="/"]'))
      .map((a) => a.getAttribute('href') || '')
      .find((href) => /^\/\w+$/.test(href));
    if (handle) result.author.username = handle.slice(1);
    result.author.verified = !!nameEl.querySelector('svg[aria-label*="Verified"], [data-testid="icon-verified"]');
  });

  safe(() => {
    const avatar = article.querySelector('img[src*="profile_images"]');
    if (avatar) result.author.avatar = avatar.getAttribute('src') || '';
  });

  safe(() => {
    const textEl = article.querySelector('[data-testid="tweetText"]');
    if (textEl) result.content.text = textEl.textContent || '';
  });

  safe(() => {
    article.querySelectorAll('img[src*="pbs.twimg.com/media"]').forEach((img) => {
      let src = img.getAttribute('src') || '';
      if (!src) return;
      if (/name=\w+/.test(src)) src = src.replace(/name=\w+/, 'name=large');
      else src += (src.includes('?') ? '&' : '?') + 'name=large';
      result.content.media.push({ type: 'image', url: src });
    });
  });

  safe(() => {
    article.querySelectorAll('video').forEach((video) => {
      const src = video.currentSrc || video.getAttribute('src') || '';
      const poster = video.getAttribute('poster') || '';
      const isGif = poster.includes('/tweet_video_thumb/');
      // blob: sources are MediaSource handles, not fetchable URLs
      let url = src.startsWith('http') ? src : '';
      if (!url && isGif) {
        url = poster.replace('pbs.twimg.com/tweet_video_thumb/', 'video.twimg.com/tweet_video/')
          .replace(/\.\w+(\?.*)?$/, '.mp4');
      }
      result.content.media.push({ type: isGif ? 'gif' : 'video', url, thumbnail: poster });
    });
  });

  safe(() => {
    const time = article.querySelector('time');
    if (time) result.timestamp = time.getAttribute('datetime') || '';
  });

  safe(() => {
    const group = article.querySelector('[role="group"]');
    if (!group) return;
    const label = (testid) => {
      const el = group.querySelector(`[data-testid="${testid}"]`);
      return el ? (el.getAttribute('aria-label') || el.textContent || '') : '';
    };
    result.stats.replies = label('reply');
    result.stats.retweets = label('retweet') || label('unretweet');
    result.stats.likes = label('like') || label('unlike');
    const views = group.querySelector('a[href*="/analytics"]');
    if (views) result.stats.views = views.getAttribute('aria-label') || views.textContent || '';
  });

  return result;
}
"""


def is_video_url(url: str, content_type: str) -> bool:
    parsed = urlparse(url)
    path = parsed.path.lower()
    if path.endswith(_SEGMENT_SUFFIXES) or "/aud/" in path:
        return False
    return parsed.hostname == VIDEO_HOST or path.endswith(".mp4") or content_type.startswith("video/")


PROFILE = ScrapeProfile(
    name="twitter",
    dom_script=DOM_SCRIPT,
    is_video_url=is_video_url,
    content_selector="article",
    user_agent=DESKTOP_UA,
    video_tokens=QUALITY_TOKENS,
)
