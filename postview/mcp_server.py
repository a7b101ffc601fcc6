"""Postview MCP Server — expose post viewing as tools for any MCP-capable agent.

Run:
    python -m postview.mcp_server

Or add to your MCP config (e.g., Claude Desktop, Cursor):
    {
      "mcpServers": {
        "postview": {
          "command": "python",
          "args": ["-m", "postview.mcp_server"],
          "env": {
            "POSTVIEW_YTDLP_TIMEOUT": "60"
          }
        }
      }
    }
"""

import json
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from .extractors.browser import shutdown_browser


@asynccontextmanager
async def lifespan(server: FastMCP):
    try:
        yield
    finally:
        await shutdown_browser()


mcp = FastMCP("postview", lifespan=lifespan)


@mcp.tool()
async def view_post(url: str) -> str:
    """Resolve a social-media post into author, text, media and stats.

    Supports Twitter/X, Instagram and TikTok post links. Returns the
    post as JSON. When the media cannot be extracted directly the JSON
    has "embedMode": true and an "embedUrl" for the official widget.

    Args:
        url: Link to a single post (tweet, Instagram post/reel, TikTok video)
    """
    from .errors import PostviewError
    from .service import extract

    try:
        record = await extract(url)
    except PostviewError as exc:
        return f"error: {exc.kind}: {exc.message}"
    return json.dumps(record.to_json(), ensure_ascii=False)


@mcp.tool()
def check_tools() -> str:
    """Report whether the yt-dlp metadata tool is installed.

    Without it every post goes through the slower browser tier.
    """
    from .extractors import ytdlp

    return "yt-dlp: available" if ytdlp.is_available() else "yt-dlp: not installed"


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
