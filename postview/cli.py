"""Postview CLI — resolve post URLs from the command line.

Usage:
    postview --url "https://x.com/user/status/123"
    postview --url "https://www.instagram.com/reel/Cxyz123/" --tier
    postview --batch "https://x.com/a/status/1" --batch "https://vm.tiktok.com/ZMabc/"
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import typer

from . import config

app = typer.Typer(add_completion=False, pretty_exceptions_enable=False)


def _dump(data: dict) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


@app.command()
def main(
    url: str = typer.Option(None, help="Post URL (Twitter/X, Instagram, TikTok)"),
    batch: list[str] = typer.Option(None, help="Multiple post URLs to resolve concurrently"),
    tier: bool = typer.Option(False, "--tier", help="Report which extraction tier answered (stderr)"),
) -> None:
    """View social-media posts without an account."""
    sys.stdout.reconfigure(encoding="utf-8")
    logging.basicConfig(level=config.get("POSTVIEW_LOG_LEVEL", "INFO").upper())

    # ── Batch mode ────────────────────────────────────────────────
    if batch:
        from . import view_batch
        from .errors import PostviewError

        typer.echo(f"Resolving {len(batch)} URLs...\n", err=True)
        results = view_batch(batch)
        failed = False
        for i, (item_url, result) in enumerate(zip(batch, results), 1):
            typer.echo(f"{'─' * 50}")
            typer.echo(f"[{i}/{len(batch)}] {item_url}")
            typer.echo(f"{'─' * 50}")
            if isinstance(result, PostviewError):
                failed = True
                typer.echo(_dump(result.to_response().model_dump()))
            else:
                typer.echo(_dump(result.to_json()))
            typer.echo()
        raise typer.Exit(1 if failed else 0)

    # ── Single URL mode ───────────────────────────────────────────
    if not url:
        typer.echo("Error: --url or --batch is required.\n"
                   "  postview --url 'https://x.com/user/status/123'\n"
                   "  postview --batch 'https://x.com/a/status/1' --batch 'https://x.com/b/status/2'")
        raise typer.Exit(1)

    from .errors import PostviewError
    from .extractors.browser import shutdown_browser
    from .service import run_pipeline

    async def _run():
        try:
            return await run_pipeline(url)
        finally:
            await shutdown_browser()

    try:
        result = asyncio.run(_run())
    except PostviewError as exc:
        typer.echo(f"{exc.kind}: {exc.message}", err=True)
        raise typer.Exit(1)

    if tier:
        typer.echo(f"tier: {result.tier.value}", err=True)
    typer.echo(_dump(result.record.to_json()))


if __name__ == "__main__":
    app()
