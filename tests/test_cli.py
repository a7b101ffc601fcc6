"""Tests for the CLI and the synchronous library wrappers."""

import json

from typer.testing import CliRunner

import postview
from postview.cli import app
from postview.embed import build_embed_record
from postview.errors import UnsupportedPlatformError
from postview.schemas import Platform
from postview.service import PipelineResult, Tier

runner = CliRunner()


def _embed_result(url):
    return PipelineResult(Tier.EMBED, build_embed_record(Platform.TWITTER, url))


def test_single_url_prints_record(monkeypatch) -> None:
    async def fake_pipeline(url):
        return _embed_result(url)

    monkeypatch.setattr("postview.service.run_pipeline", fake_pipeline)
    result = runner.invoke(app, ["--url", "https://x.com/jack/status/20", "--tier"])

    assert result.exit_code == 0
    assert '"embedUrl": "https://twitter.com/jack/status/20"' in result.output
    assert "tier: embed" in result.output


def test_single_url_error_exits_nonzero(monkeypatch) -> None:
    async def fake_pipeline(url):
        raise UnsupportedPlatformError("nope")

    monkeypatch.setattr("postview.service.run_pipeline", fake_pipeline)
    result = runner.invoke(app, ["--url", "https://example.com/a"])

    assert result.exit_code == 1
    assert "unsupported_platform: nope" in result.output


def test_requires_url_or_batch() -> None:
    result = runner.invoke(app, [])
    assert result.exit_code == 1
    assert "--url or --batch" in result.output


def test_batch_keeps_order_and_reports_failures(monkeypatch) -> None:
    async def fake_extract(url):
        if "example" in url:
            raise UnsupportedPlatformError("nope")
        return build_embed_record(Platform.TWITTER, url)

    monkeypatch.setattr("postview.extract", fake_extract)
    records = postview.view_batch(["https://x.com/a/status/1", "https://example.com/b", "https://x.com/c/status/3"])

    assert [type(r).__name__ for r in records] == ["ContentRecord", "UnsupportedPlatformError", "ContentRecord"]
    assert records[0].embed_url == "https://twitter.com/a/status/1"
    assert records[2].embed_url == "https://twitter.com/c/status/3"

    result = runner.invoke(app, ["--batch", "https://x.com/a/status/1", "--batch", "https://example.com/b"])
    assert result.exit_code == 1
    assert "[1/2] https://x.com/a/status/1" in result.output
    assert json.dumps("unsupported_platform") in result.output
