"""News feed providers: fixture data, the HTTP client, and config selection."""
import io
import json
import urllib.error
import urllib.request

import pytest

from app.ocl.providers import (
    FixtureNewsProvider,
    ProviderError,
    RemoteNewsProvider,
    provider_from_config,
)
from scripts.news_digest import render_digest


def _fake_urlopen(monkeypatch, body=None, *, error=None):
    seen = []

    def fake(req, timeout=None):
        seen.append((req.full_url, timeout))
        if error is not None:
            raise error
        raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        return io.BytesIO(raw)

    monkeypatch.setattr(urllib.request, "urlopen", fake)
    return seen


def test_fixture_provider_hides_unpublished_and_sorts_newest_first():
    posts = [
        {"title": "Old", "slug": "old", "category": "A", "published": True, "publishedAt": "2025-01-01T00:00:00"},
        {"title": "Draft", "slug": "draft", "category": "Z", "published": False, "publishedAt": None},
        {"title": "New", "slug": "new", "category": "B", "published": True, "featured": True,
         "publishedAt": "2025-06-01T00:00:00"},
    ]
    p = FixtureNewsProvider(posts=posts)

    page = p.list_news(page=1, limit=10)
    assert [x["title"] for x in page["data"]] == ["New", "Old"]
    assert page["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}
    assert [x["title"] for x in p.featured()] == ["New"]
    assert p.get_by_slug("draft") is None
    assert p.get_by_slug("old")["title"] == "Old"
    assert p.categories() == ["A", "B"]
    assert p.list_news(page=2, limit=1)["data"][0]["title"] == "Old"


def test_fixture_provider_default_samples():
    p = FixtureNewsProvider()
    assert p.get_by_slug("flat-15-off")["category"] == "Offers"
    assert "Offers" in p.categories()


def test_remote_provider_builds_urls_and_unwraps_envelope(monkeypatch):
    seen = _fake_urlopen(
        monkeypatch,
        {"success": True, "data": [{"title": "Hello"}], "pagination": {"page": 2, "limit": 5, "total": 6, "pages": 2}},
    )
    p = RemoteNewsProvider(base_url="http://news.local/", timeout_seconds=3)

    page = p.list_news(page=2, limit=5, category="Offers")
    assert page["data"] == [{"title": "Hello"}]
    assert page["pagination"]["total"] == 6
    assert seen == [("http://news.local/api/ocl-news?page=2&limit=5&category=Offers", 3)]


def test_remote_provider_missing_slug_is_none(monkeypatch):
    err = urllib.error.HTTPError("http://news.local/api/ocl-news/slug/x", 404, "Not Found", {}, None)
    _fake_urlopen(monkeypatch, error=err)
    assert RemoteNewsProvider(base_url="http://news.local").get_by_slug("x") is None


@pytest.mark.parametrize(
    "body,error",
    [
        (None, urllib.error.HTTPError("http://news.local", 500, "Boom", {}, None)),
        (None, urllib.error.URLError("connection refused")),
        (b"<html>not json</html>", None),
        ({"success": False, "error": "Internal server error"}, None),
    ],
)
def test_remote_provider_failures_raise(monkeypatch, body, error):
    _fake_urlopen(monkeypatch, body, error=error)
    with pytest.raises(ProviderError):
        RemoteNewsProvider(base_url="http://news.local").categories()


def test_provider_from_config():
    assert isinstance(provider_from_config({"NEWS_PROVIDER": "fixture"}), FixtureNewsProvider)
    remote = provider_from_config({"NEWS_PROVIDER": "remote", "NEWS_API_BASE_URL": "http://x"})
    assert isinstance(remote, RemoteNewsProvider)
    assert remote.base_url == "http://x"
    with pytest.raises(ValueError):
        provider_from_config({"NEWS_PROVIDER": "mock"})


def test_digest_renders_featured_and_latest():
    lines = render_digest(FixtureNewsProvider(), limit=5)
    assert lines[0] == "Featured:"
    assert "North East" in lines[1]
    assert any(line.startswith("  - Flat 15% Off!") for line in lines)
