"""
News feed data providers for API consumers (site renderers, digests, scripts).

A consumer picks ONE provider at construction time: the remote provider talks
to the public news endpoints, the fixture provider serves in-memory sample
posts. Remote failures raise ProviderError; there is no silent fallback to
fixture data.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any


class ProviderError(RuntimeError):
    pass


class NewsProvider:
    def list_news(self, *, page: int = 1, limit: int = 10, category: str | None = None) -> dict[str, Any]:
        """Returns {"data": [...posts], "pagination": {...}}."""
        raise NotImplementedError

    def featured(self, limit: int = 5) -> list[dict[str, Any]]:
        raise NotImplementedError

    def get_by_slug(self, slug: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def categories(self) -> list[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class RemoteNewsProvider(NewsProvider):
    base_url: str
    timeout_seconds: int = 10

    def request_json(self, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = self.base_url.rstrip("/") + "/api/ocl-news" + path
        if params:
            query = urllib.parse.urlencode({k: v for k, v in params.items() if v is not None})
            if query:
                url += "?" + query
        req = urllib.request.Request(url, method="GET")
        req.add_header("Accept", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            if e.code == 404:
                return {"success": False, "error": "not_found", "status": 404}
            raise ProviderError(f"HTTP {e.code} from news API ({path})") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise ProviderError(f"News API unreachable ({path}): {e}") from e
        try:
            body = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from news API ({path})") from e
        if not isinstance(body, dict) or not body.get("success"):
            raise ProviderError(f"News API error ({path}): {body.get('error') if isinstance(body, dict) else body!r}")
        return body

    def list_news(self, *, page: int = 1, limit: int = 10, category: str | None = None) -> dict[str, Any]:
        body = self.request_json("", params={"page": page, "limit": limit, "category": category})
        return {"data": body.get("data") or [], "pagination": body.get("pagination") or {}}

    def featured(self, limit: int = 5) -> list[dict[str, Any]]:
        return self.request_json("/featured", params={"limit": limit}).get("data") or []

    def get_by_slug(self, slug: str) -> dict[str, Any] | None:
        body = self.request_json(f"/slug/{urllib.parse.quote(slug)}")
        if body.get("status") == 404:
            return None
        return body.get("data")

    def categories(self) -> list[str]:
        return self.request_json("/categories/list").get("data") or []


SAMPLE_POSTS: list[dict[str, Any]] = [
    {
        "id": 1,
        "title": "OCL expands express network to the North East",
        "slug": "ocl-expands-express-network-to-the-north-east",
        "excerpt": "Next-day delivery now covers Guwahati, Shillong and Imphal.",
        "content": "Our express network now reaches seven new cities in the North East.",
        "category": "Network",
        "author": "OCL Team",
        "image": "",
        "published": True,
        "publishedAt": "2025-11-02T09:00:00",
        "featured": True,
        "tags": ["network", "express"],
        "views": 0,
    },
    {
        "id": 2,
        "title": "Flat 15% Off!",
        "slug": "flat-15-off",
        "excerpt": "Festive discount on all domestic parcels booked online.",
        "content": "Book online before the end of the month to save 15% on domestic parcels.",
        "category": "Offers",
        "author": "OCL Team",
        "image": "",
        "published": True,
        "publishedAt": "2025-10-20T10:30:00",
        "featured": False,
        "tags": ["offer"],
        "views": 0,
    },
]


@dataclass
class FixtureNewsProvider(NewsProvider):
    posts: list[dict[str, Any]] = field(default_factory=lambda: [dict(p) for p in SAMPLE_POSTS])

    def _published(self) -> list[dict[str, Any]]:
        visible = [p for p in self.posts if p.get("published")]
        return sorted(visible, key=lambda p: p.get("publishedAt") or "", reverse=True)

    def list_news(self, *, page: int = 1, limit: int = 10, category: str | None = None) -> dict[str, Any]:
        posts = self._published()
        if category:
            posts = [p for p in posts if p.get("category") == category]
        start = (page - 1) * limit
        total = len(posts)
        return {
            "data": posts[start:start + limit],
            "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit) if limit else 0},
        }

    def featured(self, limit: int = 5) -> list[dict[str, Any]]:
        return [p for p in self._published() if p.get("featured")][:limit]

    def get_by_slug(self, slug: str) -> dict[str, Any] | None:
        for p in self._published():
            if p.get("slug") == slug:
                return p
        return None

    def categories(self) -> list[str]:
        return sorted({p["category"] for p in self._published() if p.get("category")})


def provider_from_config(config: dict) -> NewsProvider:
    kind = (config.get("NEWS_PROVIDER") or "remote").strip().lower()
    if kind == "fixture":
        return FixtureNewsProvider()
    if kind != "remote":
        raise ValueError(f"Unknown NEWS_PROVIDER: {kind!r}")
    return RemoteNewsProvider(base_url=(config.get("NEWS_API_BASE_URL") or "").strip())
