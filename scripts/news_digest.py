"""
Print the current news headlines through the configured news provider.

NEWS_PROVIDER=fixture serves the built-in sample posts; NEWS_PROVIDER=remote
(default) reads from NEWS_API_BASE_URL.

Usage:
  python scripts/news_digest.py [--limit 5] [--category Offers]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ocl.config import load_config  # noqa: E402
from app.ocl.providers import NewsProvider, ProviderError, provider_from_config  # noqa: E402


def render_digest(provider: NewsProvider, *, limit: int = 5, category: str | None = None) -> list[str]:
    lines = []
    featured = provider.featured(limit)
    if featured:
        lines.append("Featured:")
        lines.extend(f"  * {p['title']} (/{p.get('slug') or ''})" for p in featured)
    page = provider.list_news(page=1, limit=limit, category=category)
    lines.append("Latest:" if not category else f"Latest in {category}:")
    lines.extend(f"  - {p['title']}: {p.get('excerpt', '')}" for p in page["data"])
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=5)
    parser.add_argument("--category", default=None)
    args = parser.parse_args()

    load_dotenv()
    provider = provider_from_config(load_config())
    try:
        lines = render_digest(provider, limit=args.limit, category=args.category)
    except ProviderError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)
    print("\n".join(lines))


if __name__ == "__main__":
    main()
