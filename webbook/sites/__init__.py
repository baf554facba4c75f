"""Site scrapers, one per supported host."""

from __future__ import annotations

from typing import Awaitable, Callable
from urllib.parse import urlsplit

from ..collector import Collector
from ..errors import ConfigurationError, NoPolicyError
from ..models import ScrapedBook
from . import phrack, royalroad, scribblehub

Scraper = Callable[[Collector, str], Awaitable[ScrapedBook]]

POLICIES: dict[str, Scraper] = {
    royalroad.HOST: royalroad.scrape_royal_road,
    phrack.HOST: phrack.scrape_phrack,
    scribblehub.HOST: scribblehub.scrape_scribblehub,
}


def resolve_policy(url: str) -> tuple[str, Scraper]:
    """Return ``(host, scraper)`` for a seed URL."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigurationError(f"Not a valid http(s) URL: {url!r}")
    host = parts.hostname.lower()
    try:
        return host, POLICIES[host]
    except KeyError:
        raise NoPolicyError(host) from None


__all__ = ["POLICIES", "Scraper", "resolve_policy"]
