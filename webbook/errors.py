"""Exception hierarchy shared by the crawl, extraction and assembly layers."""

from __future__ import annotations

from typing import Optional


class ScrapeError(Exception):
    """Base class for every error the CLI reports and exits non-zero on."""


class ConfigurationError(ScrapeError):
    """Bad seed URL or bad settings; raised before any network activity."""


class NoPolicyError(ConfigurationError):
    def __init__(self, host: str) -> None:
        super().__init__(f"No scraper registered for host {host!r}")
        self.host = host


class FetchError(ScrapeError):
    """A single page could not be fetched."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status_code = status_code


class ForbiddenDomainError(FetchError):
    def __init__(self, url: str, host: str) -> None:
        super().__init__(url, f"host {host!r} is not in the allowed domains")
        self.host = host


class AssemblyError(ScrapeError):
    """The EPUB could not be built from a scraped book."""


class IntegrityError(AssemblyError):
    """The table of contents references chapters that were never scraped."""

    def __init__(self, missing: list[str]) -> None:
        preview = ", ".join(missing[:3])
        more = f" (+{len(missing) - 3} more)" if len(missing) > 3 else ""
        super().__init__(f"{len(missing)} TOC entr{'y' if len(missing) == 1 else 'ies'} without a chapter: {preview}{more}")
        self.missing = missing
