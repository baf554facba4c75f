"""URL helpers and logging setup."""

from __future__ import annotations

import hashlib
import logging
import re
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

import tldextract
from slugify import slugify

# Bundled public suffix snapshot only; never hit the network for it.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())

LOG_FORMAT = "%(asctime)s %(levelname)s [%(site)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ----------------------------- URLs ---------------------------------------- #


def sha1_short(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8", errors="ignore")).hexdigest()[:10]


def file_safe_slug(text: str, maxlen: int = 80) -> str:
    s = slugify(text, max_length=maxlen, allow_unicode=False).strip("-_.")
    return s or sha1_short(text)


def canonical_url(url: str, base: Optional[str] = None) -> str:
    """Canonical form used for dedup, cache keys and chapter keys.

    Lower-cases scheme and host, drops default ports and the fragment, and
    turns an empty path into ``/``. Anything that is not http(s) comes back
    as an empty string.
    """
    url = (url or "").strip()
    if base:
        url = urljoin(base, url)
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not parts.netloc:
        return ""
    netloc = parts.netloc.lower()
    if "@" in netloc:
        netloc = netloc.split("@", 1)[-1]
    if (scheme == "http" and netloc.endswith(":80")) or (scheme == "https" and netloc.endswith(":443")):
        netloc = netloc.rsplit(":", 1)[0]
    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def url_host(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def is_probably_html(url: str, content_type: Optional[str]) -> bool:
    if content_type:
        return "html" in content_type.lower()
    return bool(re.search(r"(?:\.(?:x?html?|php)|/)$", urlsplit(url).path, flags=re.I))


def derive_site_slug(site_url: str) -> str:
    netloc = urlsplit(site_url).netloc or site_url
    ext = _tld_extract(site_url)
    base = f"{ext.domain}.{ext.suffix}" if ext.domain and ext.suffix else netloc
    return file_safe_slug(base, maxlen=80)


# ----------------------------- Logging ------------------------------------- #


class _SiteDefault(logging.Filter):
    """Fill in ``site`` for records logged without an adapter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "site"):
            record.site = "-"
        return True


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root_logger = logging.getLogger("webbook")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    ch = logging.StreamHandler(stream=sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(formatter)
    ch.addFilter(_SiteDefault())
    root_logger.addHandler(ch)
    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(formatter)
        fh.addFilter(_SiteDefault())
        root_logger.addHandler(fh)


def get_site_logger(name: str, site: str) -> logging.LoggerAdapter:
    return logging.LoggerAdapter(logging.getLogger(name), extra={"site": site})
