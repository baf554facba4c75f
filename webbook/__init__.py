"""Scrape chaptered web publications into EPUB files."""

from .assembler import assemble_epub
from .collector import Collector, LimitRule
from .config import Config
from .errors import (
    AssemblyError,
    ConfigurationError,
    FetchError,
    ForbiddenDomainError,
    IntegrityError,
    NoPolicyError,
    ScrapeError,
)
from .models import BookBuilder, Chapter, Metadata, ScrapedBook, TOCEntry
from .sites import POLICIES, resolve_policy

__version__ = "0.1.0"

__all__ = [
    "AssemblyError",
    "BookBuilder",
    "Chapter",
    "Collector",
    "Config",
    "ConfigurationError",
    "FetchError",
    "ForbiddenDomainError",
    "IntegrityError",
    "LimitRule",
    "Metadata",
    "NoPolicyError",
    "POLICIES",
    "ScrapeError",
    "ScrapedBook",
    "TOCEntry",
    "assemble_epub",
    "resolve_policy",
]
