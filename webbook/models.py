"""Shared data types for webbook."""

from __future__ import annotations

import dataclasses
from typing import Optional


@dataclasses.dataclass(frozen=True)
class TOCEntry:
    url: str


@dataclasses.dataclass(frozen=True)
class Chapter:
    title: str
    content: str  # XHTML fragment


@dataclasses.dataclass(frozen=True)
class Metadata:
    title: str = ""
    author: str = ""
    cover_url: str = ""  # empty: no cover page, no description
    description: str = ""  # HTML fragment


@dataclasses.dataclass(frozen=True)
class ScrapedBook:
    metadata: Metadata
    toc: tuple[TOCEntry, ...]
    chapters: dict[str, Chapter]

    def missing_chapters(self) -> list[str]:
        return [entry.url for entry in self.toc if entry.url not in self.chapters]


class BookBuilder:
    """Sole owner of a book while its crawl is running.

    Handlers only reach the TOC, the chapter mapping and the seen set through
    these methods. Handlers run synchronously on the event loop and none of
    these methods await, so each call completes before any other handler
    starts.
    """

    def __init__(self, metadata: Optional[Metadata] = None) -> None:
        self._metadata = metadata
        self._toc: list[TOCEntry] = []
        self._seen: set[str] = set()
        self._chapters: dict[str, Chapter] = {}

    @property
    def has_metadata(self) -> bool:
        return self._metadata is not None

    def set_metadata(self, metadata: Metadata) -> None:
        self._metadata = metadata

    def add_toc_entry(self, url: str, *, unique: bool = False) -> bool:
        """Append ``url`` to the TOC; with ``unique`` skip URLs already listed."""
        if unique and url in self._seen:
            return False
        self._toc.append(TOCEntry(url=url))
        self._seen.add(url)
        return True

    def add_chapter(self, url: str, chapter: Chapter) -> None:
        self._chapters[url] = chapter

    def add_chapter_entry(self, url: str, chapter: Chapter) -> None:
        """Append a TOC entry and store its chapter in one step."""
        self.add_toc_entry(url)
        self.add_chapter(url, chapter)

    def __len__(self) -> int:
        return len(self._toc)

    def build(self) -> ScrapedBook:
        return ScrapedBook(
            metadata=self._metadata or Metadata(),
            toc=tuple(self._toc),
            chapters=dict(self._chapters),
        )
