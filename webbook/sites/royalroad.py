"""Royal Road: one fiction page with a chapter table, one page per chapter.

The TOC comes from the ``#chapters`` table in a single synchronous pass, so
its order is fixed before any chapter fetch completes. Chapters are fetched
on a cloned collector and may land in any order.
"""

from __future__ import annotations

from html import escape

from ..collector import Collector
from ..models import BookBuilder, Chapter, Metadata, ScrapedBook
from ..page import HTMLElement
from .common import setup_common_handlers

HOST = "www.royalroad.com"


def cover_url(element: HTMLElement) -> str:
    url = element.absolute_url(element.child_attr('.fic-header img[data-type="cover"]', "src"))
    if "/nocover" in url:
        return ""
    return url.replace("covers-full", "covers-large")


async def scrape_royal_road(base_collector: Collector, base_url: str) -> ScrapedBook:
    book = BookBuilder()

    main_collector = base_collector.clone()
    chapter_collector = main_collector.clone()
    setup_common_handlers(main_collector)
    setup_common_handlers(chapter_collector)

    def on_fiction(e: HTMLElement) -> None:
        book.set_metadata(Metadata(
            title=e.child_text(".fic-title h1"),
            author=e.child_text(".fic-title h4 a"),
            cover_url=cover_url(e),
            description=e.child_html(".description .hidden-content"),
        ))

    def on_chapter_table(e: HTMLElement) -> None:
        def add(_: int, anchor: HTMLElement) -> None:
            chapter_url = anchor.absolute_url(anchor.attr("href"))
            if not chapter_url:
                return
            book.add_toc_entry(chapter_url)
            chapter_collector.visit(chapter_url)

        e.for_each("tr td:nth-child(1) a", add)

    def on_chapter(e: HTMLElement) -> None:
        content = e.child_html(".chapter-content")
        if not content.strip():
            return
        title = e.child_text(".fic-header h1")
        book.add_chapter(e.request.url, Chapter(title=title, content=f"<h2>{escape(title)}</h2>{content}"))

    main_collector.on_html("html", on_fiction)
    main_collector.on_html("#chapters", on_chapter_table)
    chapter_collector.on_html("html", on_chapter)

    await main_collector.run(base_url)
    await chapter_collector.wait()
    main_collector.log.info(f"Scraped {len(book)} TOC entries, {len(chapter_collector.failed)} failed fetch(es)")
    return book.build()
