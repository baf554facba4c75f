"""Phrack: issue index pages link to articles and to further index pages.

The link graph is walked recursively. Article links become TOC entries the
first time they are seen; ``.details`` links are followed without one.
"""

from __future__ import annotations

from ..collector import Collector
from ..models import BookBuilder, Chapter, Metadata, ScrapedBook
from ..page import HTMLElement
from .common import setup_common_handlers

HOST = "phrack.org"

METADATA = Metadata(title="Phrack Magazine", cover_url="http://phrack.org/images/phrack-logo.jpg")


async def scrape_phrack(collector: Collector, base_url: str) -> ScrapedBook:
    book = BookBuilder(METADATA)
    setup_common_handlers(collector)

    def on_issue_link(e: HTMLElement) -> None:
        child_url = e.absolute_url(e.attr("href"))
        if not child_url:
            return
        book.add_toc_entry(child_url, unique=True)
        collector.visit(child_url)

    def on_detail_link(e: HTMLElement) -> None:
        collector.visit(e.absolute_url(e.attr("href")))

    def on_page(e: HTMLElement) -> None:
        article = e.child_html("pre")
        if not article.strip():
            return
        book.add_chapter(e.request.url, Chapter(title=e.child_text(".p-title"), content=f"<pre>{article}</pre>"))

    collector.on_html(".tissue a", on_issue_link)
    collector.on_html(".details a", on_detail_link)
    collector.on_html("body", on_page)

    await collector.run(base_url)
    collector.log.info(f"Scraped {len(book)} article(s)")
    return book.build()
