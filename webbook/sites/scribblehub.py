"""Scribble Hub: series page -> first chapter -> next -> next ...

Chapters are reached one at a time through their "next" link, so TOC order is
visitation order. The walk stops at the first page without a next link.
"""

from __future__ import annotations

from ..collector import Collector
from ..models import BookBuilder, Chapter, Metadata, ScrapedBook
from ..page import HTMLElement
from .common import setup_common_handlers

HOST = "www.scribblehub.com"


async def scrape_scribblehub(collector: Collector, base_url: str) -> ScrapedBook:
    book = BookBuilder()
    setup_common_handlers(collector)

    def on_page(e: HTMLElement) -> None:
        first_chapter_url = e.absolute_url(e.child_attr(".read_buttons a:first-child", "href"))
        if first_chapter_url and not book.has_metadata:
            book.set_metadata(Metadata(
                title=e.child_text(".fic_title"),
                author=e.child_text(".auth_name_fic"),
                cover_url=e.absolute_url(e.child_attr(".fic_image img", "src")),
                description=e.child_html(".wi_fic_desc"),
            ))
            collector.visit(first_chapter_url)

        content = e.child_html(".chp_raw")
        if content.strip():
            book.add_chapter_entry(e.request.url, Chapter(title=e.child_text(".chapter-title"), content=content))

        next_chapter_url = e.absolute_url(e.child_attr(".btn-next", "href"))
        if next_chapter_url:
            collector.visit(next_chapter_url)

    collector.on_html("body", on_page)

    await collector.run(base_url)
    collector.log.info(f"Scraped {len(book)} chapter(s)")
    return book.build()
