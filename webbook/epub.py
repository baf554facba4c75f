"""Thin EPUB writer over ebooklib."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ebooklib import epub
from slugify import slugify

from .utils import sha1_short

COVER_CSS_PATH = Path(__file__).parent / "assets" / "cover.css"
SEPARATOR = "-"


def output_filename(title: str) -> str:
    """``"My Book"`` -> ``"my-book.epub"``."""
    name = title.lower().replace(" ", SEPARATOR).replace(os.sep, SEPARATOR)
    return f"{name or 'untitled'}.epub"


class EpubDocument:
    """Sections are written in the order they were added."""

    def __init__(self, title: str, language: str = "en") -> None:
        self._title = title
        self._language = language
        self._book = epub.EpubBook()
        self._book.set_identifier(slugify(title) or sha1_short(title))
        self._book.set_title(title)
        self._book.set_language(language)
        self._cover_page: Optional[epub.EpubHtml] = None
        self._sections: list[epub.EpubHtml] = []

    @property
    def title(self) -> str:
        return self._title

    @property
    def filename(self) -> str:
        return output_filename(self._title)

    @property
    def sections(self) -> list[epub.EpubHtml]:
        return list(self._sections)

    @property
    def has_cover(self) -> bool:
        return self._cover_page is not None

    @property
    def book(self) -> epub.EpubBook:
        return self._book

    def set_author(self, author: str) -> None:
        if author:
            self._book.add_author(author)

    def set_description(self, description: str) -> None:
        if description:
            self._book.add_metadata("DC", "description", description)

    def set_cover(self, image: bytes, css: str, file_name: str = "images/cover.jpg") -> None:
        self._book.set_cover(file_name, image, create_page=False)
        style = epub.EpubItem(uid="cover-css", file_name="css/cover.css", media_type="text/css", content=css)
        self._book.add_item(style)
        page = epub.EpubHtml(title="Cover", file_name="cover.xhtml", lang=self._language)
        page.content = f'<div class="cover"><img src="{file_name}" alt="Cover"/></div>'
        page.add_item(style)
        self._book.add_item(page)
        self._cover_page = page

    def add_section(self, content: str, title: str) -> epub.EpubHtml:
        index = len(self._sections) + 1
        section = epub.EpubHtml(title=title or f"Section {index}", file_name=f"section{index:04d}.xhtml", lang=self._language)
        section.content = content.strip() or "<p></p>"
        self._book.add_item(section)
        self._sections.append(section)
        return section

    def write(self, path: Path) -> Path:
        path = Path(path)
        self._book.toc = tuple(self._sections)
        spine: list = ["nav"]
        if self._cover_page is not None:
            spine.insert(0, self._cover_page)
        self._book.spine = spine + self._sections
        self._book.add_item(epub.EpubNcx())
        self._book.add_item(epub.EpubNav())
        epub.write_epub(str(path), self._book, {})
        return path
