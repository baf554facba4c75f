"""Build an EPUB from a scraped book, in TOC order."""

from __future__ import annotations

import logging
import mimetypes
from urllib.parse import urlsplit

import httpx
from tqdm import tqdm

from .epub import COVER_CSS_PATH, EpubDocument
from .errors import AssemblyError, IntegrityError
from .models import ScrapedBook

log = logging.getLogger(__name__)


def cover_file_name(cover_url: str, content_type: str = "") -> str:
    ext = ""
    if content_type:
        ext = mimetypes.guess_extension(content_type.split(";", 1)[0].strip()) or ""
    if not ext:
        path = urlsplit(cover_url).path
        ext = path[path.rfind("."):] if "." in path.rsplit("/", 1)[-1] else ".jpg"
    if ext == ".jpe":
        ext = ".jpg"
    return f"images/cover{ext.lower()}"


async def fetch_cover(client: httpx.AsyncClient, cover_url: str) -> tuple[bytes, str]:
    try:
        resp = await client.get(cover_url)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise AssemblyError(f"Could not fetch cover {cover_url}: {e}") from e
    return resp.content, resp.headers.get("Content-Type", "")


async def assemble_epub(book: ScrapedBook, client: httpx.AsyncClient, *, progress: bool = True) -> EpubDocument:
    """Raises ``IntegrityError`` if a TOC entry has no chapter."""
    missing = book.missing_chapters()
    if missing:
        raise IntegrityError(missing)

    meta = book.metadata
    doc = EpubDocument(meta.title)
    doc.set_author(meta.author)

    if meta.cover_url:
        image, content_type = await fetch_cover(client, meta.cover_url)
        css = COVER_CSS_PATH.read_text(encoding="utf-8")
        doc.set_cover(image, css, cover_file_name(meta.cover_url, content_type))
        doc.set_description(meta.description)
    else:
        log.info("No cover URL; skipping cover and description")

    with tqdm(total=len(book.toc), unit="chapter", desc="Assemble", disable=not progress) as bar:
        for entry in book.toc:
            chapter = book.chapters[entry.url]
            doc.add_section(chapter.content, chapter.title)
            bar.update(1)
    return doc
