"""Requests, responses and the element handle passed to HTML handlers."""

from __future__ import annotations

import dataclasses
from typing import Callable, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from .utils import canonical_url


@dataclasses.dataclass
class Request:
    url: str  # canonical, as requested; chapters are keyed by this
    method: str = "GET"
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
    aborted: bool = False

    def abort(self) -> None:
        """Skip this request; callable from on_request hooks."""
        self.aborted = True


@dataclasses.dataclass
class Response:
    request: Request
    status_code: int
    headers: httpx.Headers
    body: bytes
    final_url: str  # after redirects; base for relative links
    from_cache: bool = False

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    def absolute_url(self, href: str) -> str:
        """Resolve ``href`` against the final URL; "" for fragments and non-http links."""
        href = (href or "").strip()
        if not href or href.startswith("#"):
            return ""
        return canonical_url(href, base=self.final_url)


class HTMLElement:
    """One element matched by an ``on_html`` selector."""

    def __init__(self, node: Tag, response: Response) -> None:
        self.node = node
        self.response = response

    def __repr__(self) -> str:
        return f"<HTMLElement {self.name} from {self.request.url}>"

    @property
    def request(self) -> Request:
        return self.response.request

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def text(self) -> str:
        return self.node.get_text().strip()

    def attr(self, name: str) -> str:
        value = self.node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value or ""

    def absolute_url(self, href: str) -> str:
        return self.response.absolute_url(href)

    def child_text(self, selector: str) -> str:
        """Text of every match, concatenated and stripped."""
        return "".join(el.get_text() for el in self.node.select(selector)).strip()

    def child_attr(self, selector: str, name: str) -> str:
        """Attribute of the first match that has it, else ""."""
        for el in self.node.select(selector):
            value = el.get(name)
            if value:
                return " ".join(value) if isinstance(value, list) else value
        return ""

    def child_html(self, selector: str) -> str:
        """Inner markup of the first match, else ""."""
        el = self.node.select_one(selector)
        return el.decode_contents() if el is not None else ""

    def for_each(self, selector: str, callback: Callable[[int, "HTMLElement"], None]) -> None:
        for i, el in enumerate(self.node.select(selector)):
            callback(i, HTMLElement(el, self.response))


def parse_document(response: Response) -> Optional[BeautifulSoup]:
    if not response.body:
        return None
    return BeautifulSoup(response.body, "lxml")
