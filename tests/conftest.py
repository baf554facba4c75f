import asyncio
from typing import Optional

import httpx
import pytest


class FakeSite:
    """Serves canned pages through ``httpx.MockTransport``.

    ``delays`` holds per-URL sleeps so tests can force completion order;
    ``requested`` and ``completed`` record URLs as they arrive and finish.
    """

    def __init__(self, pages: dict, delays: Optional[dict] = None) -> None:
        self.pages = pages
        self.delays = delays or {}
        self.requested: list[str] = []
        self.completed: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
        finally:
            self.in_flight -= 1
        self.completed.append(url)

        page = self.pages.get(url)
        if page is None:
            return httpx.Response(404, text="not found")
        if isinstance(page, httpx.Response):
            return page
        if isinstance(page, bytes):
            return httpx.Response(200, content=page, headers={"Content-Type": "image/jpeg"})
        return httpx.Response(200, text=page, headers={"Content-Type": "text/html; charset=utf-8"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport(), follow_redirects=True)


@pytest.fixture
def fake_site():
    return FakeSite
