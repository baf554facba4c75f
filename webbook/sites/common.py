"""Hooks every site scraper installs on its collectors."""

from __future__ import annotations

import random

from ..collector import Collector
from ..errors import FetchError
from ..page import Request, Response

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
]


def setup_common_handlers(collector: Collector) -> None:
    """Random User-Agent per request plus request/response/error logging."""
    log = collector.log
    user_agent = collector.user_agent

    def set_user_agent(request: Request) -> None:
        request.headers["User-Agent"] = user_agent or random.choice(USER_AGENTS)

    def log_request(request: Request) -> None:
        log.debug(f"Visit {request.method} {request.url} headers={request.headers}")

    def log_response(response: Response) -> None:
        source = " (cache)" if response.from_cache else ""
        log.debug(f"Response {response.status_code} {response.request.url}{source}")

    def log_error(request: Request, error: FetchError) -> None:
        log.warning(f"Error fetching {request.url}: {error}")

    collector.on_request(set_user_agent)
    collector.on_request(log_request)
    collector.on_response(log_response)
    collector.on_error(log_error)
