"""
Crawl orchestrator.

A ``Collector`` fetches pages with a shared ``httpx.AsyncClient`` and hands
every parsed page to the handlers registered for it:

- ``visit(url)`` schedules a fetch as an asyncio task and returns at once;
  handlers call it to fan out.
- ``run(seed)`` fetches the seed (a failure there is fatal), then waits for
  everything scheduled transitively from handlers.
- Requests are deduplicated across a collector and its clones, restricted to
  the allowed domains, limited per host glob, and served from the on-disk
  response cache when possible.

Handlers are plain functions. They run on the event loop between fetches and
must not block.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import fnmatch
import random
from typing import Callable, Iterable, Optional

import httpx

from .cache import CachedResponse, ResponseCache
from .errors import FetchError, ForbiddenDomainError
from .page import HTMLElement, Request, Response, parse_document
from .utils import canonical_url, derive_site_slug, get_site_logger, is_probably_html, url_host

HTMLCallback = Callable[[HTMLElement], None]
RequestCallback = Callable[[Request], None]
ResponseCallback = Callable[[Response], None]
ErrorCallback = Callable[[Request, FetchError], None]


# ------------------------------ Rate limits -------------------------------- #


@dataclasses.dataclass(frozen=True)
class LimitRule:
    domain_glob: str = "*"
    parallelism: int = 5
    delay: float = 0.0
    random_delay: float = 0.0

    def matches(self, host: str) -> bool:
        return fnmatch.fnmatchcase(host, self.domain_glob)


class _Limiter:
    """Slots for one rule. A slot stays taken for ``delay`` after its request."""

    def __init__(self, rule: LimitRule) -> None:
        self.rule = rule
        self._sem = asyncio.Semaphore(max(1, rule.parallelism))

    async def __aenter__(self) -> "_Limiter":
        await self._sem.acquire()
        return self

    async def __aexit__(self, *exc_info) -> None:
        try:
            jitter = random.uniform(0, self.rule.random_delay) if self.rule.random_delay > 0 else 0.0
            wait_for = self.rule.delay + jitter
            if wait_for > 0:
                await asyncio.sleep(wait_for)
        finally:
            self._sem.release()


# ------------------------------- Collector --------------------------------- #


@dataclasses.dataclass
class _Session:
    """State shared by a collector and all of its clones."""

    client: httpx.AsyncClient
    allowed_domains: frozenset[str]
    cache: Optional[ResponseCache]
    site: str
    user_agent: Optional[str] = None
    visited: set[str] = dataclasses.field(default_factory=set)


class Collector:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        allowed_domains: Iterable[str] = (),
        limits: Iterable[LimitRule] = (LimitRule(),),
        cache: Optional[ResponseCache] = None,
        allow_revisit: bool = False,
        site: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        domains = frozenset(d.lower() for d in allowed_domains)
        if site is None:
            site = derive_site_slug(f"https://{sorted(domains)[0]}") if domains else "-"
        self._session = _Session(
            client=client, allowed_domains=domains, cache=cache, site=site, user_agent=user_agent,
        )
        self._init_local(limits, allow_revisit)

    def _init_local(self, limits: Iterable[LimitRule], allow_revisit: bool) -> None:
        self.allow_revisit = allow_revisit
        self._limiters = [_Limiter(rule) for rule in limits]
        self._html_handlers: dict[str, list[HTMLCallback]] = {}
        self._request_hooks: list[RequestCallback] = []
        self._response_hooks: list[ResponseCallback] = []
        self._error_hooks: list[ErrorCallback] = []
        self._tasks: set[asyncio.Task] = set()
        self._failures: list[BaseException] = []
        self.failed: list[FetchError] = []
        self.log = get_site_logger(__name__, self._session.site)

    def clone(self) -> "Collector":
        """Sibling with the same client, domains, cache and visited set.

        The clone has no handlers and its own limit slots, so it forms a
        separate concurrency domain.
        """
        sibling = Collector.__new__(Collector)
        sibling._session = self._session
        sibling._init_local([lim.rule for lim in self._limiters], self.allow_revisit)
        return sibling

    # --------------------------- Registration ------------------------------ #

    @property
    def client(self) -> httpx.AsyncClient:
        return self._session.client

    @property
    def site(self) -> str:
        return self._session.site

    @property
    def user_agent(self) -> Optional[str]:
        """Fixed User-Agent, or None to let the site hooks pick one per request."""
        return self._session.user_agent

    @property
    def allowed_domains(self) -> frozenset[str]:
        return self._session.allowed_domains

    def on_html(self, selector: str, callback: HTMLCallback) -> None:
        self._html_handlers.setdefault(selector, []).append(callback)

    def on_request(self, callback: RequestCallback) -> None:
        self._request_hooks.append(callback)

    def on_response(self, callback: ResponseCallback) -> None:
        self._response_hooks.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_hooks.append(callback)

    # ------------------------------ Public API ----------------------------- #

    def is_allowed(self, host: str) -> bool:
        domains = self._session.allowed_domains
        return not domains or host.lower() in domains

    def visit(self, url: str) -> bool:
        """Schedule ``url``. Returns False when it is refused or already visited."""
        canonical = canonical_url(url)
        if not canonical:
            self.log.debug(f"Skipping non-http URL {url!r}")
            return False
        host = url_host(canonical)
        if not self.is_allowed(host):
            self.log.debug(f"Skipping {canonical}: host {host} not allowed")
            return False
        if not self.allow_revisit:
            if canonical in self._session.visited:
                self.log.debug(f"Already visited {canonical}")
                return False
            self._session.visited.add(canonical)

        task = asyncio.get_running_loop().create_task(self._fetch(Request(canonical)))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return True

    async def run(self, url: str) -> None:
        """Fetch the seed, then wait for every fetch scheduled from handlers.

        Raises ``FetchError`` when the seed cannot be fetched, and re-raises
        the first exception escaping a handler. Failures of other fetches
        go to the ``on_error`` hooks and are collected in ``failed``.
        """
        canonical = canonical_url(url)
        if not canonical:
            raise FetchError(url, "not an http(s) URL")
        host = url_host(canonical)
        if not self.is_allowed(host):
            raise ForbiddenDomainError(canonical, host)
        self._session.visited.add(canonical)
        await self._scrape(Request(canonical))
        await self.wait()

    async def wait(self) -> None:
        while self._tasks:
            await asyncio.wait(set(self._tasks), return_when=asyncio.FIRST_COMPLETED)
            if self._failures:
                raise self._failures[0]
        if self._failures:
            raise self._failures[0]

    # ------------------------------ Internal ------------------------------- #

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._failures.append(exc)

    async def _fetch(self, request: Request) -> None:
        try:
            await self._scrape(request)
        except FetchError as e:
            # Already reported through the on_error hooks.
            self.failed.append(e)

    async def _scrape(self, request: Request) -> None:
        for hook in self._request_hooks:
            hook(request)
        if request.aborted:
            self.log.debug(f"Request aborted: {request.url}")
            return

        try:
            response = await self._get_response(request)
            if response.status_code >= 400:
                raise FetchError(request.url, f"HTTP {response.status_code}", status_code=response.status_code)
        except FetchError as e:
            for error_hook in self._error_hooks:
                error_hook(request, e)
            raise

        for response_hook in self._response_hooks:
            response_hook(response)
        self._dispatch_html(response)

    def _dispatch_html(self, response: Response) -> None:
        if not self._html_handlers:
            return
        if not is_probably_html(response.final_url, response.content_type):
            return
        soup = parse_document(response)
        if soup is None:
            return
        for selector, callbacks in list(self._html_handlers.items()):
            for i, node in enumerate(soup.select(selector)):
                element = HTMLElement(node, response)
                for callback in callbacks:
                    callback(element)

    def _limiter_for(self, host: str) -> Optional[_Limiter]:
        for limiter in self._limiters:
            if limiter.rule.matches(host):
                return limiter
        return None

    async def _get_response(self, request: Request) -> Response:
        cache = self._session.cache
        cacheable = cache is not None and request.method == "GET"
        if cacheable:
            cached = cache.get(request.method, request.url)
            if cached is not None:
                self.log.debug(f"Cache hit: {request.url}")
                return Response(
                    request=request,
                    status_code=cached.status_code,
                    headers=httpx.Headers(cached.headers),
                    body=cached.body,
                    final_url=cached.final_url,
                    from_cache=True,
                )

        limiter = self._limiter_for(url_host(request.url))
        async with limiter or contextlib.nullcontext():
            response = await self._download(request)

        if cacheable and response.status_code < 400:
            cache.put(
                request.method,
                request.url,
                CachedResponse(
                    status_code=response.status_code,
                    final_url=response.final_url,
                    headers=list(response.headers.multi_items()),
                    body=response.body,
                ),
            )
        return response

    async def _download(self, request: Request) -> Response:
        try:
            resp = await self._session.client.request(request.method, request.url, headers=request.headers)
        except httpx.HTTPError as e:
            raise FetchError(request.url, f"{type(e).__name__}: {e}") from e

        final_url = canonical_url(str(resp.url)) or request.url
        final_host = url_host(final_url)
        if not self.is_allowed(final_host):
            raise ForbiddenDomainError(final_url, final_host)
        return Response(
            request=request,
            status_code=resp.status_code,
            headers=resp.headers,
            body=resp.content,
            final_url=final_url,
        )
