"""
webbook: scrape a serialized web publication into an EPUB.

    webbook https://www.royalroad.com/fiction/12345/some-story
    webbook --transport curl https://www.scribblehub.com/series/123/some-story/
    webbook --config webbook.yaml --cpuprofile run.prof http://phrack.org/issues/70/1.html

The seed's host picks the site scraper. Responses are cached on disk, so a
second run over the same seed hardly touches the network.
"""

from __future__ import annotations

import argparse
import asyncio
import cProfile
import sys
from pathlib import Path
from typing import Iterable, Optional

import httpx

from .assembler import assemble_epub
from .cache import ResponseCache
from .collector import Collector, LimitRule
from .config import TRANSPORTS, Config
from .errors import AssemblyError, ScrapeError
from .sites import resolve_policy
from .transport import CurlTransport
from .utils import derive_site_slug, get_site_logger, setup_logging

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="webbook",
        description="Scrape a chaptered web publication into an EPUB.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", help="Seed URL of the publication (its index or series page).")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to YAML configuration file.")
    parser.add_argument("--transport", choices=TRANSPORTS, default=None, metavar="BACKEND",
                        help="Request transport backend: default or curl.")
    parser.add_argument("--cpuprofile", type=Path, default=None, metavar="FILE", help="Write a CPU profile to FILE.")
    parser.add_argument("--cache-dir", default=None, metavar="DIR", help="Response cache directory (default: .cache).")
    parser.add_argument("--no-cache", action="store_true", help="Do not read or write the response cache.")
    parser.add_argument("--output-dir", default=None, metavar="DIR", help="Where to write the EPUB.")
    parser.add_argument("--parallelism", type=int, default=None, metavar="N", help="Concurrent requests per host.")
    parser.add_argument("--verbose", "-v", action="store_true", default=None, help="Debug logging.")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    cfg = Config.from_yaml(args.config) if args.config else Config()
    cfg = cfg.override(
        transport=args.transport,
        cache_dir=args.cache_dir,
        output_dir=args.output_dir,
        parallelism=args.parallelism,
        verbose=args.verbose,
    )
    if args.no_cache:
        cfg = cfg.override(cache_dir="")
    return cfg


def build_transport(cfg: Config) -> Optional[httpx.AsyncBaseTransport]:
    if cfg.transport == "curl":
        return CurlTransport(binary=cfg.curl_path, timeout=cfg.timeout)
    return None


async def scrape_to_epub(url: str, cfg: Config) -> Path:
    """Scrape ``url`` with its site scraper and write the EPUB; returns its path."""
    host, scraper = resolve_policy(url)
    log = get_site_logger(__name__, derive_site_slug(url))
    log.debug(f"Set transport backend: {cfg.transport}")

    async with httpx.AsyncClient(
        headers=DEFAULT_HEADERS,
        timeout=httpx.Timeout(cfg.timeout),
        follow_redirects=True,
        transport=build_transport(cfg),
    ) as client:
        collector = Collector(
            client,
            allowed_domains=[host],
            limits=[LimitRule(cfg.domain_glob, cfg.parallelism, cfg.delay, cfg.random_delay)],
            cache=ResponseCache(Path(cfg.cache_dir)) if cfg.cache_dir else None,
            user_agent=cfg.user_agent,
        )
        log.info(f"Scrape html: {url}")
        book = await scraper(collector, url)

        log.info(f"Assemble epub: title={book.metadata.title!r} chapters={len(book.toc)}")
        doc = await assemble_epub(book, client)

    output_dir = Path(cfg.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / doc.filename
    log.info(f"Write to file: {path}")
    try:
        doc.write(path)
    except OSError as e:
        raise AssemblyError(f"Could not write {path}: {e}") from e
    return path


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(verbose=bool(args.verbose))
    log = get_site_logger(__name__, "ALL")
    try:
        cfg = load_config(args)
        setup_logging(verbose=cfg.verbose, log_file=Path(cfg.log_file) if cfg.log_file else None)

        profiler = None
        if args.cpuprofile:
            log.info(f"Begin CPU profile: {args.cpuprofile}")
            profiler = cProfile.Profile()
            profiler.enable()
        try:
            path = asyncio.run(scrape_to_epub(args.url, cfg))
        finally:
            if profiler is not None:
                profiler.disable()
                profiler.dump_stats(str(args.cpuprofile))
    except ScrapeError as e:
        log.error(str(e))
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted by user")
        return 130
    except Exception as e:
        log.exception(f"Error scraping {args.url}: {e}")
        return 1

    log.info(f"All done: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
