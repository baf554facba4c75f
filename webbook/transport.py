"""
httpx transport that shells out to curl.

Cloudflare sometimes rejects httpx's own TLS/HTTP fingerprint but accepts
curl as long as the User-Agent looks like a browser. ``CurlTransport`` runs
curl once per request and rebuilds an ``httpx.Response`` from its output:

    <body> DELIMITER %{json} DELIMITER %{header_json}

The output is split from the right, because the body may contain anything
while the two JSON trailers are always the last two segments.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import httpx

log = logging.getLogger(__name__)

DELIMITER = b"\n\x1e\x1e<<webbook-curl-trailer>>\x1e\x1e\n"

# curl handles these itself (--compressed); passing ours would disable decoding.
_SKIP_REQUEST_HEADERS = {"accept-encoding"}
# The body we hand back is already decoded and not chunked.
_SKIP_RESPONSE_HEADERS = {"content-encoding", "transfer-encoding", "content-length"}


class CurlError(httpx.TransportError):
    """curl could not be run, or exited non-zero."""


class CurlTimeoutError(CurlError):
    pass


class MalformedResponseError(CurlError):
    """curl ran but its trailers could not be decoded."""


def canonical_header_key(key: str) -> str:
    """``content-type`` -> ``Content-Type``."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.strip().split("-"))


def parse_http_version(version: str) -> tuple[int, int]:
    """Parse ``"1.1"`` or a bare major version such as ``"2"``."""
    major, sep, minor = version.partition(".")
    if not sep:
        minor = "0"
    try:
        return int(major), int(minor)
    except ValueError:
        raise MalformedResponseError(f"Bad HTTP version {version!r}") from None


def split_output(out: bytes) -> tuple[bytes, bytes, bytes]:
    chunks = out.rsplit(DELIMITER, 2)
    if len(chunks) != 3:
        raise MalformedResponseError(f"Expected 2 trailer blocks in curl output, found {len(chunks) - 1}")
    body, info, headers = chunks
    return body, info, headers


def canonical_headers(raw: dict) -> list[tuple[str, str]]:
    """Merge header names case-insensitively, keeping value order."""
    merged: dict[str, list[str]] = {}
    for key, values in raw.items():
        if isinstance(values, str):
            values = [values]
        merged.setdefault(canonical_header_key(key), []).extend(str(v) for v in values)
    return [(key, value) for key, values in merged.items() for value in values]


def parse_curl_output(out: bytes, request: Optional[httpx.Request] = None) -> httpx.Response:
    body, info_raw, headers_raw = split_output(out)
    try:
        info = json.loads(info_raw)
        raw_headers = json.loads(headers_raw)
        status = int(info["response_code"])
        version = str(info["http_version"])
    except (ValueError, KeyError, TypeError) as e:
        raise MalformedResponseError(f"Could not decode curl trailers: {e}", request=request) from e
    if not isinstance(raw_headers, dict):
        raise MalformedResponseError("curl header trailer is not a JSON object", request=request)

    major, minor = parse_http_version(version)
    headers = [(k, v) for k, v in canonical_headers(raw_headers) if k.lower() not in _SKIP_RESPONSE_HEADERS]
    proto = f"HTTP/{major}" if major >= 2 else f"HTTP/{major}.{minor}"
    return httpx.Response(
        status_code=status,
        headers=headers,
        content=body,
        request=request,
        extensions={"http_version": proto.encode("ascii")},
    )


class CurlTransport(httpx.AsyncBaseTransport):
    """One curl process per request; nothing is reused between requests."""

    def __init__(self, binary: str = "curl", timeout: Optional[float] = 60.0) -> None:
        self.binary = binary
        self.timeout = timeout

    def build_args(self, request: httpx.Request) -> list[str]:
        write_out = (DELIMITER + b"%{json}" + DELIMITER + b"%{header_json}").decode("latin-1")
        args = [
            str(request.url), "--compressed", "--silent", "--show-error",
            "--write-out", write_out, "-X", request.method,
        ]
        for key, value in request.headers.multi_items():
            if key.lower() in _SKIP_REQUEST_HEADERS:
                continue
            args += ["-H", f"{canonical_header_key(key)}: {value}"]
        return args

    def _timeout_for(self, request: httpx.Request) -> Optional[float]:
        timeouts = request.extensions.get("timeout") or {}
        return timeouts.get("read") or self.timeout

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        args = self.build_args(request)
        log.debug(f"curl {request.method} {request.url}")
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CurlError(f"Could not run {self.binary}: {e}", request=request) from e

        timeout = self._timeout_for(request)
        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise CurlTimeoutError(f"{self.binary} timed out after {timeout}s", request=request) from None

        if proc.returncode != 0:
            detail = err.decode("utf-8", errors="replace").strip()
            raise CurlError(f"{self.binary} exited with status {proc.returncode}: {detail}", request=request)
        return parse_curl_output(out, request)
