"""On-disk response cache keyed by request identity.

Each entry is one file: a JSON header line (status, final URL, headers)
followed by the raw body. Files are written to a temp name and renamed into
place, so concurrent readers never see a partial entry and concurrent writers
of the same key simply race to an equivalent result.
"""

from __future__ import annotations

import contextlib
import dataclasses
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CachedResponse:
    status_code: int
    final_url: str
    headers: list[tuple[str, str]]
    body: bytes


class ResponseCache:
    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def key(method: str, url: str) -> str:
        return hashlib.sha1(f"{method.upper()} {url}".encode("utf-8")).hexdigest()

    def _path(self, key: str) -> Path:
        return self.directory / key[:2] / key

    def get(self, method: str, url: str) -> Optional[CachedResponse]:
        path = self._path(self.key(method, url))
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        header, sep, body = data.partition(b"\n")
        try:
            meta = json.loads(header) if sep else None
        except ValueError:
            meta = None
        if not meta:
            log.warning(f"Ignoring corrupt cache entry {path}")
            return None
        try:
            return CachedResponse(
                status_code=int(meta["status"]),
                final_url=str(meta["url"]),
                headers=[(str(k), str(v)) for k, v in meta["headers"]],
                body=body,
            )
        except (KeyError, TypeError, ValueError):
            log.warning(f"Ignoring corrupt cache entry {path}")
            return None

    def put(self, method: str, url: str, response: CachedResponse) -> None:
        path = self._path(self.key(method, url))
        path.parent.mkdir(parents=True, exist_ok=True)
        header = json.dumps(
            {"status": response.status_code, "url": response.final_url, "headers": response.headers},
            ensure_ascii=True,
        ).encode("ascii")
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(header + b"\n" + response.body)
            os.replace(tmp, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
            raise
