from __future__ import annotations

import asyncio
from pathlib import Path
from urllib import parse as urllib_parse
from urllib import request as urllib_request

from ..core.errors import BlobUploadError


class LocalBlobStore:
    """BlobStorePort that writes objects under a directory.

    Returned URLs are ``base_url`` joined with the object path, or ``file://``
    URLs when no base URL is configured. Downloads accept either form, plus
    any remote http(s) URL.
    """

    def __init__(self, root: Path | str, *, base_url: str | None = None, timeout: float = 30.0):
        self._root = Path(root)
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout

    @property
    def root(self) -> Path:
        return self._root

    async def upload(self, data: bytes, path: str, *, content_type: str) -> str:
        return await asyncio.to_thread(self._write, data, path)

    async def download(self, url: str) -> bytes:
        return await asyncio.to_thread(self._read, url)

    def _target(self, path: str) -> Path:
        target = (self._root / path.lstrip("/")).resolve()
        if self._root.resolve() not in target.parents:
            raise BlobUploadError(f"Object path escapes the blob root: {path}")
        return target

    def _write(self, data: bytes, path: str) -> str:
        target = self._target(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobUploadError(f"Failed to store {path}: {exc}") from exc
        if self._base_url:
            return f"{self._base_url}/{urllib_parse.quote(path.lstrip('/'))}"
        return target.as_uri()

    def _read(self, url: str) -> bytes:
        if self._base_url and url.startswith(self._base_url + "/"):
            relative = urllib_parse.unquote(url[len(self._base_url) + 1 :])
            return self._target(relative).read_bytes()
        parsed = urllib_parse.urlparse(url)
        if parsed.scheme == "file":
            return Path(urllib_parse.unquote(parsed.path)).read_bytes()
        request = urllib_request.Request(url, headers={"User-Agent": "campaign-map-engine"})
        with urllib_request.urlopen(request, timeout=self._timeout) as response:  # noqa: S310
            return response.read()
