from __future__ import annotations

from typing import Any, Protocol


class MapDocumentRepo(Protocol):
    def get(self, doc_id: str) -> dict[str, Any] | None: ...
    def get_raw(self, doc_id: str) -> str | None: ...
    def put(
        self,
        doc_id: str,
        campaign_id: str,
        map_spec_id: str,
        map_type: str,
        document: dict[str, Any],
    ): ...


class UnitOfWork(Protocol):
    maps: MapDocumentRepo

    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
