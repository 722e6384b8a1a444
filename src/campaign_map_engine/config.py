from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .adapters.anthropic_completion import DEFAULT_MODEL

DEFAULT_DATABASE_URL = "sqlite:///campaign_maps.db"
DEFAULT_BLOB_ROOT = "campaign_map_assets"


def _maybe_load_dotenv() -> None:
    """Best-effort load of a local .env file; real env vars win."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: Optional[str] = None
    stability_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    database_url: str = DEFAULT_DATABASE_URL
    blob_root: str = DEFAULT_BLOB_ROOT
    blob_base_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, load_dotenv: bool = True) -> "Settings":
        if environ is None:
            if load_dotenv:
                _maybe_load_dotenv()
            environ = os.environ
        return cls(
            anthropic_api_key=_clean(environ.get("ANTHROPIC_API_KEY")),
            stability_api_key=_clean(environ.get("STABILITY_API_KEY")),
            model=_clean(environ.get("CAMPAIGN_MAP_MODEL")) or DEFAULT_MODEL,
            database_url=_clean(environ.get("CAMPAIGN_MAP_DATABASE_URL")) or DEFAULT_DATABASE_URL,
            blob_root=_clean(environ.get("CAMPAIGN_MAP_BLOB_ROOT")) or DEFAULT_BLOB_ROOT,
            blob_base_url=_clean(environ.get("CAMPAIGN_MAP_BLOB_BASE_URL")),
        )

    @property
    def images_available(self) -> bool:
        return self.stability_api_key is not None
