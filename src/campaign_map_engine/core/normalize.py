from __future__ import annotations

import json
import re
from typing import Any

from .types import CONFIDENCE_LEVELS, DEFAULT_CONFIDENCE, DEFAULT_REGION_TYPE, REGION_TYPES

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")


def extract_json(text: str) -> str | None:
    text = (text or "").strip()
    match = _FENCED_BLOCK_RE.search(text)
    if match:
        text = match.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def parse_json_dict(text: str | None) -> dict[str, Any]:
    if not text:
        return {}
    try:
        data = json.loads(text)
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def dump_json(data: dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=True, separators=(",", ":"), sort_keys=True)


def coerce_int(value: Any) -> int | None:
    """Return ``value`` as an int when it is an integral number, else ``None``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def normalize_region_type(value: Any) -> str:
    raw = str(value or "").strip().lower()
    return raw if raw in REGION_TYPES else DEFAULT_REGION_TYPE


def normalize_confidence(value: Any) -> str:
    raw = str(value or "").strip().lower()
    return raw if raw in CONFIDENCE_LEVELS else DEFAULT_CONFIDENCE


def string_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    out = [str(item).strip() for item in value if isinstance(item, str) and item.strip()]
    return out or None
