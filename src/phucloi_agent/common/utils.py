from __future__ import annotations

import json
import re
import unicodedata
import uuid
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


def new_uuid() -> str:
    return str(uuid.uuid4())


def json_dumps_canonical(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str)


def normalize_for_match(text: str) -> str:
    """Lowercase, drop Vietnamese diacritics and punctuation, collapse spaces."""
    lowered = text.lower().replace("đ", "d")
    no_accent = "".join(
        ch for ch in unicodedata.normalize("NFD", lowered)
        if unicodedata.category(ch) != "Mn"
    )
    return re.sub(r"[^a-z0-9]+", " ", no_accent).strip()
