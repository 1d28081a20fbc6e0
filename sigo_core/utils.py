from __future__ import annotations

import unicodedata
from datetime import datetime, timezone


def to_nfc(value: str) -> str:
    return unicodedata.normalize("NFC", value)


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    filtered = [c for c in decomposed if not unicodedata.combining(c)]
    return unicodedata.normalize("NFC", "".join(filtered))


def fold(value: str) -> str:
    return strip_diacritics(value).casefold()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
