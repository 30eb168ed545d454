from __future__ import annotations

import unicodedata


def clean(token: str) -> str:
    """NFKC-normalise and trim a color or size label for storage."""

    return unicodedata.normalize("NFKC", token).strip()


def normalize(token: str) -> str:
    """Comparison key for labels: case and inner whitespace are ignored."""

    normalized = clean(token).casefold()
    return "".join(normalized.split())
