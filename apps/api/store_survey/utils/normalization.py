"""Data normalization utilities for survey answers and storage keys."""

import re
import unicodedata
from typing import Optional


PHONE_PATTERN = re.compile(r"^[0-9-]+$")

# Characters that would change the meaning of an object key prefix.
_PATH_UNSAFE = re.compile(r"[\\/\x00-\x1f\x7f]+")


def normalize_text(value: Optional[str]) -> Optional[str]:
    """
    Strip surrounding whitespace.

    Returns:
        Stripped text or None if empty
    """
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a Japanese phone/FAX number.

    Full-width digits and hyphens are folded to ASCII, spaces are removed.
    Only digits and hyphens are accepted afterwards.

    Raises:
        ValueError: If anything other than digits and hyphens remains
    """
    if not phone:
        return None

    cleaned = unicodedata.normalize("NFKC", phone)
    cleaned = cleaned.replace("ー", "-").replace("−", "-")
    cleaned = re.sub(r"\s+", "", cleaned)
    if not cleaned:
        return None
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Phone number may only contain digits and hyphens")
    return cleaned


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Strip whitespace and collapse multiple spaces."""
    if not name:
        return None
    collapsed = " ".join(name.split())
    return collapsed or None


def sanitize_key_prefix(owner_name: str) -> str:
    """
    Make an owner name safe to use as an object key prefix.

    Path separators and control characters are dropped, whitespace is
    collapsed and leading dots are removed so "../x" cannot climb out of
    the prefix. Everything else (including Japanese text) is kept verbatim.

    Raises:
        ValueError: If nothing usable is left
    """
    cleaned = unicodedata.normalize("NFC", owner_name or "")
    cleaned = _PATH_UNSAFE.sub("", cleaned)
    cleaned = " ".join(cleaned.split())
    cleaned = cleaned.lstrip(".").strip()
    if not cleaned:
        raise ValueError("Owner name is empty after removing unsafe characters")
    return cleaned
