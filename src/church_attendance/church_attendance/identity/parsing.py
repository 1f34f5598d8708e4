"""Payload parsing for scanned badges and manual entries.

A scanned QR code may carry JSON, a profile URL, a ``uid:...`` prefixed value
or the raw identifier itself. Identifiers are at least 20 characters long so a
short phone number is never mistaken for one.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from ..core.constants import IDENTIFIER_KEYS, IDENTIFIER_PREFIXES, MIN_IDENTIFIER_LENGTH
from ..core.enums import ContactKind

_RAW_ID_RE = re.compile(rf"^[A-Za-z0-9_-]{{{MIN_IDENTIFIER_LENGTH},}}$")
_PREFIX_RE = re.compile(
    rf"^(?:{'|'.join(IDENTIFIER_PREFIXES)})[:=]([A-Za-z0-9_-]{{{MIN_IDENTIFIER_LENGTH},}})$",
    re.IGNORECASE,
)
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_PHONE_RE = re.compile(r"^[\d\s()+-]+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _long_enough(value: Any) -> bool:
    return isinstance(value, str) and len(value) >= MIN_IDENTIFIER_LENGTH


def _from_json(text: str) -> Optional[str]:
    if not ((text.startswith("{") and text.endswith("}")) or (text.startswith('"') and text.endswith('"'))):
        return None
    try:
        obj = json.loads(text)
    except ValueError:
        return None

    if not isinstance(obj, dict):
        return None

    for key in IDENTIFIER_KEYS:
        cand = obj.get(key)
        if cand:
            return cand if _long_enough(cand) else None
    return None


def _from_url(text: str) -> Optional[str]:
    if not _URL_RE.match(text):
        return None
    try:
        url = urlparse(text)
    except ValueError:
        return None

    params = parse_qs(url.query)
    for key in IDENTIFIER_KEYS:
        values = params.get(key)
        if values and values[0]:
            if _long_enough(values[0]):
                return values[0]
            break

    segments = [s for s in url.path.split("/") if s]
    if segments and _long_enough(segments[-1]):
        return segments[-1]
    return None


def extract_person_id(text: Optional[str]) -> Optional[str]:
    """Return the person identifier carried by ``text``, if any."""

    if not text or not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None

    for parser in (_from_json, _from_url):
        found = parser(trimmed)
        if found:
            return found

    m = _PREFIX_RE.match(trimmed)
    if m:
        return m.group(1)

    if _RAW_ID_RE.match(trimmed):
        return trimmed
    return None


def normalize_phone(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def classify_contact(text: Optional[str]) -> Optional[Tuple[ContactKind, str]]:
    """Classify manual input as a phone number or an e-mail address."""

    v = (text or "").strip()
    if not v:
        return None
    if _PHONE_RE.match(v):
        digits = normalize_phone(v)
        return (ContactKind.PHONE, digits) if digits else None
    if _EMAIL_RE.match(v):
        return ContactKind.EMAIL, normalize_email(v)
    return None
