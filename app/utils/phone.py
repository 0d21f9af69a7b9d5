# app/utils/phone.py
"""
Phone number helpers.

Canonical form is the international digit string (country prefix + area
code + subscriber), e.g. 5562998448536. Every function here is total:
bad input maps to None or is passed through, nothing raises.
"""
import json
import logging
import re
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional

from app.core.config import AREA_CODES_FILE, DEFAULT_COUNTRY_PREFIX

log = logging.getLogger("whatsgroups.phone")

BUNDLED_AREA_CODES_FILE = Path(__file__).resolve().parent.parent / "data" / "area_codes.json"

_NON_DIGITS = re.compile(r"\D")
_JID_DIGITS = re.compile(r"^(\d+)@")


def load_area_codes(path: Optional[str] = None) -> FrozenSet[str]:
    """Load the valid area-code table from JSON, falling back to the bundled file."""
    source = Path(path) if path else BUNDLED_AREA_CODES_FILE
    try:
        with open(source, encoding="utf-8") as fh:
            return frozenset(str(code) for code in json.load(fh)["area_codes"])
    except (OSError, ValueError, KeyError, TypeError) as e:
        if source == BUNDLED_AREA_CODES_FILE:
            raise
        log.error(f"❌ Could not load area codes from {source}: {e} - using bundled table")
        return load_area_codes()


VALID_AREA_CODES: FrozenSet[str] = load_area_codes(AREA_CODES_FILE)


def _digits(value: str) -> str:
    return _NON_DIGITS.sub("", value)


def normalize_phone(phone, default_prefix: str = DEFAULT_COUNTRY_PREFIX) -> Optional[str]:
    """
    Normalize a raw phone string to international format.

    Returns None when the input is not a string or has fewer than 10 digits.
    """
    if not phone or not isinstance(phone, str):
        return None

    digits = _digits(phone)
    if not digits:
        return None

    if digits.startswith("0"):
        digits = digits[1:]

    length = len(digits)

    if digits.startswith(default_prefix) and length in (12, 13):
        return digits

    if length in (10, 11):
        return f"{default_prefix}{digits}"

    if length in (12, 13):
        # Leading pair is an area code: the prefix was never there
        if digits[:2] in VALID_AREA_CODES:
            return f"{default_prefix}{digits}"
        return digits

    if length > 13:
        return digits

    return None


def normalize_phone_list(phones: Iterable, default_prefix: str = DEFAULT_COUNTRY_PREFIX) -> List[str]:
    """Normalize every phone, dropping the ones that are not valid. Order is kept."""
    if not phones:
        return []
    normalized = (normalize_phone(phone, default_prefix) for phone in phones)
    return [phone for phone in normalized if phone is not None]


def extract_phone_from_jid(jid) -> str:
    """'5562998448536@s.whatsapp.net' -> '5562998448536'. Non-JIDs come back unchanged."""
    if not jid or not isinstance(jid, str):
        return ""
    match = _JID_DIGITS.match(jid)
    return match.group(1) if match else jid


def format_phone_for_display(phone, default_prefix: str = DEFAULT_COUNTRY_PREFIX) -> str:
    """
    Format a phone for humans: (62)9 9844-8536.

    8-digit subscriber numbers get the mobile 9 added. Anything that
    can't be parsed confidently is returned as given.
    """
    if not phone or not isinstance(phone, str):
        return ""

    raw = extract_phone_from_jid(phone) if "@" in phone else phone
    digits = _digits(raw)

    if digits.startswith(default_prefix) and len(digits) - len(default_prefix) >= 10:
        digits = digits[len(default_prefix):]

    if len(digits) < 10:
        return phone

    area_code, number = digits[:2], digits[2:]

    if len(number) == 9:
        return f"({area_code}){number[0]} {number[1:5]}-{number[5:]}"
    if len(number) == 8:
        return f"({area_code})9 {number[:4]}-{number[4:]}"

    return phone


def ensure_normalized_phone(phone, default_prefix: str = DEFAULT_COUNTRY_PREFIX) -> Optional[str]:
    """normalize_phone for values that may still carry the WhatsApp JID suffix"""
    if not phone or not isinstance(phone, str):
        return None
    return normalize_phone(extract_phone_from_jid(phone.strip()), default_prefix)
