# app/utils/variables.py
"""
Template variables for welcome/goodbye messages.

    render_template("Olá $firstName, bem-vindo ao $groupName!", contact, group)

Tokens are literal and case-sensitive. Unknown tokens are left in place.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import DEFAULT_CONTACT_NAME, LOCAL_TIMEZONE
from app.utils.phone import format_phone_for_display

log = logging.getLogger("whatsgroups.variables")

try:
    _LOCAL_TZ: Optional[ZoneInfo] = ZoneInfo(LOCAL_TIMEZONE)
except (ZoneInfoNotFoundError, ValueError):
    log.warning("LOCAL_TIMEZONE invalid (%s); using server local time", LOCAL_TIMEZONE)
    _LOCAL_TZ = None


@dataclass
class ContactData:
    phone: str                              # canonical, e.g. 5562998448536
    name: Optional[str] = None
    formatted_phone: Optional[str] = None   # computed when not given


@dataclass
class GroupData:
    id: str
    name: Optional[str] = None
    description: Optional[str] = None


AVAILABLE_VARIABLES = [
    {"variable": "$name", "label": "Name", "description": "Contact full name (alias for $fullName)"},
    {"variable": "$firstName", "label": "First name", "description": "Contact first name"},
    {"variable": "$lastName", "label": "Last name", "description": "Everything after the first name"},
    {"variable": "$fullName", "label": "Full name", "description": "Contact full name"},
    {"variable": "$formattedPhone", "label": "Formatted phone", "description": "Phone formatted for display, e.g. (62)9 9844-8536"},
    {"variable": "$originalPhone", "label": "Original phone", "description": "Normalized phone, e.g. 5562998448536"},
    {"variable": "$hora", "label": "Current time", "description": "Current local time as HH:MM"},
    {"variable": "$groupName", "label": "Group name", "description": "WhatsApp group name"},
    {"variable": "$groupDescription", "label": "Group description", "description": "WhatsApp group description"},
    {"variable": "$groupId", "label": "Group ID", "description": "WhatsApp group JID"},
]


def _split_name(full_name: str):
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _current_time(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(_LOCAL_TZ)
    return f"{now.hour:02d}:{now.minute:02d}"


def build_variables(
    contact: ContactData,
    group: Optional[GroupData] = None,
    default_name: str = DEFAULT_CONTACT_NAME,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Resolve every token available for this contact (and group, when given)."""
    full_name = contact.name.strip() if contact.name and contact.name.strip() else default_name
    first_name, last_name = _split_name(full_name)

    variables = {
        "$name": full_name,
        "$firstName": first_name,
        "$lastName": last_name,
        "$fullName": full_name,
        "$formattedPhone": contact.formatted_phone or format_phone_for_display(contact.phone),
        "$originalPhone": contact.phone or "",
        "$hora": _current_time(now),
    }

    if group is not None:
        variables["$groupName"] = group.name or "Grupo"
        variables["$groupDescription"] = group.description or ""
        variables["$groupId"] = group.id or ""

    return variables


def render_template(
    text,
    contact: ContactData,
    group: Optional[GroupData] = None,
    default_name: str = DEFAULT_CONTACT_NAME,
    now: Optional[datetime] = None,
):
    """
    Replace every known $token in text.

    Single pass over the text, longest token first, so the result does not
    depend on token order and substituted values are never rescanned.
    """
    if not text or not isinstance(text, str):
        return text

    variables = build_variables(contact, group, default_name, now)
    pattern = re.compile(
        "|".join(re.escape(token) for token in sorted(variables, key=len, reverse=True))
    )
    return pattern.sub(lambda match: variables[match.group(0)], text)
