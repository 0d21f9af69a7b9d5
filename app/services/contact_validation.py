"""
WhatsApp number validation through the Evolution API.

Evolution releases expose the check under different paths, so each known
endpoint is tried in turn while the previous one answers 404.
"""
import logging
from typing import Any, Dict, List

from app.core.errors import EvolutionAPIError
from app.utils.phone import normalize_phone_list

log = logging.getLogger("whatsgroups.contact_validation")

VALIDATION_ENDPOINTS = (
    "/chat/whatsappNumbers",
    "/misc/check-number-status",
    "/chat/checkNumber",
)


def validate_phone_numbers(client, instance_name: str, phones: List[str]) -> List[Dict[str, Any]]:
    """
    Check which phones exist on WhatsApp.

    Returns the gateway's result list ({jid, exists, number, name?, lid?}).
    An empty list means nothing could be checked; callers accept the
    numbers unvalidated in that case.
    """
    numbers = normalize_phone_list(phones)
    if not numbers:
        return []

    for endpoint in VALIDATION_ENDPOINTS:
        try:
            response = client.check_numbers(instance_name, numbers, endpoint=endpoint)
        except EvolutionAPIError as e:
            if e.is_not_found:
                log.debug(f"Validation endpoint {endpoint} not available, trying next")
                continue
            log.error(f"❌ Failed to validate numbers: {e}")
            return []
        except Exception as e:
            log.error(f"❌ Failed to validate numbers: {e}")
            return []

        if not isinstance(response, list):
            return []

        names_captured = sum(1 for r in response if isinstance(r, dict) and r.get("name"))
        if names_captured:
            log.info(f"✅ {names_captured} name(s) captured from {endpoint}")
        return [r for r in response if isinstance(r, dict)]

    log.warning(f"⚠️ No validation endpoint available. {len(numbers)} number(s) accepted without validation.")
    return []
