"""Phone number normalization and sender identity.

WhatsApp delivers the sender in international form (``+5215512345678``,
``15551234567``...). Downstream lookups want the national 10 digit form, so
known country code prefixes are stripped by exact length:

    13 digits starting with 521  -> drop 3  (Mexico mobile)
    12 digits starting with 52   -> drop 2  (Mexico)
    11 digits starting with 1    -> drop 1  (US/Canada)

Anything else is left as digits only. The rules are length-gated:
a 10 digit number never matches and normalize() is idempotent.
"""

import hashlib
import uuid
from typing import Callable, Optional

from whatshook.logging_config import get_logger, mask_phone
from whatshook.services.result import NOT_FOUND, Result

logger = get_logger("phone_service")

COUNTRY_CODE_RULES = (
    (13, "521", 3),
    (12, "52", 2),
    (11, "1", 1),
)

US_COUNTRY_CODE = "1"
NATIONAL_NUMBER_LENGTH = 10


def digits_only(raw: Optional[str]) -> str:
    if not raw:
        return ""
    return "".join(ch for ch in raw if ch.isdigit())


def normalize(raw: Optional[str]) -> str:
    """Return canonical phone digits: digits only, known country code stripped."""
    digits = digits_only(raw)
    for length, prefix, strip in COUNTRY_CODE_RULES:
        if len(digits) == length and digits.startswith(prefix):
            logger.debug(f"Stripped country code {prefix} from {mask_phone(digits)}")
            return digits[strip:]
    return digits


def format_for_whatsapp(raw: Optional[str]) -> str:
    """Recipient form expected by the notification channel (``+`` and digits)."""
    if not raw:
        return ""
    if raw.startswith("+"):
        return raw
    return f"+{digits_only(raw)}"


def derive_session_id(raw: Optional[str]) -> str:
    """Stable conversation id for a phone number.

    SHA-256 over the normalized digits, first 16 bytes laid out as a GUID.
    Byte order is the GUID layout: first three groups little-endian.
    """
    digest = hashlib.sha256(normalize(raw).encode("utf-8")).digest()
    return str(uuid.UUID(bytes_le=digest[:16]))


def candidate_forms(raw: Optional[str]) -> list[str]:
    """Lookup forms of a phone number in the order they should be tried."""
    normalized = normalize(raw)
    candidates = [normalized]

    if raw is not None and normalized != raw:
        digits = digits_only(raw)
        if digits != normalized:
            candidates.append(digits)

    if len(normalized) == NATIONAL_NUMBER_LENGTH:
        with_country_code = US_COUNTRY_CODE + normalized
        if with_country_code not in candidates:
            candidates.append(with_country_code)

    return candidates


def resolve_store(raw: Optional[str], lookup: Callable[[str], Result]) -> Result:
    """Resolve a store record for a phone number, trying fallback forms.

    Each form is looked up independently and the first success wins. A
    lookup that fails for any reason, including a raised exception, only
    means that form did not resolve: the caller always gets ``not_found``
    and cannot tell a missing store from an unreachable lookup service.
    """
    tried = []
    for form in candidate_forms(raw):
        tried.append(form)
        try:
            result = lookup(form)
        except Exception as e:
            logger.warning(f"Store lookup raised for {mask_phone(form)}: {e}")
            continue
        if result.ok:
            if len(tried) > 1:
                logger.info(f"Store resolved using fallback form {mask_phone(form)}")
            return result

    logger.warning(
        "Store not found for phone number",
        extra={"context": {"phone": mask_phone(raw), "tried": [mask_phone(t) for t in tried]}},
    )
    return Result.failure("No store for phone number", NOT_FOUND)
