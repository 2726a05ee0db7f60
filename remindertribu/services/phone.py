"""Phone number normalization shared by every runner and endpoint.

Raw contact values are turned into an E.164-style dialable string. Anything
that cannot be attributed to a country with confidence is rejected rather
than guessed, so a reminder never reaches a stranger.
"""

from __future__ import annotations

import re
from typing import Any

DEFAULT_COUNTRY_CODE = "39"

_NOT_DIAL_CHARS = re.compile(r"[^\d+]")
_NON_DIGITS = re.compile(r"\D")
_DOMESTIC_MOBILE = re.compile(r"^3\d{8,9}$")


def normalize_phone(raw: Any, country_code: str = DEFAULT_COUNTRY_CODE) -> str | None:
    """Return the canonical dialable number for ``raw`` or ``None``.

    Rules, first match wins:
    1. drop every character that is not a digit or ``+``;
    2. a leading ``+`` is kept (later ``+`` signs dropped);
    3. a leading ``00`` becomes ``+``;
    4. a domestic mobile number (``3`` followed by 8-9 digits) gets the
       default country code;
    5. digits already starting with the country code get a ``+``;
    6. everything else is refused.
    """
    if raw is None:
        return None
    dialable = _NOT_DIAL_CHARS.sub("", str(raw))
    if not dialable:
        return None

    if dialable.startswith("+"):
        digits = dialable[1:].replace("+", "")
        return f"+{digits}" if digits else None

    if dialable.startswith("00"):
        digits = dialable[2:].replace("+", "")
        return f"+{digits}" if digits else None

    just = _NON_DIGITS.sub("", dialable)
    if _DOMESTIC_MOBILE.match(just):
        return f"+{country_code}{just}"
    if just.startswith(country_code) and 10 <= len(just) <= 12:
        return f"+{just}"
    return None


def first_dialable(data: dict[str, Any], fields: list[str], country_code: str = DEFAULT_COUNTRY_CODE) -> tuple[str | None, str | None]:
    """Pick the first non-empty field (in priority order) and normalize it.

    Returns ``(field, phone)``. Only the first non-empty field is considered;
    when it does not normalize the member has no usable number.
    """
    for field in fields:
        value = data.get(field)
        if value is None or str(value).strip() == "":
            continue
        return field, normalize_phone(value, country_code)
    return None, None
