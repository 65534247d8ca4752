import re

_NON_DIGITS = re.compile(r"\D")
_DDD = re.compile(r"^[1-9]\d$")
_LANDLINE = re.compile(r"^[2-9]\d{7}$")
_MOBILE = re.compile(r"^9\d{8}$")


def normalize_phone_br(raw: str | None) -> str | None:
    """Brazilian number -> "55" + DDD + local digits, or None when unusable.

    Accepts anything with separators, a leading trunk zero and an optional
    55 country code: "(11) 98765-4321", "+55 11 98765 4321", "011987654321".
    """
    if not raw:
        return None

    digits = _NON_DIGITS.sub("", raw).lstrip("0")
    if digits.startswith("55"):
        digits = digits[2:]

    if len(digits) not in (10, 11):
        return None

    ddd, local = digits[:2], digits[2:]
    if not _DDD.match(ddd):
        return None
    if len(local) == 8 and not _LANDLINE.match(local):
        return None
    if len(local) == 9 and not _MOBILE.match(local):
        return None

    return f"55{ddd}{local}"
