import re

_E164_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")


def normalize_e164_phone(phone: str) -> str:
    text = str(phone or "").strip()
    compact = "".join(ch for ch in text if ch not in " -().")
    if not compact:
        raise ValueError("phone must not be blank")
    if compact.startswith("00"):
        compact = "+" + compact[2:]
    if not _E164_PATTERN.match(compact):
        raise ValueError("phone must be in E.164 format, e.g. +14165551234")
    return compact


def mask_phone(phone: str) -> str:
    if len(phone) <= 4:
        return "****"
    return f"{phone[:2]}****{phone[-2:]}"
