from __future__ import annotations

import re

from stdnum import iban
from stdnum.exceptions import ValidationError
from stdnum.iso7064 import mod_97_10

CLABE_WEIGHTS = (3, 7, 1)

_NINE_DIGITS = re.compile(r"\d{9}", re.ASCII)
_EIGHTEEN_DIGITS = re.compile(r"\d{18}", re.ASCII)
_IBAN_SHAPE = re.compile(r"[A-Z]{2}\d{2}[0-9A-Z]{1,30}", re.ASCII)


def aba_routing_number_valid(routing_number: str | None) -> bool:
    """7*(d1+d4+d7) + 3*(d2+d5+d8) + 9*(d3+d6) mod 10 must equal d9."""
    if not routing_number or not _NINE_DIGITS.fullmatch(routing_number):
        return False
    d = [int(c) for c in routing_number]
    total = 7 * (d[0] + d[3] + d[6]) + 3 * (d[1] + d[4] + d[7]) + 9 * (d[2] + d[5])
    return total % 10 == d[8]


def clabe_valid(clabe: str | None) -> bool:
    if not clabe or not _EIGHTEEN_DIGITS.fullmatch(clabe):
        return False
    total = sum((int(c) * CLABE_WEIGHTS[i % 3]) % 10 for i, c in enumerate(clabe[:17]))
    return (10 - total % 10) % 10 == int(clabe[17])


def compact_iban(value: str | None) -> str:
    return iban.compact(value or "")


def iban_country(value: str | None) -> str | None:
    v = compact_iban(value)
    return v[:2] if len(v) >= 2 else None


def iban_valid(value: str | None, country: str | None = None) -> bool:
    """Registry IBAN check (structure + ISO 7064 mod 97-10)."""
    v = compact_iban(value)
    if country is not None and v[:2] != country:
        return False
    try:
        iban.validate(v)
    except ValidationError:
        return False
    return True


def iban_checksum_valid(value: str | None, country: str | None = None) -> bool:
    """Mod 97-10 only, for national IBANs the registry does not list yet."""
    v = compact_iban(value)
    if country is not None and v[:2] != country:
        return False
    if not _IBAN_SHAPE.fullmatch(v):
        return False
    digits = "".join(str(int(c, 36)) for c in v[4:] + v[:4])
    return mod_97_10.is_valid(digits)
