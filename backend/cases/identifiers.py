"""
Case identifiers and outward reference numbers.

Case id format::

    {PREFIX}-{STATE}-{DISTRICT}-{YYYY}-{SEQ:06d}-{CHK}
    GRV-AP-NLR-2025-000123-0X

* ``PREFIX``   — category prefix from the registry (determines category).
* ``DISTRICT`` — three-letter district code, ``UNK`` when not recognised.
* ``SEQ``      — per (prefix, district, year) counter stored in
  ``CaseSequence`` and incremented under a row lock.
* ``CHK``      — two-character Luhn mod-36 checksum of the dash-less base.

Outward number format (department routing)::

    OUT/{DEPT_CODE}/{YYYYMMDD}/{SEQ:03d}
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from core.constants import DISTRICT_CODES, UNKNOWN_DISTRICT_CODE, engine_setting
from core.domain.transactions import lock_for_update, run_in_atomic

from .registry import category_for_prefix

_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_CASE_ID_RE = re.compile(r"^([A-Z]{3})-([A-Z]{2})-([A-Z]{3})-(\d{4})-(\d{6})-([A-Z0-9]{2})$")


@dataclass(frozen=True)
class CaseIdParts:
    prefix: str
    state: str
    district: str
    year: int
    sequence: int
    checksum: str

    @property
    def base(self) -> str:
        return f"{self.prefix}-{self.state}-{self.district}-{self.year}-{self.sequence:06d}"


def checksum(value: str) -> str:
    """Luhn mod-36 over the alphanumeric characters of ``value``."""
    total = 0
    alternate = False
    for char in reversed(value.upper()):
        n = _ALPHABET.find(char)
        if n == -1:
            continue
        if alternate:
            n *= 2
            if n >= 36:
                n = n // 36 + n % 36
        total += n
        alternate = not alternate

    check = (36 - total % 36) % 36
    return _ALPHABET[check // 36] + _ALPHABET[check % 36]


def district_code(district: str) -> str:
    return DISTRICT_CODES.get((district or "").strip(), UNKNOWN_DISTRICT_CODE)


def _next_case_sequence(prefix: str, code: str, year: int) -> int:
    from .models import CaseSequence

    counter = lock_for_update(CaseSequence, prefix=prefix, district_code=code, year=year)
    counter.last_value += 1
    counter.save(update_fields=["last_value"])
    return counter.last_value


def generate_case_id(prefix: str, district: str, year: int) -> str:
    """
    Allocate the next case id for ``prefix`` in ``district`` / ``year``.

    Runs atomically on its own or joins the caller's transaction.
    """
    code = district_code(district)
    state = engine_setting("STATE_CODE")
    sequence = run_in_atomic(_next_case_sequence, prefix, code, year)
    base = f"{prefix}-{state}-{code}-{year}-{sequence:06d}"
    return f"{base}-{checksum(base.replace('-', ''))}"


def parse_case_id(case_id: str) -> CaseIdParts | None:
    match = _CASE_ID_RE.match(case_id or "")
    if not match:
        return None
    prefix, state, district, year, sequence, check = match.groups()
    return CaseIdParts(
        prefix=prefix,
        state=state,
        district=district,
        year=int(year),
        sequence=int(sequence),
        checksum=check,
    )


def validate_case_id(case_id: str) -> bool:
    """Format and checksum check; says nothing about existence."""
    parts = parse_case_id(case_id)
    if parts is None:
        return False
    return checksum(parts.base.replace("-", "")) == parts.checksum


def category_for_case_id(case_id: str) -> str:
    """
    Raises:
        UnknownCategory: If the prefix is not registered.
    """
    return category_for_prefix((case_id or "")[:3])


# ── Outward numbers ─────────────────────────────────────────────────


def department_code(name: str) -> str:
    """Initials of the alphabetic words (``Roads & Buildings Department`` → ``RBD``)."""
    return "".join(word[0] for word in name.split() if word[0].isalpha()).upper()


def _next_outward_sequence(code: str, day: date) -> int:
    from .models import OutwardSequence

    counter = lock_for_update(OutwardSequence, department_code=code, date=day)
    counter.last_value += 1
    counter.save(update_fields=["last_value"])
    return counter.last_value


def generate_outward_number(code: str, day: date) -> str:
    sequence = run_in_atomic(_next_outward_sequence, code, day)
    return f"OUT/{code}/{day:%Y%m%d}/{sequence:03d}"
