"""
Booking Identifier Generator.

Codes are a 2-digit year prefix plus a 3-digit sequence: 25001, 25002,
... 25999. The sequence restarts at 001 each year. Allocation against
the database (and its retry discipline) lives in services.booking_codes.
"""

import re
from typing import Iterable, Optional

from motorpool.app.core.exceptions import SequenceExhausted

MAX_SEQUENCE = 999

BOOKING_CODE_PATTERN = re.compile(r"^(\d{2})(\d{3})$")


def year_prefix(year: int) -> str:
    return f"{year % 100:02d}"


def code_sequence(code: str, prefix: str) -> Optional[int]:
    """Sequence number of `code`, or None if it is not a code for `prefix`."""
    match = BOOKING_CODE_PATTERN.match(code or "")
    if not match or match.group(1) != prefix:
        return None
    return int(match.group(2))


def next_booking_code(year: int, existing_codes: Iterable[str]) -> str:
    """
    Next code for `year` given the codes already issued.
    
    Codes for other years and malformed values are ignored.
    
    Raises:
        SequenceExhausted: the year already has code YY999
    """
    prefix = year_prefix(year)
    sequences = [seq for seq in (code_sequence(code, prefix) for code in existing_codes) if seq is not None]
    
    next_sequence = max(sequences, default=0) + 1
    if next_sequence > MAX_SEQUENCE:
        raise SequenceExhausted(prefix)
    
    return f"{prefix}{next_sequence:03d}"
