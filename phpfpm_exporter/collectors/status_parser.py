"""Parser for the PHP-FPM plain-text status page."""

import re
from typing import List

from ..utils.metrics import StatusField

INTEGER_PATTERN = re.compile(r'^[+-]?[0-9]+$')
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


def parse_status(raw: bytes) -> List[StatusField]:
    """
    Extract integer `key: value` pairs from a status payload.

    Key is everything before the first colon and value everything after it,
    both stripped. Lines without a colon and non-integer values (e.g.
    `pool: www`, `start time: ...`) are skipped, as are values outside the
    signed 64-bit range. Fields keep their order of appearance, duplicates
    included.

    Args:
        raw: Status page body

    Returns:
        List[StatusField]: Parsed fields
    """
    fields = []
    for line in raw.decode('utf-8', 'replace').split('\n'):
        key, colon, value = line.partition(':')
        key = key.strip()
        value = value.strip()
        if not colon or not key:
            continue
        if not INTEGER_PATTERN.match(value):
            continue
        try:
            number = int(value)
        except ValueError:
            # beyond the interpreter's int string conversion limit
            continue
        if not INT64_MIN <= number <= INT64_MAX:
            continue
        fields.append(StatusField(name=key, value=number))
    return fields
