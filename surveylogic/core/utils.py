"""
Shared value helpers for the rule engine.
"""

import copy
from collections.abc import Mapping
from datetime import date, datetime
from types import MappingProxyType
from typing import Any

from dateutil import parser as dateutil_parser

_FIRST_DEFAULT = datetime(2000, 1, 1)
_SECOND_DEFAULT = datetime(2001, 2, 2)


def is_empty_value(value: Any) -> bool:
    """Check whether an answer counts as unanswered.

    None, blank strings, and empty lists, tuples or dicts are empty.
    Zero and False are real answers.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def to_number(value: Any) -> float | None:
    """Coerce an int, float or numeric string to float.

    Booleans are not numbers here. Returns None if the value is not numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def parse_datetime(value: Any) -> datetime | None:
    """Parse a date or datetime string into a naive datetime.

    The string must state a full date (year, month and day); "may" or
    "monday" are not dates. Timezone information is dropped so that
    answers and condition values with and without offsets compare.
    Returns None for non-strings and unparseable strings.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value or not isinstance(value, str):
        return None

    if not any(ch.isdigit() for ch in value):
        return None

    # Any date part taken from a default differs between the two parses
    try:
        first = dateutil_parser.parse(value, default=_FIRST_DEFAULT)
        second = dateutil_parser.parse(value, default=_SECOND_DEFAULT)
    except (ValueError, TypeError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first.replace(tzinfo=None)


def snapshot_answers(answers: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return a frozen deep copy of a live answer map.

    Evaluation functions expect an answer map that cannot change while
    they run. Loop group instance lists are copied too.
    """
    return MappingProxyType(copy.deepcopy(dict(answers)))
