"""
Deterministic condition evaluator.

Evaluates one (operator, answer, condition value) triple to a boolean.
This runs on the render path, so it never raises: any operator and
value combination it cannot evaluate resolves to False and carries a
Diagnostic explaining why.

An unanswered question is an empty value for every operator, so
``is_empty`` passes and every comparison operator fails.
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from surveylogic.core.results import Diagnostic, DiagnosticCode
from surveylogic.core.schema import (
    ConditionOperator,
    ConditionValue,
    ListValue,
    RangeValue,
    ScalarValue,
    parse_condition_value,
)
from surveylogic.core.utils import is_empty_value, parse_datetime, to_number

_TRUE_STRINGS = frozenset({"yes", "true", "1"})
_FALSE_STRINGS = frozenset({"no", "false", "0"})


class ConditionOutcome(BaseModel):
    """Boolean result of a condition plus an optional diagnostic."""

    matched: bool
    diagnostic: Diagnostic | None = None


def evaluate(operator: ConditionOperator | str, answer_value: Any, condition_value: Any) -> bool:
    """Evaluate a condition and return only the boolean result."""
    return check_condition(operator, answer_value, condition_value).matched


def check_condition(
    operator: ConditionOperator | str,
    answer_value: Any,
    condition_value: Any,
    rule_id: str | None = None,
) -> ConditionOutcome:
    """Evaluate a single condition against an answer.

    Args:
        operator: The operator, as an enum member or its string value.
        answer_value: The source question's answer (None if unanswered).
        condition_value: A parsed ConditionValue or the raw JSON value.
        rule_id: Optional rule ID attached to any diagnostic.

    Returns:
        The outcome. ``matched`` is False whenever a diagnostic is set.
    """
    try:
        op = ConditionOperator(operator)
    except (ValueError, TypeError):
        return _fail(DiagnosticCode.UNSUPPORTED_OPERATOR, f"Unknown operator '{operator}'", rule_id)

    match op:
        case ConditionOperator.IS_EMPTY:
            return ConditionOutcome(matched=is_empty_value(answer_value))
        case ConditionOperator.IS_NOT_EMPTY:
            return ConditionOutcome(matched=not is_empty_value(answer_value))

    parsed = _as_condition_value(condition_value, op)
    if parsed is None:
        return _fail(
            DiagnosticCode.MALFORMED_CONDITION_VALUE,
            f"Condition value {condition_value!r} cannot be used with '{op.value}'",
            rule_id,
        )

    if is_empty_value(answer_value):
        return ConditionOutcome(matched=False)

    match op:
        case ConditionOperator.EQUALS:
            return _check_equals(answer_value, parsed, rule_id)

        case ConditionOperator.NOT_EQUALS:
            return _negate(_check_equals(answer_value, parsed, rule_id))

        case ConditionOperator.CONTAINS:
            return _check_contains(answer_value, parsed, rule_id)

        case ConditionOperator.NOT_CONTAINS:
            return _negate(_check_contains(answer_value, parsed, rule_id))

        case ConditionOperator.GREATER_THAN:
            return _check_compare(answer_value, parsed, rule_id, lambda a, b: a > b)

        case ConditionOperator.LESS_THAN:
            return _check_compare(answer_value, parsed, rule_id, lambda a, b: a < b)

        case ConditionOperator.BETWEEN:
            return _check_between(answer_value, parsed, rule_id)

    return _fail(DiagnosticCode.UNSUPPORTED_OPERATOR, f"Operator '{op.value}' is not evaluable", rule_id)


def is_evaluable_pairing(operator: ConditionOperator, condition_value: Any) -> bool:
    """Check whether an operator can ever be evaluated with this condition value.

    Answer-independent: a False here means every evaluation of the pair
    would produce a malformed-value diagnostic.
    """
    if operator in (ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY):
        return True

    parsed = _as_condition_value(condition_value, operator)
    if parsed is None:
        return False

    match operator:
        case ConditionOperator.BETWEEN:
            return isinstance(parsed, RangeValue)
        case ConditionOperator.GREATER_THAN | ConditionOperator.LESS_THAN:
            return isinstance(parsed, ScalarValue) and not isinstance(parsed.value, bool)
        case _:
            return not isinstance(parsed, RangeValue)


# -----------------------------------------------------------------
# Operator implementations
# -----------------------------------------------------------------


def _check_equals(answer: Any, expected: ConditionValue, rule_id: str | None) -> ConditionOutcome:
    """Equality of values; list answers compare as order-independent sets."""
    if isinstance(expected, RangeValue):
        return _fail(DiagnosticCode.MALFORMED_CONDITION_VALUE, "A range cannot be compared for equality", rule_id)
    if isinstance(answer, dict):
        return _fail(DiagnosticCode.UNSUPPORTED_ANSWER_SHAPE, "Structured answers cannot be compared for equality", rule_id)

    answer_items = list(answer) if isinstance(answer, (list, tuple)) else [answer]
    expected_items = _items(expected)

    same_set = (
        all(any(_scalar_equal(a, e) for e in expected_items) for a in answer_items)
        and all(any(_scalar_equal(a, e) for a in answer_items) for e in expected_items)
    )
    return ConditionOutcome(matched=same_set)


def _check_contains(answer: Any, needle: ConditionValue, rule_id: str | None) -> ConditionOutcome:
    """Membership for list answers, case-insensitive substring for text answers."""
    if isinstance(needle, RangeValue):
        return _fail(DiagnosticCode.MALFORMED_CONDITION_VALUE, "A range cannot be used as a membership value", rule_id)

    needles = _items(needle)

    if isinstance(answer, (list, tuple)):
        return ConditionOutcome(
            matched=any(_scalar_equal(item, n) for n in needles for item in answer)
        )

    if isinstance(answer, str):
        haystack = answer.lower()
        return ConditionOutcome(
            matched=any(str(n).strip().lower() in haystack for n in needles)
        )

    return _fail(
        DiagnosticCode.UNSUPPORTED_ANSWER_SHAPE,
        f"Answer of type {type(answer).__name__} does not support 'contains'",
        rule_id,
    )


def _check_compare(
    answer: Any,
    bound: ConditionValue,
    rule_id: str | None,
    comparator: Callable[[Any, Any], bool],
) -> ConditionOutcome:
    """Numeric or date comparison against a single bound."""
    if not isinstance(bound, ScalarValue):
        return _fail(DiagnosticCode.MALFORMED_CONDITION_VALUE, "Comparison needs a single bound", rule_id)

    pair = _comparable_pair(answer, bound.value)
    if pair is None:
        return _fail(
            DiagnosticCode.INCOMPARABLE_ANSWER,
            f"Answer {answer!r} is not comparable with {bound.value!r}",
            rule_id,
        )
    return ConditionOutcome(matched=comparator(*pair))


def _check_between(answer: Any, bounds: ConditionValue, rule_id: str | None) -> ConditionOutcome:
    """Inclusive range check."""
    if not isinstance(bounds, RangeValue):
        return _fail(
            DiagnosticCode.MALFORMED_CONDITION_VALUE,
            "'between' needs exactly two bounds [low, high]",
            rule_id,
        )

    low = _comparable_pair(answer, bounds.low)
    high = _comparable_pair(answer, bounds.high)
    if low is None or high is None:
        return _fail(
            DiagnosticCode.INCOMPARABLE_ANSWER,
            f"Answer {answer!r} is not comparable with [{bounds.low!r}, {bounds.high!r}]",
            rule_id,
        )
    value, low_bound = low
    _, high_bound = high
    return ConditionOutcome(matched=low_bound <= value <= high_bound)


# -----------------------------------------------------------------
# Value helpers
# -----------------------------------------------------------------


def _as_condition_value(raw: Any, operator: ConditionOperator) -> ConditionValue | None:
    if isinstance(raw, (ScalarValue, ListValue, RangeValue)):
        return raw
    return parse_condition_value(raw, operator)


def _items(value: ScalarValue | ListValue) -> list:
    if isinstance(value, ListValue):
        return list(value.values)
    return [value.value]


def _to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def _scalar_equal(a: Any, b: Any) -> bool:
    """Compare two scalars: trimmed strings, yes/no booleans, numbers with numeric strings."""
    if isinstance(a, bool) or isinstance(b, bool):
        left, right = _to_bool(a), _to_bool(b)
        return left is not None and left == right

    if isinstance(a, (int, float)) or isinstance(b, (int, float)):
        left, right = to_number(a), to_number(b)
        return left is not None and left == right

    if isinstance(a, str) and isinstance(b, str):
        return a.strip() == b.strip()

    return a == b


def _comparable_pair(answer: Any, bound: Any) -> tuple[Any, Any] | None:
    """Coerce both sides to numbers, or else both to datetimes.

    A numeric value is never read as a date, so "5" never becomes the
    5th of the current month.
    """
    answer_num, bound_num = to_number(answer), to_number(bound)
    if answer_num is not None and bound_num is not None:
        return answer_num, bound_num
    if answer_num is not None or bound_num is not None:
        return None

    answer_date, bound_date = parse_datetime(answer), parse_datetime(bound)
    if answer_date is None or bound_date is None:
        return None
    return answer_date, bound_date


def _negate(outcome: ConditionOutcome) -> ConditionOutcome:
    if outcome.diagnostic is not None:
        return outcome
    return ConditionOutcome(matched=not outcome.matched)


def _fail(code: DiagnosticCode, message: str, rule_id: str | None) -> ConditionOutcome:
    return ConditionOutcome(
        matched=False,
        diagnostic=Diagnostic(code=code, message=message, rule_id=rule_id),
    )
