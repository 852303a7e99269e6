"""
Survey definition models.

These Pydantic models describe what the rule engine reads: pages,
questions, loop group subquestions and conditional rules. They are
loaded read-only from the survey store; the engine never mutates them.

Questions and subquestions are validated strictly (authoring-time
errors raise ValidationError). Rules are validated leniently so that
a malformed persisted rule can still be loaded and then skipped by
the engine instead of breaking response rendering.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


# --- Enums ---


class QuestionType(str, Enum):
    """Supported question types."""

    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    MULTI_SELECT = "multi_select"
    SINGLE_SELECT = "single_select"
    BOOLEAN = "boolean"
    DATE_TIME = "date_time"
    FILE_UPLOAD = "file_upload"
    LOOP_GROUP = "loop_group"


class ConditionOperator(str, Enum):
    """Operators a rule can apply to its source question's answer."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class RuleAction(str, Enum):
    """Effect a satisfied rule has on its target."""

    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    MAKE_OPTIONAL = "make_optional"


class LogicalOperator(str, Enum):
    """How a rule joins the accumulated result of the rules before it."""

    AND = "AND"
    OR = "OR"


# Operators that only inspect emptiness and ignore the condition value
VALUELESS_OPERATORS = frozenset({ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY})

_TYPES_REQUIRING_OPTIONS = frozenset({QuestionType.SINGLE_SELECT, QuestionType.MULTI_SELECT})


# --- Condition values ---


Scalar = str | int | float | bool


class ScalarValue(BaseModel):
    """A single string, number or boolean to compare against."""

    kind: Literal["scalar"] = "scalar"
    value: Scalar


class ListValue(BaseModel):
    """A list of scalars, used for membership tests."""

    kind: Literal["list"] = "list"
    values: list[Scalar]


class RangeValue(BaseModel):
    """An inclusive [low, high] range for the between operator."""

    kind: Literal["range"] = "range"
    low: Scalar
    high: Scalar


ConditionValue = ScalarValue | ListValue | RangeValue


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def parse_condition_value(raw: Any, operator: ConditionOperator) -> ConditionValue | None:
    """Parse a persisted condition value into its closed variant.

    A two-element list is read as a range under ``between`` and as a
    membership list otherwise. Returns None for shapes no operator can
    use (null, dicts, nested lists).

    Args:
        raw: The JSON-decoded condition value.
        operator: The operator the value will be used with.

    Returns:
        The parsed variant, or None if the shape is unsupported.
    """
    if _is_scalar(raw):
        return ScalarValue(value=raw)

    if isinstance(raw, (list, tuple)):
        if not all(_is_scalar(item) for item in raw):
            return None
        if operator == ConditionOperator.BETWEEN and len(raw) == 2:
            return RangeValue(low=raw[0], high=raw[1])
        return ListValue(values=list(raw))

    return None


# --- Loop group configuration ---


class LoopGroupConfig(BaseModel):
    """Iteration bounds and UI labels for a loop group."""

    min_iterations: int = Field(default=1, ge=1, description="Fewest iterations a complete response may have")
    max_iterations: int = Field(default=10, ge=1, description="Most iterations a complete response may have")
    add_button_label: str = Field(default="Add another")
    remove_button_label: str = Field(default="Remove")
    allow_reorder: bool = Field(default=False)

    @model_validator(mode="after")
    def validate_bounds(self) -> "LoopGroupConfig":
        if self.min_iterations > self.max_iterations:
            raise ValueError(
                f"min_iterations ({self.min_iterations}) must not exceed "
                f"max_iterations ({self.max_iterations})"
            )
        return self


# --- Questions ---


class _QuestionBase(BaseModel):
    """Fields shared by top-level questions and loop group subquestions."""

    id: str = Field(..., min_length=1, description="Unique question identifier")
    type: QuestionType = Field(..., description="The widget type for this question")
    title: str = Field(default="", description="The question text shown to respondents")
    required: bool = Field(default=False, description="Base requiredness before rules apply")
    options: list[str] | None = Field(
        default=None,
        description="Available options (required for select types)",
    )
    loop_config: LoopGroupConfig | None = Field(
        default=None,
        description="Iteration configuration (loop_group type only)",
    )
    order: int = Field(default=0, description="Position within the page or loop group")

    @property
    def is_loop_group(self) -> bool:
        return self.type == QuestionType.LOOP_GROUP

    @model_validator(mode="after")
    def validate_type_specific_fields(self):
        """Select types need options; loop groups need a loop configuration."""
        if self.type in _TYPES_REQUIRING_OPTIONS and not self.options:
            raise ValueError(
                f"Question '{self.id}' of type '{self.type.value}' must have non-empty 'options'"
            )

        if self.type == QuestionType.LOOP_GROUP and self.loop_config is None:
            raise ValueError(f"Loop group '{self.id}' must have a 'loop_config'")

        if self.type != QuestionType.LOOP_GROUP and self.loop_config is not None:
            raise ValueError(
                f"Question '{self.id}' of type '{self.type.value}' should not have 'loop_config'"
            )

        return self


class Question(_QuestionBase):
    """A top-level question owned by a page."""

    page_id: str = Field(default="", description="The page this question belongs to")


class Subquestion(_QuestionBase):
    """A question inside a loop group.

    Subquestions reference their parent by id rather than being
    embedded in it, so a loop group subquestion may itself be the
    parent of further subquestions.
    """

    parent_loop_question_id: str = Field(
        ...,
        min_length=1,
        description="The loop group question (or subquestion) this belongs to",
    )


class Page(BaseModel):
    """A survey page. Page-targeted rules apply to every question on it."""

    id: str = Field(..., min_length=1)
    survey_id: str = Field(default="")
    title: str = Field(default="")
    order: int = Field(default=0)


# --- Rules ---


class Rule(BaseModel):
    """A conditional rule targeting one question or one page.

    Targets and the condition value are not validated here. The engine
    skips rules it cannot evaluate (see ``rules.rule_defects``) and
    ``authoring.find_rule_issues`` reports them at build time.
    """

    id: str = Field(..., min_length=1)
    survey_id: str = Field(default="")
    source_question_id: str = Field(..., description="The question whose answer is inspected")
    operator: ConditionOperator
    condition_value: Any = Field(default=None, description="Scalar, list, or [low, high] range")
    target_question_id: str | None = Field(default=None)
    target_page_id: str | None = Field(default=None)
    action: RuleAction
    logical_operator: LogicalOperator = Field(
        default=LogicalOperator.AND,
        description="How this rule joins the result of the rules ordered before it",
    )
    order: int = Field(default=0, description="Fold sequence and tie-break")

    @property
    def condition(self) -> ConditionValue | None:
        """The condition value parsed for this rule's operator."""
        return parse_condition_value(self.condition_value, self.operator)
