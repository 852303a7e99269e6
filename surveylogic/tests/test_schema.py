"""
Unit tests for the survey definition models.

Tests cover:
- Question type validation (options for select types, loop_config for loop groups)
- Loop group iteration bounds
- Subquestions require a parent reference
- Rules load leniently (targets and condition values are not checked)
- Unknown operators and actions are rejected
"""

import pytest
from pydantic import ValidationError

from surveylogic.core.schema import (
    ConditionOperator,
    LogicalOperator,
    LoopGroupConfig,
    Page,
    Question,
    QuestionType,
    Rule,
    RuleAction,
    ScalarValue,
    Subquestion,
)


# =============================================================
# Test: Questions
# =============================================================


class TestQuestion:

    def test_minimal_question(self):
        q = Question(id="q1", type="short_text")
        assert q.type == QuestionType.SHORT_TEXT
        assert q.required is False
        assert q.is_loop_group is False

    def test_select_requires_options(self):
        with pytest.raises(ValidationError, match="options"):
            Question(id="q1", type="single_select")

    def test_select_with_options(self):
        q = Question(id="q1", type="multi_select", options=["a", "b"])
        assert q.options == ["a", "b"]

    def test_loop_group_requires_config(self):
        with pytest.raises(ValidationError, match="loop_config"):
            Question(id="loop", type="loop_group")

    def test_loop_config_only_on_loop_groups(self):
        with pytest.raises(ValidationError, match="loop_config"):
            Question(id="q1", type="short_text", loop_config=LoopGroupConfig())

    def test_loop_group_question(self):
        q = Question(id="loop", type="loop_group", loop_config=LoopGroupConfig(min_iterations=2, max_iterations=4))
        assert q.is_loop_group is True
        assert q.loop_config.min_iterations == 2

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Question(id="q1", type="slider")

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Question(id="", type="short_text")


class TestLoopGroupConfig:

    def test_defaults(self):
        config = LoopGroupConfig()
        assert (config.min_iterations, config.max_iterations) == (1, 10)
        assert config.allow_reorder is False

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError, match="must not exceed"):
            LoopGroupConfig(min_iterations=5, max_iterations=2)

    def test_zero_minimum_rejected(self):
        with pytest.raises(ValidationError):
            LoopGroupConfig(min_iterations=0)

    def test_equal_bounds_allowed(self):
        assert LoopGroupConfig(min_iterations=3, max_iterations=3).max_iterations == 3


class TestSubquestion:

    def test_requires_parent(self):
        with pytest.raises(ValidationError):
            Subquestion(id="s1", type="short_text")

    def test_nested_loop_subquestion(self):
        sub = Subquestion(
            id="pets",
            type="loop_group",
            parent_loop_question_id="members",
            loop_config=LoopGroupConfig(max_iterations=2),
        )
        assert sub.is_loop_group is True


class TestPage:

    def test_defaults(self):
        page = Page(id="p1")
        assert page.order == 0
        assert page.title == ""


# =============================================================
# Test: Rules
# =============================================================


class TestRule:

    def test_defaults(self):
        rule = Rule(id="r1", source_question_id="q1", operator="is_empty", target_question_id="q2", action="hide")
        assert rule.operator == ConditionOperator.IS_EMPTY
        assert rule.action == RuleAction.HIDE
        assert rule.logical_operator == LogicalOperator.AND
        assert rule.order == 0
        assert rule.condition_value is None

    def test_missing_target_still_loads(self):
        rule = Rule(id="r1", source_question_id="q1", operator="equals", condition_value="x", action="show")
        assert rule.target_question_id is None
        assert rule.target_page_id is None

    def test_condition_property_parses_value(self):
        rule = Rule(id="r1", source_question_id="q1", operator="equals", condition_value=3, action="show")
        assert rule.condition == ScalarValue(value=3)

    def test_unparseable_condition_is_none(self):
        rule = Rule(id="r1", source_question_id="q1", operator="equals", condition_value={"a": 1}, action="show")
        assert rule.condition is None

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            Rule(id="r1", source_question_id="q1", operator="roughly", action="show")

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            Rule(id="r1", source_question_id="q1", operator="equals", action="disable")

    def test_or_operator(self):
        rule = Rule(id="r1", source_question_id="q1", operator="equals", action="show", logical_operator="OR")
        assert rule.logical_operator == LogicalOperator.OR
