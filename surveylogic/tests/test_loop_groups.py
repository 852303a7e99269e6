"""
Unit tests for loop group validation.

Tests cover:
- Iteration counts below, within and above [min, max]
- Missing required subquestions reported with their flattened path
- Optional subquestions never block
- Two-level nesting (path prefixes and nested structural violations)
- Non-list answers and non-dict instances
- SubquestionArena ordering and lookup
"""

import pytest

from surveylogic.core.loop_groups import SubquestionArena, validate_loop_group
from surveylogic.core.schema import LoopGroupConfig, Question, Subquestion


# --- Helpers ---


def make_loop(loop_id: str = "loop", min_iterations: int = 1, max_iterations: int = 3) -> Question:
    return Question(
        id=loop_id,
        type="loop_group",
        page_id="p1",
        loop_config=LoopGroupConfig(min_iterations=min_iterations, max_iterations=max_iterations),
    )


def make_sub(
    sub_id: str,
    parent: str = "loop",
    required: bool = False,
    order: int = 0,
    qtype: str = "short_text",
    loop_config: LoopGroupConfig | None = None,
) -> Subquestion:
    return Subquestion(
        id=sub_id,
        type=qtype,
        required=required,
        order=order,
        parent_loop_question_id=parent,
        loop_config=loop_config,
    )


@pytest.fixture
def flat_arena() -> SubquestionArena:
    """loop -> s1 (optional), s7 (required)."""
    return SubquestionArena([
        make_sub("s1", order=1),
        make_sub("s7", required=True, order=2),
    ])


@pytest.fixture
def nested_arena() -> SubquestionArena:
    """outer -> name (required), inner (loop 1..2) -> leaf (required)."""
    return SubquestionArena([
        make_sub("name", parent="outer", required=True, order=1),
        make_sub(
            "inner",
            parent="outer",
            order=2,
            qtype="loop_group",
            loop_config=LoopGroupConfig(min_iterations=1, max_iterations=2),
        ),
        make_sub("leaf", parent="inner", required=True),
    ])


# =============================================================
# Test: Iteration counts
# =============================================================


class TestIterationCount:

    def test_zero_instances_below_minimum(self, flat_arena):
        result = validate_loop_group(make_loop(), [], flat_arena)
        assert result.valid is False
        assert len(result.structural_violations) == 1
        violation = result.structural_violations[0]
        assert violation.count == 0
        assert violation.as_tuple() == ("loop",)

    def test_within_bounds(self, flat_arena):
        instances = [{"s7": "a"}, {"s7": "b"}]
        result = validate_loop_group(make_loop(), instances, flat_arena)
        assert result.valid is True
        assert result.structural_violations == []
        assert result.missing_paths == []

    def test_above_maximum(self, flat_arena):
        instances = [{"s7": "x"}] * 4
        result = validate_loop_group(make_loop(), instances, flat_arena)
        assert result.valid is False
        assert result.structural_violations[0].count == 4
        assert result.structural_violations[0].max_iterations == 3

    def test_exact_bounds_are_allowed(self, flat_arena):
        assert validate_loop_group(make_loop(), [{"s7": "x"}], flat_arena).valid is True
        assert validate_loop_group(make_loop(), [{"s7": "x"}] * 3, flat_arena).valid is True

    @pytest.mark.parametrize("value", [None, "two", {"s7": "x"}, 3])
    def test_non_list_answer_counts_as_zero(self, flat_arena, value):
        result = validate_loop_group(make_loop(), value, flat_arena)
        assert result.structural_violations[0].count == 0


# =============================================================
# Test: Required subquestions
# =============================================================


class TestMissingSubquestions:

    def test_missing_required_in_second_iteration(self, flat_arena):
        instances = [{"s7": "done"}, {"s1": "only optional"}]
        result = validate_loop_group(make_loop(), instances, flat_arena)
        assert result.valid is False
        assert [p.as_tuple() for p in result.missing_paths] == [("loop", 1, "s7")]

    def test_blank_string_is_missing(self, flat_arena):
        result = validate_loop_group(make_loop(), [{"s7": "  "}], flat_arena)
        assert [p.as_tuple() for p in result.missing_paths] == [("loop", 0, "s7")]

    def test_optional_subquestion_never_blocks(self, flat_arena):
        result = validate_loop_group(make_loop(), [{"s7": "x"}], flat_arena)
        assert result.valid is True

    def test_non_dict_instance_is_treated_as_empty(self, flat_arena):
        result = validate_loop_group(make_loop(), ["junk"], flat_arena)
        assert [p.as_tuple() for p in result.missing_paths] == [("loop", 0, "s7")]

    def test_every_iteration_reported_in_order(self, flat_arena):
        result = validate_loop_group(make_loop(), [{}, {}], flat_arena)
        assert [p.as_tuple() for p in result.missing_paths] == [
            ("loop", 0, "s7"),
            ("loop", 1, "s7"),
        ]

    def test_loop_without_children(self):
        result = validate_loop_group(make_loop(), [{}], SubquestionArena())
        assert result.valid is True


# =============================================================
# Test: Nested loop groups
# =============================================================


class TestNestedLoops:

    def test_nested_missing_leaf_path(self, nested_arena):
        instances = [
            {"name": "a", "inner": [{"leaf": "x"}]},
            {"name": "b", "inner": [{"leaf": "y"}, {"leaf": ""}]},
        ]
        result = validate_loop_group(make_loop("outer"), instances, nested_arena)
        assert result.valid is False
        assert [p.as_tuple() for p in result.missing_paths] == [("outer", 1, "inner", 1, "leaf")]

    def test_nested_structural_violation_has_prefix(self, nested_arena):
        instances = [{"name": "a", "inner": []}]
        result = validate_loop_group(make_loop("outer"), instances, nested_arena)
        assert [v.as_tuple() for v in result.structural_violations] == [("outer", 0, "inner")]

    def test_missing_nested_answer_counts_as_zero(self, nested_arena):
        instances = [{"name": "a"}]
        result = validate_loop_group(make_loop("outer"), instances, nested_arena)
        assert result.structural_violations[0].count == 0
        assert result.missing_paths == []

    def test_valid_nested_response(self, nested_arena):
        instances = [{"name": "a", "inner": [{"leaf": "x"}, {"leaf": "y"}]}]
        assert validate_loop_group(make_loop("outer"), instances, nested_arena).valid is True

    def test_findings_follow_iteration_order(self, nested_arena):
        instances = [
            {"inner": [{"leaf": ""}]},
            {"name": "b", "inner": [{"leaf": "ok"}]},
        ]
        result = validate_loop_group(make_loop("outer"), instances, nested_arena)
        assert [p.as_tuple() for p in result.missing_paths] == [
            ("outer", 0, "name"),
            ("outer", 0, "inner", 0, "leaf"),
        ]


# =============================================================
# Test: SubquestionArena
# =============================================================


class TestSubquestionArena:

    def test_children_sorted_by_order_then_id(self):
        arena = SubquestionArena([
            make_sub("b", order=2),
            make_sub("c", order=1),
            make_sub("a", order=2),
        ])
        assert [s.id for s in arena.children_of("loop")] == ["c", "a", "b"]

    def test_unknown_parent_has_no_children(self):
        assert SubquestionArena().children_of("nothing") == []

    def test_nested_children_addressed_by_parent(self, nested_arena):
        assert [s.id for s in nested_arena.children_of("outer")] == ["name", "inner"]
        assert [s.id for s in nested_arena.children_of("inner")] == ["leaf"]

    def test_children_of_returns_a_copy(self, flat_arena):
        flat_arena.children_of("loop").clear()
        assert len(flat_arena.children_of("loop")) == 2
