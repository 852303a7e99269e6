"""
Loop group validation.

A loop group is a repeatable block of subquestions. Its answer is an
ordered list of instances; each instance maps subquestion IDs to
values, or, for a nested loop group subquestion, to another instance
list. Subquestions are stored flat with a parent reference and looked
up through ``children_of``, so nesting depth is unbounded.

Rules never target subquestions, so inside a loop the base required
flag is the only requiredness that applies.
"""

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from surveylogic.core.results import (
    LoopGroupValidation,
    LoopStep,
    MissingPath,
    StructuralViolation,
)
from surveylogic.core.schema import Question, QuestionType, Subquestion
from surveylogic.core.utils import is_empty_value

logger = logging.getLogger(__name__)


class SubquestionTree(Protocol):
    """Anything that can list the direct children of a loop group."""

    def children_of(self, question_id: str) -> list[Subquestion]:
        ...


class SubquestionArena:
    """Flat store of subquestions grouped by parent ID.

    Args:
        subquestions: Every subquestion of a survey, at any depth.
    """

    def __init__(self, subquestions: Iterable[Subquestion] = ()):
        self._children: dict[str, list[Subquestion]] = {}

        for sub in subquestions:
            self._children.setdefault(sub.parent_loop_question_id, []).append(sub)

        for children in self._children.values():
            children.sort(key=lambda s: (s.order, s.id))

    def children_of(self, question_id: str) -> list[Subquestion]:
        """Return the direct subquestions of a loop group, in order."""
        return list(self._children.get(question_id, []))


def validate_loop_group(
    loop_question: Question | Subquestion,
    instances: Any,
    subquestions: SubquestionTree,
) -> LoopGroupValidation:
    """Validate a loop group's instances, recursing into nested loop groups.

    Checks the iteration count against the loop's [min, max] and every
    required leaf subquestion of every instance. A nested loop group is
    validated against ``instance[subquestion.id]`` with its findings
    prefixed by the enclosing loop ID and iteration index.

    Args:
        loop_question: The loop group question (or loop group subquestion).
        instances: The loop's answer value. Anything other than a list is
            treated as zero instances.
        subquestions: Lookup for the direct children of any loop group.

    Returns:
        The validation result. ``valid`` is True iff nothing is missing
        and every iteration count is within bounds.
    """
    missing: list[MissingPath] = []
    violations: list[StructuralViolation] = []
    _validate(loop_question, instances, subquestions, [], missing, violations)

    return LoopGroupValidation(
        valid=not missing and not violations,
        missing_paths=missing,
        structural_violations=violations,
    )


def _validate(
    loop: Question | Subquestion,
    instances: Any,
    tree: SubquestionTree,
    prefix: list[LoopStep],
    missing: list[MissingPath],
    violations: list[StructuralViolation],
) -> None:
    items = list(instances) if isinstance(instances, (list, tuple)) else []
    config = loop.loop_config

    if config is not None and not (config.min_iterations <= len(items) <= config.max_iterations):
        logger.debug(
            "Loop group %s has %d iterations, expected %d..%d",
            loop.id, len(items), config.min_iterations, config.max_iterations,
        )
        violations.append(StructuralViolation(
            question_id=loop.id,
            prefix=list(prefix),
            count=len(items),
            min_iterations=config.min_iterations,
            max_iterations=config.max_iterations,
        ))

    children = tree.children_of(loop.id)

    for index, instance in enumerate(items):
        values = instance if isinstance(instance, dict) else {}
        steps = prefix + [LoopStep(question_id=loop.id, iteration=index)]

        for sub in children:
            if sub.type == QuestionType.LOOP_GROUP:
                _validate(sub, values.get(sub.id), tree, steps, missing, violations)
            elif sub.required and is_empty_value(values.get(sub.id)):
                missing.append(MissingPath(steps=steps, subquestion_id=sub.id))
