"""
Completion validator.

Decides whether a response can be submitted. Every page is resolved
against the same answer snapshot; every visible question must be
satisfied, and every visible loop group is structurally checked
regardless of its own required flag.

The check never raises. ``can_submit`` is True iff the blocker list
is empty; rejecting a submission while blockers remain is the
caller's job (``ensure_submittable`` helps with that).
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from surveylogic.core.config import EngineConfig
from surveylogic.core.loop_groups import SubquestionTree, validate_loop_group
from surveylogic.core.results import (
    Blocker,
    BlockerKind,
    Diagnostic,
    ResponseStatus,
    SubmissionCheck,
)
from surveylogic.core.schema import Page, Question, QuestionType, Rule
from surveylogic.core.utils import is_empty_value
from surveylogic.core.visibility import EvaluationPass

logger = logging.getLogger(__name__)


class SubmissionBlockedError(Exception):
    """Raised when a caller tries to submit a response that has blockers."""

    def __init__(self, blockers: list[Blocker]):
        self.blockers = blockers
        summary = "; ".join(b.message for b in blockers[:3])
        if len(blockers) > 3:
            summary += f" (and {len(blockers) - 3} more)"
        super().__init__(f"Response cannot be submitted: {summary}")


def can_submit(
    pages: Iterable[Page],
    questions_by_page: Mapping[str, Iterable[Question]],
    rules: Iterable[Rule],
    answers: Mapping[str, Any],
    subquestions: SubquestionTree,
    config: EngineConfig | None = None,
) -> SubmissionCheck:
    """Check whether a response is complete enough to submit.

    Args:
        pages: Every page of the survey.
        questions_by_page: Questions keyed by page ID.
        rules: All rules of the survey.
        answers: The answer snapshot keyed by question ID.
        subquestions: Lookup for the direct children of any loop group.
            Pass an empty SubquestionArena for a survey without loop groups.
        config: Optional engine configuration.

    Returns:
        The submission check with blockers in page, then question, order.
    """
    evaluation = EvaluationPass(rules, answers, config)

    blockers: list[Blocker] = []
    diagnostics: list[Diagnostic] = []

    for page in sorted(pages, key=lambda p: (p.order, p.id)):
        questions = sorted(questions_by_page.get(page.id, []), key=lambda q: (q.order, q.id))
        page_result = evaluation.evaluate_page(page, questions)
        diagnostics.extend(page_result.diagnostics)

        for question in questions:
            state = page_result.states[question.id]
            if not state.visible:
                continue

            if question.type == QuestionType.LOOP_GROUP:
                blockers.extend(_loop_blockers(page, question, answers.get(question.id), subquestions))
            elif state.required and is_empty_value(answers.get(question.id)):
                blockers.append(Blocker(
                    kind=BlockerKind.MISSING_ANSWER,
                    page_id=page.id,
                    question_id=question.id,
                    message=f"Question '{question.title or question.id}' requires an answer",
                ))

    logger.debug("Completion check found %d blocker(s)", len(blockers))
    return SubmissionCheck(
        can_submit=not blockers,
        blockers=blockers,
        diagnostics=diagnostics,
    )


def _loop_blockers(
    page: Page,
    question: Question,
    instances: Any,
    tree: SubquestionTree,
) -> list[Blocker]:
    """Translate a loop group validation into blockers tagged to the loop question."""
    result = validate_loop_group(question, instances, tree)
    blockers = []

    for violation in result.structural_violations:
        blockers.append(Blocker(
            kind=BlockerKind.ITERATION_COUNT,
            page_id=page.id,
            question_id=question.id,
            path=violation.as_tuple() if violation.prefix else (),
            message=(
                f"Loop group '{violation.question_id}' has {violation.count} "
                f"iteration(s); expected {violation.min_iterations} to {violation.max_iterations}"
            ),
        ))

    for path in result.missing_paths:
        innermost = path.steps[-1]
        blockers.append(Blocker(
            kind=BlockerKind.MISSING_LOOP_ANSWER,
            page_id=page.id,
            question_id=question.id,
            path=path.as_tuple(),
            message=(
                f"Subquestion '{path.subquestion_id}' requires an answer in "
                f"iteration {innermost.iteration} of '{innermost.question_id}'"
            ),
        ))

    return blockers


def derive_response_status(
    answers: Mapping[str, Any],
    check: SubmissionCheck | None = None,
    submitted: bool = False,
) -> ResponseStatus:
    """Place a response in its lifecycle.

    Args:
        answers: The answer snapshot.
        check: The latest completion check, if one was run.
        submitted: Whether the response was already submitted.

    Returns:
        SUBMITTED, NOT_STARTED, IN_PROGRESS (no check yet),
        SUBMITTABLE or BLOCKED.
    """
    if submitted:
        return ResponseStatus.SUBMITTED
    if all(is_empty_value(value) for value in answers.values()):
        return ResponseStatus.NOT_STARTED
    if check is None:
        return ResponseStatus.IN_PROGRESS
    return ResponseStatus.SUBMITTABLE if check.can_submit else ResponseStatus.BLOCKED


def ensure_submittable(check: SubmissionCheck) -> None:
    """Raise SubmissionBlockedError unless the check allows submission."""
    if not check.can_submit:
        raise SubmissionBlockedError(check.blockers)
