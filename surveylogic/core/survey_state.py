"""
Survey evaluator for tracking a response's progress.

Binds one survey definition (pages, questions, rules, subquestions)
loaded from the collaborator interfaces, then answers questions about
any answer snapshot:
- Which questions on a page are visible and required
- Which visible questions still block submission
- Which page the respondent should be sent back to
- How far along the response is
- Whether the response can be submitted

Every method takes the answer snapshot as an argument; the evaluator
keeps no answer state between calls.
"""

import logging
from collections.abc import Mapping
from typing import Any

from surveylogic.core.completion import can_submit, derive_response_status
from surveylogic.core.config import EngineConfig
from surveylogic.core.loop_groups import SubquestionTree, validate_loop_group
from surveylogic.core.results import (
    Blocker,
    LoopGroupValidation,
    QuestionState,
    ResponseStatus,
    SubmissionCheck,
)
from surveylogic.core.schema import Page, Question
from surveylogic.core.sources import (
    AnswerSource,
    InMemorySurveyStore,
    QuestionSource,
    RuleSource,
)
from surveylogic.core.utils import is_empty_value
from surveylogic.core.visibility import PageEvaluation, evaluate_page

logger = logging.getLogger(__name__)


class SurveyEvaluator:
    """Evaluates responses to a single survey.

    Args:
        store: Provides rules, pages, questions, subquestions and answers.
            Must offer ``get_pages_for_survey`` and ``children_of`` in
            addition to the collaborator protocols.
        survey_id: The survey to evaluate.
        config: Optional engine configuration.
    """

    def __init__(
        self,
        store: InMemorySurveyStore,
        survey_id: str,
        config: EngineConfig | None = None,
    ):
        self.survey_id = survey_id
        self.config = config or EngineConfig()
        self._answers_source: AnswerSource = store
        self._subquestions: SubquestionTree = store

        rule_source: RuleSource = store
        question_source: QuestionSource = store
        self.rules = rule_source.get_rules_for_survey(survey_id)
        self.pages: list[Page] = store.get_pages_for_survey(survey_id)
        self.questions_by_page: dict[str, list[Question]] = {
            page.id: question_source.get_questions_for_page(page.id) for page in self.pages
        }
        logger.debug(
            "Loaded survey %s: %d pages, %d rules",
            survey_id, len(self.pages), len(self.rules),
        )

    # -----------------------------------------------------------------
    # Page resolution
    # -----------------------------------------------------------------

    def evaluate_page(self, page_id: str, answers: Mapping[str, Any]) -> PageEvaluation:
        """Resolve every question on a page, keeping diagnostics."""
        page = self._get_page(page_id)
        if page is None:
            return PageEvaluation(page_id=page_id)
        return evaluate_page(page, self.questions_by_page[page.id], self.rules, answers, self.config)

    def page_states(self, page_id: str, answers: Mapping[str, Any]) -> dict[str, QuestionState]:
        """Return {visible, required} for every question on a page."""
        return self.evaluate_page(page_id, answers).states

    def get_visible_questions(self, page_id: str, answers: Mapping[str, Any]) -> list[Question]:
        """Return the questions on a page that are currently visible."""
        states = self.page_states(page_id, answers)
        return [q for q in self.questions_by_page.get(page_id, []) if states[q.id].visible]

    def validate_loop(self, question_id: str, answers: Mapping[str, Any]) -> LoopGroupValidation | None:
        """Validate one loop group question. Returns None for unknown or non-loop questions."""
        question = self._get_question(question_id)
        if question is None or not question.is_loop_group:
            return None
        return validate_loop_group(question, answers.get(question_id), self._subquestions)

    # -----------------------------------------------------------------
    # Completion
    # -----------------------------------------------------------------

    def check(self, answers: Mapping[str, Any]) -> SubmissionCheck:
        """Run the completion check over every page."""
        return can_submit(
            self.pages,
            self.questions_by_page,
            self.rules,
            answers,
            subquestions=self._subquestions,
            config=self.config,
        )

    def check_response(self, response_id: str) -> SubmissionCheck:
        """Run the completion check against a stored response's snapshot."""
        return self.check(self._answers_source.get_answer_snapshot(response_id))

    def get_blockers(self, answers: Mapping[str, Any]) -> list[Blocker]:
        return self.check(answers).blockers

    def get_first_blocked_page(self, answers: Mapping[str, Any]) -> Page | None:
        """Return the first page (in page order) that has a blocker, or None."""
        blocked_ids = {b.page_id for b in self.get_blockers(answers)}
        for page in self.pages:
            if page.id in blocked_ids:
                return page
        return None

    def is_complete(self, answers: Mapping[str, Any]) -> bool:
        return self.check(answers).can_submit

    def status(self, answers: Mapping[str, Any], submitted: bool = False) -> ResponseStatus:
        """Place a response in its lifecycle, running the check when needed."""
        if submitted or all(is_empty_value(v) for v in answers.values()):
            return derive_response_status(answers, submitted=submitted)
        return derive_response_status(answers, self.check(answers))

    def progress(self, answers: Mapping[str, Any]) -> float:
        """Fraction of currently visible questions that have an answer.

        Returns 1.0 for a survey with no visible questions.
        """
        visible = [
            question
            for page in self.pages
            for question in self.get_visible_questions(page.id, answers)
        ]
        if not visible:
            return 1.0
        answered = sum(1 for q in visible if not is_empty_value(answers.get(q.id)))
        return answered / len(visible)

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _get_page(self, page_id: str) -> Page | None:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def _get_question(self, question_id: str) -> Question | None:
        for questions in self.questions_by_page.values():
            for question in questions:
                if question.id == question_id:
                    return question
        return None
