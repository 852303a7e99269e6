"""
Deterministic page visibility resolver.

All visibility and requiredness logic is evaluated in code from an
immutable answer snapshot. For every question on a page, the rules
targeting the question and the rules targeting the page are folded
into one {visible, required} state.

Nothing here caches across calls. An EvaluationPass may memoize rule
conditions, but it is bound to a single answer snapshot and must be
discarded (or invalidated) as soon as any answer changes.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from surveylogic.core.conditions import ConditionOutcome
from surveylogic.core.config import EngineConfig
from surveylogic.core.results import Diagnostic, QuestionState
from surveylogic.core.rules import (
    TargetResolution,
    evaluate_rule_condition,
    resolve_target_state,
    rules_for_question,
)
from surveylogic.core.schema import Page, Question, Rule

logger = logging.getLogger(__name__)


class PageEvaluation(BaseModel):
    """Derived states for every question on one page."""

    page_id: str
    states: dict[str, QuestionState] = Field(default_factory=dict)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class EvaluationPass:
    """One evaluation over one answer snapshot.

    Memoizes rule condition outcomes by rule ID when the configured
    cache lifetime is "single-pass".

    Args:
        rules: All rules of the survey.
        answers: The answer snapshot. Must not change during the pass.
        config: Engine configuration. Defaults to EngineConfig().
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        answers: Mapping[str, Any],
        config: EngineConfig | None = None,
    ):
        self.rules: list[Rule] = list(rules)
        self.answers = answers
        self.config = config or EngineConfig()
        self._outcomes: dict[str, ConditionOutcome] = {}

    def evaluate_rule(self, rule: Rule) -> ConditionOutcome:
        """Evaluate a rule's condition, reusing the outcome within this pass."""
        if self.config.cache_lifetime == "none":
            return evaluate_rule_condition(rule, self.answers)

        cached = self._outcomes.get(rule.id)
        if cached is None:
            cached = evaluate_rule_condition(rule, self.answers)
            self._outcomes[rule.id] = cached
        return cached

    def invalidate(self) -> None:
        """Drop memoized outcomes (call after any answer write)."""
        self._outcomes.clear()

    def resolve_question(self, question: Question, page_id: str | None = None) -> TargetResolution:
        """Resolve one question's state from its own rules and its page's rules."""
        return resolve_target_state(
            rules_for_question(self.rules, question.id, page_id),
            question.required,
            self.answers,
            evaluate_rule=self.evaluate_rule,
        )

    def evaluate_page(self, page: Page, questions: Iterable[Question]) -> PageEvaluation:
        """Resolve every question on a page."""
        states: dict[str, QuestionState] = {}
        diagnostics: list[Diagnostic] = []
        seen: set[tuple] = set()

        for question in questions:
            resolution = self.resolve_question(question, page.id)
            states[question.id] = resolution.state

            # Page rules are evaluated once per question; report each problem once
            for diagnostic in resolution.diagnostics:
                key = (diagnostic.code, diagnostic.rule_id, diagnostic.message)
                if key in seen:
                    continue
                seen.add(key)
                diagnostics.append(diagnostic)

        for diagnostic in diagnostics:
            logger.log(
                self.config.diagnostic_log_level,
                "Page %s rule diagnostic [%s]: %s",
                page.id,
                diagnostic.code.value,
                diagnostic.message,
            )

        return PageEvaluation(page_id=page.id, states=states, diagnostics=diagnostics)


def resolve_question_state(
    question: Question,
    rules: Iterable[Rule],
    answers: Mapping[str, Any],
    page_id: str | None = None,
) -> QuestionState:
    """Determine one question's visibility and requiredness.

    With no rules aimed at the question (or its page), the question is
    visible and keeps its base required flag.
    """
    return EvaluationPass(rules, answers).resolve_question(question, page_id).state


def evaluate_page(
    page: Page,
    questions: Iterable[Question],
    rules: Iterable[Rule],
    answers: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> PageEvaluation:
    """Resolve a page and keep the diagnostics produced along the way."""
    return EvaluationPass(rules, answers, config).evaluate_page(page, questions)


def resolve_page_visibility(
    page: Page,
    questions: Iterable[Question],
    rules: Iterable[Rule],
    answers: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> dict[str, QuestionState]:
    """Compute {visible, required} for every question on a page.

    Pure function of its inputs: it must be called again after every
    answer change.

    Args:
        page: The page being rendered or validated.
        questions: The questions on that page.
        rules: All rules of the survey (non-matching rules are ignored).
        answers: The answer snapshot keyed by question ID.
        config: Optional engine configuration.

    Returns:
        A dict of question ID to QuestionState, in question order.
    """
    return evaluate_page(page, questions, rules, answers, config).states
