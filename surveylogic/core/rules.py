"""
Rule aggregation and action resolution.

Folds every rule that targets one question (directly, or through the
question's page) into a single derived {visible, required} state.

Two things happen over the same ordered rule sequence:

- The boolean fold: the first rule's condition seeds the accumulator
  and each later rule joins it using that rule's own logical operator.
- Action resolution: every rule whose own condition is true applies
  its action in order, and the last one per axis (visibility,
  requiredness) wins. Axes nobody touches keep their defaults: visible
  (hidden if the target has a show rule) and the base required flag.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from surveylogic.core.conditions import ConditionOutcome, check_condition, is_evaluable_pairing
from surveylogic.core.results import Diagnostic, DiagnosticCode, QuestionState
from surveylogic.core.schema import LogicalOperator, Rule, RuleAction

logger = logging.getLogger(__name__)

RuleEvaluator = Callable[[Rule], ConditionOutcome]


class TargetResolution(BaseModel):
    """Everything the aggregator derived for one target."""

    state: QuestionState
    combined: bool | None = Field(
        default=None,
        description="Result of the ordered boolean fold, None when no rule applied",
    )
    fired_rule_ids: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


# -----------------------------------------------------------------
# Rule selection
# -----------------------------------------------------------------


def rule_defects(rule: Rule) -> list[str]:
    """List the reasons a rule cannot be evaluated. Empty means well-formed."""
    defects = []

    has_question = bool(rule.target_question_id)
    has_page = bool(rule.target_page_id)
    if not has_question and not has_page:
        defects.append("has no target")
    elif has_question and has_page:
        defects.append("targets both a question and a page")

    if has_question and rule.target_question_id == rule.source_question_id:
        defects.append("uses its own target as the condition source")

    if not is_evaluable_pairing(rule.operator, rule.condition_value):
        defects.append(
            f"operator '{rule.operator.value}' cannot be evaluated with value {rule.condition_value!r}"
        )

    return defects


def sort_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Order rules by ``order`` with the rule ID as tie-break."""
    return sorted(rules, key=lambda r: (r.order, r.id))


def rules_for_question(
    rules: Iterable[Rule],
    question_id: str,
    page_id: str | None = None,
) -> list[Rule]:
    """Collect rules targeting a question or its page, in fold order."""
    selected = [
        rule for rule in rules
        if (rule.target_question_id and rule.target_question_id == question_id)
        or (page_id and rule.target_page_id and rule.target_page_id == page_id)
    ]
    return sort_rules(selected)


# -----------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------


def evaluate_rule_condition(rule: Rule, answers: Mapping[str, Any]) -> ConditionOutcome:
    """Evaluate a rule's condition against its source question's answer."""
    outcome = check_condition(
        rule.operator,
        answers.get(rule.source_question_id),
        rule.condition_value,
        rule_id=rule.id,
    )
    if outcome.diagnostic is not None:
        diagnostic = outcome.diagnostic.model_copy(update={"question_id": rule.source_question_id})
        return ConditionOutcome(matched=False, diagnostic=diagnostic)
    return outcome


def fold_conditions(evaluated: Iterable[tuple[Rule, bool]]) -> bool | None:
    """Fold ordered (rule, condition) pairs into one boolean.

    Rule ``i``'s logical operator joins its condition with the result
    of rules ``0..i-1``; the first rule's operator is ignored.

    Returns:
        The folded result, or None if there were no rules.
    """
    combined: bool | None = None
    for rule, matched in evaluated:
        if combined is None:
            combined = matched
        elif rule.logical_operator == LogicalOperator.OR:
            combined = combined or matched
        else:
            combined = combined and matched
    return combined


def apply_actions(
    evaluated: Iterable[tuple[Rule, bool]],
    base_required: bool,
) -> tuple[QuestionState, list[str]]:
    """Apply the actions of every true rule in order; last per axis wins.

    A target with any show rule is "shown only if": it starts hidden and
    becomes visible when a show rule fires. Otherwise it starts visible.
    Requiredness starts from the base flag.

    Returns:
        The resulting state and the IDs of the rules that fired.
    """
    evaluated = list(evaluated)
    visible = not any(rule.action == RuleAction.SHOW for rule, _ in evaluated)
    required = base_required
    fired = []

    for rule, matched in evaluated:
        if not matched:
            continue
        fired.append(rule.id)
        match rule.action:
            case RuleAction.SHOW:
                visible = True
            case RuleAction.HIDE:
                visible = False
            case RuleAction.REQUIRE:
                required = True
            case RuleAction.MAKE_OPTIONAL:
                required = False

    return QuestionState(visible=visible, required=required), fired


def resolve_target_state(
    rules: Iterable[Rule],
    base_required: bool,
    answers: Mapping[str, Any],
    evaluate_rule: RuleEvaluator | None = None,
) -> TargetResolution:
    """Resolve the derived state of one target from the rules aimed at it.

    Malformed rules are skipped entirely: they take no part in the fold
    and contribute no action, and each produces a diagnostic.

    Args:
        rules: Rules targeting this question or its page.
        base_required: The question's own required flag.
        answers: The answer snapshot.
        evaluate_rule: Optional condition evaluator (e.g. a memoized one).

    Returns:
        The resolution for this target.
    """
    if evaluate_rule is None:
        evaluate_rule = lambda rule: evaluate_rule_condition(rule, answers)  # noqa: E731

    diagnostics: list[Diagnostic] = []
    evaluated: list[tuple[Rule, bool]] = []

    for rule in sort_rules(rules):
        defects = rule_defects(rule)
        if defects:
            logger.debug("Skipping rule %s: %s", rule.id, "; ".join(defects))
            diagnostics.append(Diagnostic(
                code=DiagnosticCode.MALFORMED_RULE,
                message=f"Rule '{rule.id}' skipped: {'; '.join(defects)}",
                rule_id=rule.id,
                question_id=rule.source_question_id,
            ))
            continue

        outcome = evaluate_rule(rule)
        if outcome.diagnostic is not None:
            diagnostics.append(outcome.diagnostic)
        evaluated.append((rule, outcome.matched))

    state, fired = apply_actions(evaluated, base_required)
    return TargetResolution(
        state=state,
        combined=fold_conditions(evaluated),
        fired_rule_ids=fired,
        diagnostics=diagnostics,
    )
