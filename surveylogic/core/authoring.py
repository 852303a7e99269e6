"""
Authoring-time rule validation.

Used by the survey builder before a survey is published. The
evaluation path never calls these checks: a malformed rule that gets
past them is skipped at answer time instead of raising.
"""

from collections.abc import Iterable

from pydantic import BaseModel

from surveylogic.core.conditions import is_evaluable_pairing
from surveylogic.core.schema import Page, Question, Rule, Subquestion


class RuleIssue(BaseModel):
    """One problem found in a rule definition."""

    rule_id: str | None
    message: str


class ConfigurationError(Exception):
    """Raised when a survey's rules fail authoring-time validation."""

    def __init__(self, issues: list[RuleIssue]):
        self.issues = issues
        super().__init__(
            "Invalid conditional rules: " + "; ".join(issue.message for issue in issues)
        )


def find_rule_issues(
    rules: Iterable[Rule],
    pages: Iterable[Page],
    questions: Iterable[Question],
    subquestions: Iterable[Subquestion] = (),
) -> list[RuleIssue]:
    """Check every rule against the survey it belongs to.

    Args:
        rules: The survey's rules.
        pages: The survey's pages.
        questions: Every top-level question of the survey.
        subquestions: Every loop group subquestion of the survey.

    Returns:
        All issues found, per rule in rule order, then circular
        dependencies.
    """
    rules = list(rules)
    page_ids = {p.id for p in pages}
    question_ids = {q.id for q in questions}
    subquestion_ids = {s.id for s in subquestions}
    issues: list[RuleIssue] = []

    for rule in rules:
        issues.extend(
            RuleIssue(rule_id=rule.id, message=f"Rule '{rule.id}' {message}")
            for message in _describe_problems(rule, page_ids, question_ids, subquestion_ids)
        )

    cycle = find_circular_rules(rules)
    if cycle:
        issues.append(RuleIssue(
            rule_id=None,
            message=f"Circular conditional logic detected: {', '.join(cycle)}",
        ))

    return issues


def find_circular_rules(rules: Iterable[Rule]) -> list[str]:
    """Detect cycles among question-targeted rules.

    Each rule adds an edge from its source question to its target
    question. Self-references are reported separately and are not
    treated as cycles here.

    Returns:
        IDs of the questions involved in cycles, sorted. Empty if acyclic.
    """
    graph: dict[str, set[str]] = {}
    for rule in rules:
        target = rule.target_question_id
        if target and target != rule.source_question_id:
            graph.setdefault(rule.source_question_id, set()).add(target)

    visited: set[str] = set()
    on_stack: list[str] = []
    in_cycle: set[str] = set()

    def visit(node: str) -> None:
        visited.add(node)
        on_stack.append(node)
        for neighbor in sorted(graph.get(node, ())):
            if neighbor in on_stack:
                in_cycle.update(on_stack[on_stack.index(neighbor):])
            elif neighbor not in visited:
                visit(neighbor)
        on_stack.pop()

    for node in sorted(graph):
        if node not in visited:
            visit(node)

    return sorted(in_cycle)


def ensure_valid_rules(
    rules: Iterable[Rule],
    pages: Iterable[Page],
    questions: Iterable[Question],
    subquestions: Iterable[Subquestion] = (),
) -> None:
    """Raise ConfigurationError if any rule issue is found."""
    issues = find_rule_issues(rules, pages, questions, subquestions)
    if issues:
        raise ConfigurationError(issues)


def _describe_problems(
    rule: Rule,
    page_ids: set[str],
    question_ids: set[str],
    subquestion_ids: set[str],
) -> list[str]:
    problems = []

    if not rule.target_question_id and not rule.target_page_id:
        problems.append("has no target")
    elif rule.target_question_id and rule.target_page_id:
        problems.append("must target either a question or a page, not both")

    if rule.target_question_id and rule.target_question_id == rule.source_question_id:
        problems.append("uses its own target as the condition source")

    if rule.source_question_id not in question_ids:
        problems.append(f"references non-existent source question '{rule.source_question_id}'")

    if rule.target_question_id:
        if rule.target_question_id in subquestion_ids:
            problems.append("targets a loop group subquestion; rules may only target questions or pages")
        elif rule.target_question_id not in question_ids:
            problems.append(f"references non-existent target question '{rule.target_question_id}'")

    if rule.target_page_id and rule.target_page_id not in page_ids:
        problems.append(f"references non-existent target page '{rule.target_page_id}'")

    if not is_evaluable_pairing(rule.operator, rule.condition_value):
        problems.append(
            f"cannot apply '{rule.operator.value}' to condition value {rule.condition_value!r}"
        )

    return problems
