"""
Read-only collaborator interfaces and an in-memory survey store.

The engine itself never loads anything. Callers fetch rules, questions,
subquestions and answers through these narrow interfaces and pass
immutable snapshots into the evaluators.

InMemorySurveyStore implements every interface from a survey document
(a dict, or a YAML/JSON file) of the form:

    survey_id: household
    pages:
      - id: p1
        title: About you
        order: 1
        questions:
          - id: q1
            type: boolean
            required: true
          - id: members
            type: loop_group
            loop_config: {min_iterations: 1, max_iterations: 5}
            subquestions:
              - id: member_name
                type: short_text
                required: true
    rules:
      - id: r1
        source_question_id: q1
        operator: equals
        condition_value: "yes"
        target_question_id: q2
        action: show
    responses:
      resp-1:
        q1: "yes"

Subquestions may be nested to any depth in the document; the store
flattens them into parent-referenced records.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import ValidationError

from surveylogic.core.loop_groups import SubquestionArena
from surveylogic.core.schema import Page, Question, Rule, Subquestion
from surveylogic.core.utils import snapshot_answers

logger = logging.getLogger(__name__)


# --- Collaborator protocols ---


class RuleSource(Protocol):
    def get_rules_for_survey(self, survey_id: str) -> list[Rule]:
        ...


class QuestionSource(Protocol):
    def get_questions_for_page(self, page_id: str) -> list[Question]:
        ...


class SubquestionSource(Protocol):
    def get_subquestion_tree(self, loop_question_id: str) -> list[Subquestion]:
        """Direct children only; callers recurse."""
        ...


class AnswerSource(Protocol):
    def get_answer_snapshot(self, response_id: str) -> Mapping[str, Any]:
        ...


# --- In-memory store ---


class InMemorySurveyStore:
    """Dict-backed survey store implementing every collaborator protocol."""

    def __init__(self):
        self._pages: dict[str, list[Page]] = {}
        self._questions: dict[str, list[Question]] = {}
        self._rules: dict[str, list[Rule]] = {}
        self._subquestions: list[Subquestion] = []
        self._arena = SubquestionArena()
        self._answers: dict[str, dict[str, Any]] = {}

    # -----------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "InMemorySurveyStore":
        store = cls()
        store.add_survey(document)
        return store

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemorySurveyStore":
        return cls.from_document(load_survey_document(path))

    def add_survey(self, document: dict[str, Any]) -> str:
        """Add one survey document to the store.

        Pages, questions and subquestions are validated strictly and
        raise ValidationError. Rules that fail validation are logged and
        dropped, the same as the engine skipping them.

        Returns:
            The survey ID.
        """
        survey_id = str(document.get("survey_id", "")).strip()
        if not survey_id:
            raise ValueError("Survey document must have a 'survey_id'")

        pages = []
        for page_data in document.get("pages", []) or []:
            page_fields = {k: v for k, v in page_data.items() if k != "questions"}
            page = Page(**{**page_fields, "survey_id": survey_id})
            pages.append(page)

            questions = []
            for question_data in page_data.get("questions", []) or []:
                question_fields = {k: v for k, v in question_data.items() if k != "subquestions"}
                question = Question(**{**question_fields, "page_id": page.id})
                questions.append(question)
                self._subquestions.extend(
                    _flatten_subquestions(question.id, question_data.get("subquestions", []) or [])
                )
            self._questions[page.id] = questions

        self._pages[survey_id] = pages
        self._arena = SubquestionArena(self._subquestions)

        rules = []
        for rule_data in document.get("rules", []) or []:
            try:
                rules.append(Rule(**{"survey_id": survey_id, **rule_data}))
            except (ValidationError, TypeError) as e:
                logger.warning("Dropping malformed rule %r: %s", rule_data, e)
        self._rules[survey_id] = rules

        for response_id, answers in (document.get("responses", {}) or {}).items():
            self.set_answers(str(response_id), answers or {})

        return survey_id

    def set_answers(self, response_id: str, answers: Mapping[str, Any]) -> None:
        """Replace a response's stored answers."""
        self._answers[response_id] = dict(answers)

    # -----------------------------------------------------------------
    # Collaborator interfaces
    # -----------------------------------------------------------------

    def get_rules_for_survey(self, survey_id: str) -> list[Rule]:
        return list(self._rules.get(survey_id, []))

    def get_pages_for_survey(self, survey_id: str) -> list[Page]:
        return sorted(self._pages.get(survey_id, []), key=lambda p: (p.order, p.id))

    def get_questions_for_page(self, page_id: str) -> list[Question]:
        return sorted(self._questions.get(page_id, []), key=lambda q: (q.order, q.id))

    def get_subquestion_tree(self, loop_question_id: str) -> list[Subquestion]:
        return self._arena.children_of(loop_question_id)

    def children_of(self, question_id: str) -> list[Subquestion]:
        return self._arena.children_of(question_id)

    def get_all_subquestions(self) -> list[Subquestion]:
        return list(self._subquestions)

    def get_answer_snapshot(self, response_id: str) -> Mapping[str, Any]:
        """Return a frozen copy of a response's answers (empty if unknown)."""
        return snapshot_answers(self._answers.get(response_id, {}))


def _flatten_subquestions(parent_id: str, entries: list[dict[str, Any]]) -> list[Subquestion]:
    """Turn nested subquestion definitions into parent-referenced records."""
    flat = []
    for entry in entries:
        fields = {k: v for k, v in entry.items() if k != "subquestions"}
        sub = Subquestion(**{**fields, "parent_loop_question_id": parent_id})
        flat.append(sub)
        flat.extend(_flatten_subquestions(sub.id, entry.get("subquestions", []) or []))
    return flat


def load_survey_document(path: str | Path) -> dict[str, Any]:
    """Read a survey document from a .yaml/.yml or .json file.

    Raises:
        ValueError: If the file does not contain a mapping.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")

    if path.suffix.lower() == ".json":
        document = json.loads(text)
    else:
        document = yaml.safe_load(text)

    if not isinstance(document, dict):
        raise ValueError(f"Survey document {path} must contain a mapping")
    return document
