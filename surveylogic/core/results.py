"""
Engine result models.

Everything the engine returns is one of these models. Results are
always derived from an answer snapshot and never stored; the presence
of blockers or diagnostics is the error signal, not an exception.
"""

from enum import Enum

from pydantic import BaseModel, Field


# --- Derived question state ---


class QuestionState(BaseModel):
    """Visibility and requiredness of one question after rules apply."""

    visible: bool = True
    required: bool = False


# --- Diagnostics ---


class DiagnosticCode(str, Enum):
    """Reasons a rule or condition could not be evaluated."""

    UNSUPPORTED_OPERATOR = "unsupported_operator"
    MALFORMED_CONDITION_VALUE = "malformed_condition_value"
    INCOMPARABLE_ANSWER = "incomparable_answer"
    UNSUPPORTED_ANSWER_SHAPE = "unsupported_answer_shape"
    MALFORMED_RULE = "malformed_rule"


class Diagnostic(BaseModel):
    """A non-fatal evaluation problem. The affected check resolved to False."""

    code: DiagnosticCode
    message: str
    rule_id: str | None = None
    question_id: str | None = None


# --- Loop group validation ---


class LoopStep(BaseModel):
    """One level of loop nesting: a loop group and an iteration index."""

    question_id: str
    iteration: int


class MissingPath(BaseModel):
    """Location of an unanswered required subquestion.

    ``steps`` lists every enclosing loop from the outermost inwards.
    """

    steps: list[LoopStep]
    subquestion_id: str

    def as_tuple(self) -> tuple:
        """Flatten to ``(loop_id, i, inner_loop_id, j, ..., subquestion_id)``."""
        flat: list = []
        for step in self.steps:
            flat.extend((step.question_id, step.iteration))
        flat.append(self.subquestion_id)
        return tuple(flat)


class StructuralViolation(BaseModel):
    """A loop group whose iteration count is outside [min, max]."""

    question_id: str
    prefix: list[LoopStep] = Field(
        default_factory=list,
        description="Enclosing loop iterations, empty for a top-level loop group",
    )
    count: int
    min_iterations: int
    max_iterations: int

    def as_tuple(self) -> tuple:
        flat: list = []
        for step in self.prefix:
            flat.extend((step.question_id, step.iteration))
        flat.append(self.question_id)
        return tuple(flat)


class LoopGroupValidation(BaseModel):
    """Result of validating one loop group against its instances."""

    valid: bool
    missing_paths: list[MissingPath] = Field(default_factory=list)
    structural_violations: list[StructuralViolation] = Field(default_factory=list)


# --- Completion ---


class BlockerKind(str, Enum):
    """Why a response cannot be submitted yet."""

    MISSING_ANSWER = "missing_answer"
    MISSING_LOOP_ANSWER = "missing_loop_answer"
    ITERATION_COUNT = "iteration_count"


class Blocker(BaseModel):
    """A structured reason a response cannot be submitted."""

    kind: BlockerKind
    page_id: str
    question_id: str
    path: tuple = Field(
        default=(),
        description="Flattened loop path for loop blockers, empty otherwise",
    )
    message: str


class SubmissionCheck(BaseModel):
    """Result of a completion check over every page of a survey."""

    can_submit: bool
    blockers: list[Blocker] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class ResponseStatus(str, Enum):
    """Lifecycle of a response. SUBMITTED is terminal."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTABLE = "submittable"
    BLOCKED = "blocked"
    SUBMITTED = "submitted"
