"""
Rule evaluation and completion validation for multi-page surveys.

The three entry points collaborators call:
- resolve_page_visibility: per-question {visible, required} for a page
- validate_loop_group: iteration and required-leaf checks for a loop group
- can_submit: whether a response is submittable, with blockers
"""

from surveylogic.core.completion import can_submit
from surveylogic.core.loop_groups import SubquestionArena, validate_loop_group
from surveylogic.core.visibility import resolve_page_visibility

__all__ = [
    "resolve_page_visibility",
    "validate_loop_group",
    "can_submit",
    "SubquestionArena",
]
