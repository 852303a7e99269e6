"""
Shared test fixtures for the surveylogic test suite.

Provides the household survey fixture (three pages, a nested loop
group, page- and question-targeted rules) as a loaded store and as an
evaluator bound to it.
"""

from pathlib import Path

import pytest

from surveylogic.core.sources import InMemorySurveyStore, load_survey_document
from surveylogic.core.survey_state import SurveyEvaluator

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"
HOUSEHOLD_SURVEY = SCHEMAS_DIR / "household_survey.yaml"


@pytest.fixture
def household_document() -> dict:
    """The raw household survey document."""
    return load_survey_document(HOUSEHOLD_SURVEY)


@pytest.fixture
def household_store() -> InMemorySurveyStore:
    """A store loaded from the household survey file."""
    return InMemorySurveyStore.from_file(HOUSEHOLD_SURVEY)


@pytest.fixture
def household_evaluator(household_store) -> SurveyEvaluator:
    """An evaluator bound to the household survey."""
    return SurveyEvaluator(household_store, "household")
