import pytest

from tutor_core.domain.models import StudentProfile
from tutor_core.prompts import (
    ONBOARDING_QUESTIONS,
    explanation_prompt,
    load_system_prompt,
    micro_quiz_prompt,
    mock_exam_blueprint_prompt,
    question_prompt,
    study_plan_prompt,
)


def test_question_prompt_interpolates_parameters():
    prompt = question_prompt(11, "Linear Equations", "hard", "Math", "SAT", 3)
    assert "Create 3 original multiple-choice SAT-style questions in Math." in prompt
    assert '"topic": "Linear Equations"' in prompt
    assert '"difficulty": "hard"' in prompt
    assert "{{" not in prompt


def test_non_sat_question_prompt_drops_sat_style():
    assert "SAT-style" not in question_prompt(7, "Fractions", goal="School")


def test_study_plan_prompt_includes_baseline_only_when_given():
    with_scores = study_plan_prompt("Ada", 11, ["SAT"], {"math": 600}, 6, None, "visual")
    assert "SAT preparation" in with_scores
    assert 'Baseline Scores: {"math": 600}' in with_scores
    without = study_plan_prompt("Ada", 8, ["Academic Improvement"], None, 4, "2026-06-01", "")
    assert "Baseline Scores" not in without
    assert "Learning Style: mixed" in without


def test_explanation_prompt_uses_profile():
    prompt = explanation_prompt("gravity", StudentProfile(grade_level=9, learning_style="hands-on"))
    assert "grade 9" in prompt
    assert "hands-on" in prompt
    assert '"funFact"' in prompt


def test_json_prompts_request_json():
    assert '"correctAnswer"' in micro_quiz_prompt("atoms", "easy")
    assert "ACT mock exam blueprint" in mock_exam_blueprint_prompt("ACT")


def test_system_prompts_load():
    assert load_system_prompt("tutor")
    assert "planner" in load_system_prompt("planner").lower()
    with pytest.raises(KeyError):
        load_system_prompt("reviewer")


def test_onboarding_questions():
    assert len(ONBOARDING_QUESTIONS) == 5
