import json

import pytest

from tutor_core.domain.exceptions import MalformedOutputError
from tutor_core.domain.models import ChatChoice, ChatMessage, ChatResult
from tutor_core.generation.plans import generate_mock_blueprint, generate_study_plan, summarize_study_plan


class FakeManager:
    def __init__(self, reply):
        self.reply = reply

    def chat_with_fallback(self, messages, max_tokens=500, temperature=None):
        return ChatResult(
            provider="fake",
            model="tutor-chat",
            choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=self.reply))],
        )


PLAN = {
    "weeks": [
        {
            "week": 1,
            "focus": "Math fundamentals",
            "daily_plan": [
                {"day": "Monday", "task": "Math - Linear Equations practice", "duration_minutes": 60},
                {"day": "Wednesday", "task": "Reading - passage analysis", "duration_minutes": 45},
                {"day": "Saturday", "task": "Full mock test", "duration_minutes": 180},
            ],
            "resources": [
                {"title": "Khan Academy SAT Math Practice", "url": "https://www.khanacademy.org/test-prep/sat"},
                {"title": "Official SAT Study Guide book"},
            ],
        }
    ],
    "tips": ["Review every Sunday."],
}


def test_summarize_study_plan():
    summary = summarize_study_plan(PLAN, target_date="2026-03-01")

    assert summary["timeline"] == "custom"
    assert summary["focus_areas"]["math"] == ["Math fundamentals"]
    assert summary["focus_areas"]["reading"] == ["Reading Comprehension"]
    assert summary["weekly_schedule"]["1"]["math"] == ["Math - Linear Equations practice"]
    assert summary["weekly_schedule"]["1"]["practice_test"] is True
    recs = summary["resource_recommendations"]
    assert recs["books"] == ["Official SAT Study Guide book"]
    assert recs["websites"] == ["https://www.khanacademy.org/test-prep/sat"]
    assert recs["practice_tests"] == ["Full mock test"]


def test_generate_study_plan_from_model():
    result = generate_study_plan(grade=11, goals=["SAT"], manager=FakeManager(json.dumps(PLAN)))
    assert result["used_fallback"] is False
    assert result["plan"]["weeks"][0]["focus"] == "Math fundamentals"
    assert result["summary"]["timeline"] == "6-month"


def test_generate_study_plan_falls_back():
    result = generate_study_plan(grade=8, weekly_hours=4, manager=FakeManager("I'd suggest studying a lot."))
    assert result["used_fallback"] is True
    assert result["plan"]["weeks"][0]["daily_plan"][0]["duration_minutes"] == 60


def test_mock_blueprint_counts_difficulties():
    reply = json.dumps({
        "sections": [
            {
                "name": "Reading",
                "subject": "Reading",
                "topics": ["Inference"],
                "question_count": 52,
                "time_limit_minutes": 65,
                "difficulty_ratio": {"easy": 0.4, "medium": 0.4, "hard": 0.2},
            },
            {"name": "Math (Calculator)", "question_count": 38, "time_limit_minutes": 55},
        ]
    })
    exam = generate_mock_blueprint("SAT", 11, manager=FakeManager(reply))

    assert exam["id"].startswith("mock_")
    assert exam["total_time"] == 120
    assert exam["sections"][0]["difficulty_counts"] == {"easy": 21, "medium": 21, "hard": 10}
    assert exam["sections"][1]["subject"] == "Math (Calculator)"
    assert exam["sections"][1]["difficulty_counts"] == {"medium": 38}


def test_mock_blueprint_without_sections_raises():
    with pytest.raises(MalformedOutputError):
        generate_mock_blueprint(manager=FakeManager('{"sections": []}'))
