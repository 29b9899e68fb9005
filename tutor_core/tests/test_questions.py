import json

import pytest

from tutor_core.domain.exceptions import MalformedOutputError, ValidationError
from tutor_core.domain.models import ChatChoice, ChatMessage, ChatResult
from tutor_core.generation.questions import (
    explain_question,
    generate_questions,
    match_answer_index,
    start_practice_session,
)


class FakeManager:
    def __init__(self, reply):
        self.reply = reply
        self.prompts = []
        self.system_prompts = []

    def generate_with_fallback(self, prompt, max_tokens=500):
        self.prompts.append(prompt)
        return self.reply

    def chat_with_fallback(self, messages, max_tokens=500, temperature=None):
        self.system_prompts.append(messages[0].content)
        self.prompts.append(messages[-1].content)
        return ChatResult(
            provider="fake",
            model="tutor-chat",
            choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=self.reply))],
        )


def _questions(*items):
    return json.dumps({"questions": list(items)})


LINEAR = {
    "id": "unique_id_or_null",
    "topic": "Linear Equations",
    "difficulty": "easy",
    "subject": "Math",
    "question": "If x + 5 = 12, what is x?",
    "choices": ["5", "7", "12", "17"],
    "answer": "C) 7",
    "explanation": "Subtract 5 from both sides.",
}


def test_generate_questions_adds_review_metadata():
    manager = FakeManager("Here are your questions:\n" + _questions(LINEAR, {**LINEAR, "id": "q-fixed"}))
    questions = generate_questions(topic="Linear Equations", question_count=2, manager=manager)

    assert len(questions) == 2
    assert questions[0]["id"].startswith("gen_")
    assert questions[0]["id"].endswith("_0")
    assert questions[1]["id"] == "q-fixed"
    assert all(q["status"] == "pending_review" for q in questions)
    assert all(q["created_at"] for q in questions)
    assert '"Linear Equations"' in manager.prompts[0]
    assert "academic planner" in manager.system_prompts[0]


def test_generate_questions_rejects_malformed_output():
    with pytest.raises(MalformedOutputError):
        generate_questions(manager=FakeManager("Sorry, I can't help with that."))


def test_generate_questions_rejects_missing_fields():
    broken = {k: v for k, v in LINEAR.items() if k != "explanation"}
    with pytest.raises(MalformedOutputError) as exc:
        generate_questions(manager=FakeManager(_questions(broken)))
    assert "missing required fields" in exc.value.message


def test_practice_session_maps_answers_to_indices():
    session = start_practice_session("math", "Linear Equations", 1, manager=FakeManager(_questions(LINEAR)))
    question = session["questions"][0]

    assert session["used_fallback"] is False
    assert question["correctAnswer"] == 1
    assert question["difficulty"] == "easy"
    assert question["topic"] == "Linear Equations"
    assert question["id"].startswith("q_")


def test_practice_session_falls_back_on_garbage():
    session = start_practice_session("math", "Algebra", 3, manager=FakeManager("the model rambled"))

    assert session["used_fallback"] is True
    assert len(session["questions"]) == 3
    assert [q["difficulty"] for q in session["questions"]] == ["easy", "medium", "hard"]
    assert all(q["correctAnswer"] == 1 for q in session["questions"])


def test_reading_fallback_points_at_neutral():
    session = start_practice_session("reading", "Tone", 2, manager=FakeManager("{}"))
    question = session["questions"][0]
    assert question["choices"][question["correctAnswer"]] == "Neutral"


def test_practice_session_requires_section_and_topic():
    with pytest.raises(ValidationError):
        start_practice_session("", "Algebra", manager=FakeManager("{}"))


@pytest.mark.parametrize(
    "answer, choices, expected",
    [
        ("7", ["5", "7", "12", "17"], 1),
        (" neutral ", ["Optimistic", "Pessimistic", "Neutral", "Aggressive"], 2),
        ("B) 7", ["5", "7", "12", "17"], 1),
        ("D) 4", ["x = 2", "x = 3", "x = 4", "x = 5"], 2),
        ("42", ["5", "7", "12", "17"], 0),
    ],
)
def test_match_answer_index(answer, choices, expected):
    assert match_answer_index(answer, choices) == expected


def test_explain_question_fallback_and_success():
    fallback = explain_question("What is x?", "Algebra", manager=FakeManager("no json"))
    assert fallback["summary"] == "This question tests your understanding of Algebra."
    assert len(fallback["links"]) == 2

    reply = json.dumps({
        "summary": "Isolate x.",
        "keyPoints": ["Subtract"],
        "commonMistakes": [],
        "links": [{"title": "Khan", "url": "https://www.khanacademy.org", "type": "practice"}, {"title": "bad"}],
    })
    explained = explain_question("What is x?", "Algebra", "easy", manager=FakeManager(reply))
    assert explained["summary"] == "Isolate x."
    assert [link["title"] for link in explained["links"]] == ["Khan"]


def test_explanation_string_fields_become_single_items():
    reply = json.dumps({
        "summary": "Isolate x.",
        "keyPoints": "Subtract 5 from both sides",
        "commonMistakes": "Adding instead of subtracting",
    })
    explained = explain_question("What is x?", "Algebra", manager=FakeManager(reply))
    assert explained["keyPoints"] == ["Subtract 5 from both sides"]
    assert explained["commonMistakes"] == ["Adding instead of subtracting"]
    assert explained["links"] == []
