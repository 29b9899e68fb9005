import logging

import pytest

from tutor_core.domain.exceptions import AllProvidersFailedError, MalformedOutputError, ProviderFailure
from tutor_core.domain.models import ChatChoice, ChatMessage, ChatResult
from tutor_core.flows import GenerationSpec, run_generation


class FakeManager:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate_with_fallback(self, prompt, max_tokens=500):
        self.prompts.append((prompt, max_tokens))
        if self.error:
            raise self.error
        return self.reply


def _require_answer(data):
    if "answer" not in data:
        raise ValueError("missing answer")
    return {"answer": str(data["answer"])}


def test_valid_output_is_validated():
    manager = FakeManager('Sure! {"answer": 4}')
    spec = GenerationSpec(kind="math", validate=_require_answer, max_tokens=64)
    outcome = run_generation(spec, "2+2?", manager)

    assert outcome.data == {"answer": "4"}
    assert outcome.stage == "braces"
    assert outcome.used_fallback is False
    assert manager.prompts == [("2+2?", 64)]


def test_unparseable_output_uses_fallback(caplog):
    caplog.set_level(logging.WARNING, logger="tutor_core")
    seen = []
    spec = GenerationSpec(
        kind="math",
        validate=_require_answer,
        fallback=lambda raw: seen.append(raw) or {"answer": "n/a"},
    )
    outcome = run_generation(spec, "2+2?", FakeManager("I don't know"))

    assert outcome.data == {"answer": "n/a"}
    assert outcome.used_fallback is True
    assert outcome.stage is None
    assert seen == ["I don't know"]
    assert outcome.errors
    assert any(r.getMessage() == "fallback_node.substituted" for r in caplog.records)


def test_validation_failure_uses_fallback():
    spec = GenerationSpec(kind="math", validate=_require_answer, fallback=lambda raw: {"answer": "n/a"})
    outcome = run_generation(spec, "2+2?", FakeManager('{"question": "?"}'))
    assert outcome.used_fallback is True
    assert outcome.errors[-1].startswith("validate:")


def test_malformed_output_without_fallback_raises():
    spec = GenerationSpec(kind="math", validate=_require_answer)
    with pytest.raises(MalformedOutputError) as exc:
        run_generation(spec, "2+2?", FakeManager("nope"))
    assert exc.value.extra["kind"] == "math"


def test_malformed_output_message_carries_validation_error():
    spec = GenerationSpec(kind="math", validate=_require_answer)
    with pytest.raises(MalformedOutputError) as exc:
        run_generation(spec, "2+2?", FakeManager('{"question": "?"}'))
    assert exc.value.message == "Invalid math response from model: validate: missing answer"


def test_provider_exhaustion_is_not_masked():
    error = AllProvidersFailedError([ProviderFailure("groq", RuntimeError("down"))])
    spec = GenerationSpec(kind="math", validate=_require_answer, fallback=lambda raw: {"answer": "n/a"})
    with pytest.raises(AllProvidersFailedError):
        run_generation(spec, "2+2?", FakeManager(error=error))


def test_max_tokens_override():
    manager = FakeManager('{"answer": 1}')
    run_generation(GenerationSpec(kind="math", validate=_require_answer), "p", manager, max_tokens=12)
    assert manager.prompts == [("p", 12)]


class ChatOnlyManager:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def chat_with_fallback(self, messages, max_tokens=500, temperature=None):
        self.calls.append(([(m.role, m.content) for m in messages], max_tokens, temperature))
        return ChatResult(
            provider="fake",
            model="tutor-chat",
            choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=self.reply))],
        )


def test_system_prompt_routes_through_chat():
    manager = ChatOnlyManager('{"answer": 9}')
    spec = GenerationSpec(
        kind="math",
        validate=_require_answer,
        max_tokens=32,
        system_prompt="You are a planner.",
        temperature=0.7,
    )
    outcome = run_generation(spec, "3*3?", manager)

    assert outcome.data == {"answer": "9"}
    assert manager.calls == [([("system", "You are a planner."), ("user", "3*3?")], 32, 0.7)]
