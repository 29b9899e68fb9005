import pytest

from tutor_core.domain.exceptions import AllProvidersFailedError, ApiError, NoProvidersAvailableError, RateLimitError
from tutor_core.domain.models import ChatChoice, ChatMessage, ChatResult
from tutor_core.providers.manager import AIProviderManager


class FakeProvider:
    def __init__(self, name, reply="ok", error=None, available=True):
        self.name = name
        self.reply = reply
        self.error = error
        self.available = available
        self.calls = []

    def is_available(self):
        return self.available

    def generate_response(self, prompt, max_tokens=500):
        self.calls.append((prompt, max_tokens))
        if self.error:
            raise self.error
        return self.reply

    def chat(self, req):
        self.calls.append(req)
        if self.error:
            raise self.error
        return ChatResult(
            provider=self.name,
            model=req.model,
            choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=self.reply))],
        )


def test_only_available_provider_answers():
    groq = FakeProvider("groq", available=False)
    hf = FakeProvider("huggingface", reply="4")
    router = FakeProvider("openrouter", available=False)
    manager = AIProviderManager([groq, hf, router])

    assert manager.generate_with_fallback("2+2", 10) == "4"
    assert hf.calls == [("2+2", 10)]
    assert groq.calls == [] and router.calls == []


def test_single_available_provider_failure_is_aggregated():
    hf = FakeProvider("huggingface", error=ApiError("API_ERROR", "boom", http_status=500))
    manager = AIProviderManager([FakeProvider("groq", available=False), hf, FakeProvider("openrouter", available=False)])

    with pytest.raises(AllProvidersFailedError) as exc:
        manager.generate_with_fallback("2+2", 10)
    assert exc.value.failed_providers == ["huggingface"]
    assert exc.value.code == "ALL_PROVIDERS_FAILED"
    assert "huggingface (API_ERROR: boom)" in exc.value.message


def test_no_available_providers_makes_no_calls():
    providers = [FakeProvider("groq", available=False), FakeProvider("openrouter", available=False)]
    manager = AIProviderManager(providers)

    with pytest.raises(NoProvidersAvailableError):
        manager.generate_with_fallback("hello")
    assert all(p.calls == [] for p in providers)


def test_stops_after_first_success():
    first = FakeProvider("groq", error=RateLimitError("RATE_LIMIT", "slow down", http_status=429))
    second = FakeProvider("huggingface", reply="second")
    third = FakeProvider("openrouter", reply="third")
    manager = AIProviderManager([first, second, third])

    assert manager.generate_with_fallback("hi") == "second"
    assert len(first.calls) == 1
    assert len(second.calls) == 1
    assert third.calls == []


def test_all_failures_keep_attempt_order():
    providers = [
        FakeProvider("groq", error=RuntimeError("a")),
        FakeProvider("huggingface", error=RuntimeError("b")),
        FakeProvider("openrouter", error=RuntimeError("c")),
    ]
    with pytest.raises(AllProvidersFailedError) as exc:
        AIProviderManager(providers).generate_with_fallback("hi")
    assert exc.value.failed_providers == ["groq", "huggingface", "openrouter"]
    assert [f.code for f in exc.value.failures] == ["RuntimeError"] * 3


def test_chat_with_fallback_builds_request():
    provider = FakeProvider("groq", reply="hey")
    manager = AIProviderManager([provider])
    messages = [ChatMessage(role="system", content="be nice"), ChatMessage(role="user", content="hi")]

    result = manager.chat_with_fallback(messages, max_tokens=42, temperature=0.3)

    assert result.text == "hey"
    req = provider.calls[0]
    assert req.provider == "groq"
    assert req.model == "tutor-chat"
    assert req.max_tokens == 42
    assert req.temperature == 0.3
    assert [m.role for m in req.messages] == ["system", "user"]


def test_get_available_providers_in_registration_order():
    manager = AIProviderManager([
        FakeProvider("openrouter"),
        FakeProvider("groq", available=False),
        FakeProvider("huggingface"),
    ])
    assert manager.get_available_providers() == ["openrouter", "huggingface"]


def test_default_providers_come_from_factory(monkeypatch):
    built = [FakeProvider("groq")]
    monkeypatch.setattr("tutor_core.providers.create_default_providers", lambda: built)
    assert AIProviderManager().providers == built
