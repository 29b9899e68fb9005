import pytest

from tutor_core.config.settings import KNOWN_PROVIDERS
from tutor_core.domain.exceptions import ValidationError
from tutor_core.providers import PROVIDER_CLASSES, create_default_providers, create_provider
from tutor_core.providers.groq_client import GroqClient
from tutor_core.providers.huggingface_client import HuggingFaceClient
from tutor_core.providers.openrouter_client import OpenRouterClient
from tutor_core.providers.registry import GROQ_CONFIG, get_provider_config, resolve_model


class DummySettings:
    provider_order = ["groq", "huggingface", "openrouter"]
    groq_api_key = "gsk_test"
    huggingface_token = None
    openrouter_api_key = "sk-or-test"
    groq_base_url = "https://api.groq.com/openai/v1"
    huggingface_base_url = "https://router.huggingface.co/v1"
    openrouter_base_url = "https://openrouter.ai/api/v1"
    http_timeout = 1.0


def test_create_provider_default(monkeypatch):
    monkeypatch.setattr("tutor_core.providers.settings", DummySettings())
    provider = create_provider()
    assert isinstance(provider, GroqClient)


def test_create_provider_explicit():
    provider = create_provider("OpenRouter", DummySettings())
    assert isinstance(provider, OpenRouterClient)


def test_create_provider_unknown():
    with pytest.raises(ValidationError) as exc:
        create_provider("gemini", DummySettings())
    assert exc.value.code == "UNKNOWN_PROVIDER"


def test_known_provider_names_match_factory():
    assert set(KNOWN_PROVIDERS) == set(PROVIDER_CLASSES)


def test_create_default_providers_follows_order():
    cfg = DummySettings()
    cfg.provider_order = ["openrouter", "groq"]
    providers = create_default_providers(cfg)
    assert [p.name for p in providers] == ["openrouter", "groq"]


def test_availability_depends_on_credentials():
    providers = create_default_providers(DummySettings())
    availability = {p.name: p.is_available() for p in providers}
    assert availability == {"groq": True, "huggingface": False, "openrouter": True}
    assert isinstance(providers[1], HuggingFaceClient)


def test_registry_lookup_is_case_insensitive():
    assert get_provider_config("GROQ") is GROQ_CONFIG
    with pytest.raises(KeyError):
        get_provider_config("unknown")


def test_resolve_model_falls_back_to_tutor_chat():
    assert resolve_model(GROQ_CONFIG, "tutor-fast").provider_model == "llama-3.1-8b-instant"
    assert resolve_model(GROQ_CONFIG, "no-such-model").provider_model == "llama-3.3-70b-versatile"
