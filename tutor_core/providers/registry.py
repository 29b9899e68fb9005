"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "tutor-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "llama-3.3-70b-versatile"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置，便于后续升级或切换。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。

    api_key_setting / base_url_setting 是 Settings 上对应字段的名称，
    Provider 是否可用完全由 api_key_setting 是否有值决定。
    """

    name: str
    base_url: str
    api_key_setting: str
    base_url_setting: str
    models: Dict[str, ModelConfig]


# Groq：主 Provider
GROQ_CONFIG = ProviderConfig(
    name="groq",
    base_url="https://api.groq.com/openai/v1",
    api_key_setting="groq_api_key",
    base_url_setting="groq_base_url",
    models={
        "tutor-chat": ModelConfig(
            logical_name="tutor-chat",
            provider_model="llama-3.3-70b-versatile",
            max_tokens=2000,
            default_temperature=0.8,
        ),
        "tutor-fast": ModelConfig(
            logical_name="tutor-fast",
            provider_model="llama-3.1-8b-instant",
            max_tokens=1024,
            default_temperature=0.7,
        ),
    },
)

# HuggingFace 推理路由（OpenAI 兼容的 chat/completions）
HUGGINGFACE_CONFIG = ProviderConfig(
    name="huggingface",
    base_url="https://router.huggingface.co/v1",
    api_key_setting="huggingface_token",
    base_url_setting="huggingface_base_url",
    models={
        "tutor-chat": ModelConfig(
            logical_name="tutor-chat",
            provider_model="mistralai/Mistral-7B-Instruct-v0.2",
            max_tokens=2000,
            default_temperature=0.8,
        )
    },
)

OPENROUTER_CONFIG = ProviderConfig(
    name="openrouter",
    base_url="https://openrouter.ai/api/v1",
    api_key_setting="openrouter_api_key",
    base_url_setting="openrouter_base_url",
    models={
        "tutor-chat": ModelConfig(
            logical_name="tutor-chat",
            provider_model="meta-llama/llama-3.1-8b-instruct:free",
            max_tokens=2000,
            default_temperature=0.8,
        )
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "groq": GROQ_CONFIG,
    "huggingface": HUGGINGFACE_CONFIG,
    "openrouter": OPENROUTER_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_model(cfg: ProviderConfig, logical_name: str) -> ModelConfig:
    """逻辑模型名映射到厂商模型；未配置的逻辑名退回 tutor-chat。"""

    return cfg.models.get(logical_name) or cfg.models["tutor-chat"]
