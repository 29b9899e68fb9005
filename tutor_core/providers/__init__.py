"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各厂商的具体实现 (groq_client、huggingface_client、openrouter_client)。
- 按固定顺序降级调度 (manager)。
"""

from typing import Dict, List, Literal, Optional, Type

from tutor_core.config.settings import settings
from tutor_core.domain.exceptions import ValidationError
from tutor_core.providers.base import ProviderClient
from tutor_core.providers.chat_completions import ChatCompletionsClient
from tutor_core.providers.groq_client import GroqClient
from tutor_core.providers.huggingface_client import HuggingFaceClient
from tutor_core.providers.openrouter_client import OpenRouterClient
from tutor_core.providers.manager import AIProviderManager


PROVIDER_CLASSES: Dict[str, Type[ChatCompletionsClient]] = {
    "groq": GroqClient,
    "huggingface": HuggingFaceClient,
    "openrouter": OpenRouterClient,
}

ProviderName = Literal["groq", "huggingface", "openrouter"]


def create_provider(name: Optional[str] = None, cfg=None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取 provider_order 的第一个。"""

    cfg = cfg or settings
    provider_name = (name or getattr(cfg, "provider_order", ["groq"])[0]).lower()
    try:
        cls = PROVIDER_CLASSES[provider_name]
    except KeyError:
        raise ValidationError("UNKNOWN_PROVIDER", f"Unknown provider: {provider_name!r}", provider=provider_name) from None
    return cls(cfg)


def create_default_providers(cfg=None) -> List[ProviderClient]:
    """按 provider_order 构造全部 Provider，每次请求新建。"""

    cfg = cfg or settings
    order = getattr(cfg, "provider_order", None) or list(PROVIDER_CLASSES)
    return [create_provider(name, cfg) for name in order]


__all__ = [
    "AIProviderManager",
    "ProviderClient",
    "GroqClient",
    "HuggingFaceClient",
    "OpenRouterClient",
    "create_provider",
    "create_default_providers",
]
