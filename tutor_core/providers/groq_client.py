"""Groq Provider 适配器。

Groq 提供 OpenAI 兼容接口（{base_url}/chat/completions），是调度链中的首选 Provider。
"""

from tutor_core.config.settings import settings
from tutor_core.providers.chat_completions import ChatCompletionsClient
from tutor_core.providers.registry import GROQ_CONFIG


class GroqClient(ChatCompletionsClient):
    """Groq Provider 客户端实现。"""

    name = "groq"
    config = GROQ_CONFIG
    empty_reply = "I'm having trouble thinking right now."

    def __init__(self, cfg=settings):
        super().__init__(cfg)
