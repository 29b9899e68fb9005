"""OpenRouter Provider 适配器。

除 Bearer 认证外，OpenRouter 还要求 HTTP-Referer / X-Title 两个来源标识头，
取值来自 settings.app_url / settings.app_title。
"""

from typing import Dict

from tutor_core.config.settings import settings
from tutor_core.providers.chat_completions import ChatCompletionsClient
from tutor_core.providers.registry import OPENROUTER_CONFIG


class OpenRouterClient(ChatCompletionsClient):
    """OpenRouter Provider 客户端实现。"""

    name = "openrouter"
    config = OPENROUTER_CONFIG
    empty_reply = "I'm working on your request."

    def __init__(self, cfg=settings):
        super().__init__(cfg)

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["HTTP-Referer"] = getattr(self._settings, "app_url", None) or "http://localhost:3001"
        headers["X-Title"] = getattr(self._settings, "app_title", None) or "TutorByAI"
        return headers
