"""多 Provider 顺序降级调度。

AIProviderManager 按 settings.provider_order 的固定顺序依次尝试每个可用 Provider：

- 未配置凭证的 Provider 直接跳过，不产生任何网络请求。
- 每个 Provider 每次调用只尝试一次，不做重试，也不并发竞速。
- 第一个成功的结果立即返回，后续 Provider 不再被调用。
- 全部失败时抛出 AllProvidersFailedError，携带每次失败的 Provider 名与原因。
"""

import logging
from typing import Callable, List, Optional, Sequence, TypeVar

from tutor_core.domain.exceptions import (
    AllProvidersFailedError,
    NoProvidersAvailableError,
    ProviderFailure,
)
from tutor_core.domain.models import ChatMessage, ChatRequest, ChatResult
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.providers.base import ProviderClient

T = TypeVar("T")


class AIProviderManager:
    """按注册顺序带降级地调用 Provider。"""

    def __init__(self, providers: Optional[Sequence[ProviderClient]] = None):
        if providers is None:
            # 延迟导入，避免 providers/__init__ 与本模块循环依赖
            from tutor_core.providers import create_default_providers

            providers = create_default_providers()
        self._providers: List[ProviderClient] = list(providers)

    @property
    def providers(self) -> List[ProviderClient]:
        return list(self._providers)

    def get_available_providers(self) -> List[str]:
        """返回已配置凭证的 Provider 名称（按注册顺序）。"""

        return [p.name for p in self._providers if p.is_available()]

    def generate_with_fallback(self, prompt: str, max_tokens: int = 500) -> str:
        """单条 prompt 生成文本，返回第一个成功 Provider 的结果。"""

        return self._dispatch(
            lambda provider: provider.generate_response(prompt, max_tokens),
            operation="generate",
            max_tokens=max_tokens,
        )

    def chat_with_fallback(
        self,
        messages: Sequence[ChatMessage],
        max_tokens: int = 500,
        temperature: Optional[float] = None,
        model: str = "tutor-chat",
    ) -> ChatResult:
        """多轮消息生成，返回第一个成功 Provider 的 ChatResult。"""

        def call(provider: ProviderClient) -> ChatResult:
            req = ChatRequest(
                provider=provider.name,
                model=model,
                messages=list(messages),
                temperature=temperature,
                max_tokens=max_tokens,
            )
            return provider.chat(req)

        return self._dispatch(call, operation="chat", max_tokens=max_tokens, message_count=len(messages))

    def _dispatch(self, call: Callable[[ProviderClient], T], operation: str, **log_fields) -> T:
        available: List[ProviderClient] = []
        for provider in self._providers:
            if provider.is_available():
                available.append(provider)
            else:
                self._log(logging.DEBUG, "Provider skipped", provider.name, operation, outcome="skipped", **log_fields)

        if not available:
            self._log(logging.ERROR, "No AI providers available", None, operation, outcome="no_providers")
            raise NoProvidersAvailableError()

        failures: List[ProviderFailure] = []
        for provider in available:
            self._log(logging.INFO, "Attempting AI generation", provider.name, operation, outcome="attempt", **log_fields)
            try:
                result = call(provider)
            except Exception as exc:
                failures.append(ProviderFailure(provider=provider.name, error=exc))
                self._log(
                    logging.WARNING,
                    "Provider failed, trying next provider",
                    provider.name,
                    operation,
                    outcome="failed",
                    error_code=getattr(exc, "code", type(exc).__name__),
                    error=str(exc),
                )
                continue
            self._log(logging.INFO, "Provider succeeded", provider.name, operation, outcome="success")
            return result

        error = AllProvidersFailedError(failures)
        self._log(
            logging.ERROR,
            "All AI providers failed",
            None,
            operation,
            outcome="all_failed",
            providers=error.failed_providers,
        )
        raise error

    @staticmethod
    def _log(level: int, message: str, provider: Optional[str], operation: str, **fields) -> None:
        payload = {"operation": operation}
        if provider:
            payload["provider"] = provider
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
