"""OpenAI 兼容 chat/completions 接口的通用适配器。

Groq、HuggingFace 推理路由与 OpenRouter 都提供同一形状的接口：

- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 响应: {"choices": [{"message": {...}, "finish_reason": ...}], "usage": {...}}

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为厂商 HTTP 请求格式。
3. 调用 HTTP 接口并把网络/API 异常包装为领域异常。
4. 将响应 JSON 解析为统一的 ChatResult。

各厂商子类只需声明 name / config / 兜底文案，必要时追加请求头。
"""

from typing import Any, Dict, List, Optional

import httpx

from tutor_core.config.settings import settings
from tutor_core.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from tutor_core.domain.models import (
    ChatChoice,
    ChatMessage,
    ChatRequest,
    ChatResult,
    ChatUsage,
)
from tutor_core.providers.registry import ModelConfig, ProviderConfig, resolve_model


class ChatCompletionsClient:
    """OpenAI 兼容 Provider 的客户端基类。"""

    name: str = ""
    config: ProviderConfig
    # 模型返回空内容时给用户的兜底文案
    empty_reply: str = "I'm working on your request."

    def __init__(self, cfg=settings):
        # Settings 里包含凭证、base_url、超时等配置
        self._settings = cfg

    # ---- 配置 ----

    @property
    def api_key(self) -> Optional[str]:
        return getattr(self._settings, self.config.api_key_setting, None)

    @property
    def base_url(self) -> str:
        base = getattr(self._settings, self.config.base_url_setting, None) or self.config.base_url
        return base.rstrip("/")

    def is_available(self) -> bool:
        return bool(self.api_key)

    # ---- 调用 ----

    def generate_response(self, prompt: str, max_tokens: int = 500) -> str:
        """以单条 user 消息调用模型，返回第一条候选文本。"""

        req = ChatRequest(
            provider=self.name,
            model=getattr(self._settings, "default_model", "tutor-chat"),
            messages=[ChatMessage(role="user", content=prompt)],
            temperature=getattr(self._settings, "default_temperature", None),
            max_tokens=max_tokens,
        )
        return self.chat(req).text or self.empty_reply

    def chat(self, req: ChatRequest) -> ChatResult:
        """执行一次非流式对话调用。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 使用统一的解析函数构造 ChatResult。
        """

        if not self.api_key:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(
                code="MISSING_API_KEY",
                message=f"{self.config.api_key_setting.upper()} not set",
                provider=self.name,
            )
        model_cfg = resolve_model(self.config, req.model)
        payload = self._build_payload(req, model_cfg)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name)
        if resp.status_code == 429:
            raise RateLimitError(
                code="RATE_LIMIT",
                message=f"{self.name} rate limit",
                http_status=429,
                provider=self.name,
            )
        if resp.status_code >= 400:
            # 其他 HTTP 错误统一包装为 ApiError
            raise ApiError(
                code="API_ERROR",
                message=f"{self.name} API error {resp.status_code}: {resp.text[:500]}",
                http_status=resp.status_code,
                provider=self.name,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(code="INVALID_RESPONSE", message=str(e), http_status=502, provider=self.name)
        if not isinstance(data, dict):
            raise ApiError(code="INVALID_RESPONSE", message="response body is not an object", http_status=502, provider=self.name)
        return self._parse_response(data, req)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        """将 ChatRequest 转成 chat/completions 请求 JSON。"""

        temperature = req.temperature
        if temperature is None:
            temperature = model_cfg.default_temperature
        return {
            "model": model_cfg.provider_model,
            "messages": [{"role": m.role, "content": m.content} for m in req.messages],
            "temperature": temperature,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
            "top_p": req.top_p,
            "stream": False,
        }

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatResult:
        """将厂商原始响应 JSON 解析为统一的 ChatResult。"""

        choices: List[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            choices.append(
                ChatChoice(
                    index=ch.get("index", i),
                    message=ChatMessage(
                        role=msg.get("role") or "assistant",
                        content=msg.get("content") or "",
                    ),
                    finish_reason=ch.get("finish_reason"),
                )
            )
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            usage = ChatUsage(
                prompt_tokens=usage_raw.get("prompt_tokens", 0),
                completion_tokens=usage_raw.get("completion_tokens", 0),
                total_tokens=usage_raw.get("total_tokens", 0),
            )
        return ChatResult(provider=self.name, model=req.model, choices=choices, usage=usage, raw=data)
