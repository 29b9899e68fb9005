"""Provider 抽象接口。

上层（AIProviderManager、TutorEngine）不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 GroqClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并把响应 JSON 解析为 ChatResult。
- is_available() 只看凭证是否配置，不发任何网络请求。
"""

from typing import Protocol
from tutor_core.domain.models import ChatRequest, ChatResult


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志与聚合错误。
    - is_available(): 是否配置了凭证。
    - chat(req): 执行一次非流式对话调用，返回统一的 ChatResult。
    - generate_response(prompt, max_tokens): 单条 user 消息的便捷调用，返回文本。
    """

    name: str

    def is_available(self) -> bool:
        ...

    def chat(self, req: ChatRequest) -> ChatResult:
        ...

    def generate_response(self, prompt: str, max_tokens: int = 500) -> str:
        ...
