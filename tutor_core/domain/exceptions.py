"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层（路由处理函数）做统一捕获与用户提示。
"""

from dataclasses import dataclass
from typing import List, Sequence


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、stage 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class MalformedOutputError(BusinessError):
    """模型输出无法解析为预期的 JSON 结构。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="MALFORMED_OUTPUT", message=message, http_status=502, **extra)


class NoProvidersAvailableError(BusinessError):
    """没有任何 Provider 配置了凭证。"""

    def __init__(self, message: str = "No AI providers are available. Please check your API keys."):
        super().__init__(code="NO_PROVIDERS", message=message, http_status=503)


@dataclass
class ProviderFailure:
    """一次失败的 Provider 调用记录。"""

    provider: str
    error: Exception

    @property
    def code(self) -> str:
        return getattr(self.error, "code", type(self.error).__name__)

    def describe(self) -> str:
        return f"{self.provider} ({self.code}: {self.error})"


class AllProvidersFailedError(BusinessError):
    """所有可用 Provider 均调用失败时的聚合异常。"""

    def __init__(self, failures: Sequence[ProviderFailure]):
        self.failures: List[ProviderFailure] = list(failures)
        summary = "; ".join(f.describe() for f in self.failures)
        super().__init__(
            code="ALL_PROVIDERS_FAILED",
            message=f"All AI providers failed: {summary}",
            http_status=502,
            providers=self.failed_providers,
        )

    @property
    def failed_providers(self) -> List[str]:
        return [f.provider for f in self.failures]
