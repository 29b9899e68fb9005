"""HuggingFace 推理 Provider 适配器。

通过推理路由的 chat/completions 端点调用托管模型，认证使用 HUGGINGFACE_TOKEN。
"""

from tutor_core.config.settings import settings
from tutor_core.providers.chat_completions import ChatCompletionsClient
from tutor_core.providers.registry import HUGGINGFACE_CONFIG


class HuggingFaceClient(ChatCompletionsClient):
    """HuggingFace Provider 客户端实现。"""

    name = "huggingface"
    config = HUGGINGFACE_CONFIG
    empty_reply = "I'm processing your request."

    def __init__(self, cfg=settings):
        super().__init__(cfg)
