"""Tutor Core 顶层包。

该包提供 AI 辅导应用的后端核心实现，
包括配置加载、领域模型、多 Provider 降级调度、提示词构造、
模型输出 JSON 修复、对话上下文窗口、结构化生成流程与会话存储等能力。
"""

from tutor_core.providers.manager import AIProviderManager
from tutor_core.tutor.engine import TutorEngine

__all__ = ["AIProviderManager", "TutorEngine"]
