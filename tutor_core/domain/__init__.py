"""领域层模型与协议。

包含：
- models: 统一的 ChatMessage / ChatRequest / ChatResult 模型及辅导相关结构。
- conversation: 聊天会话与消息的存储模型及 ConversationStore 抽象。
- exceptions: 业务异常类型定义。
"""
