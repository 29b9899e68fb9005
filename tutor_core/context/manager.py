"""对话上下文窗口选择。

给定完整的消息历史，挑选下一次 LLM 调用要携带的历史子序列：

- 固定窗口：最近 N 条。
- token 感知窗口：从最新往回取，直到估算 token 超出预算。
- 摘要 + 最近：较长的历史把旧消息压缩成一条关键词摘要。

所有策略都保持原始顺序，且返回条数不超过配置的最大值。
token 数按 4 个字符约 1 个 token 粗略估算。
"""

import math
import re
from collections import Counter
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from tutor_core.config.settings import settings
from tutor_core.domain.models import ChatMessage


_QUESTION_WORDS = {"what", "how", "why", "when", "where", "which", "about", "could", "would", "there"}
_WORD = re.compile(r"[a-z][a-z'-]*")


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text or "") / 4)


def _role_content(message: Any) -> Tuple[str, str]:
    if isinstance(message, dict):
        role = message.get("role") or message.get("type") or "user"
        content = message.get("content") or ""
    else:
        role = getattr(message, "role", None) or getattr(message, "type", None) or "user"
        content = getattr(message, "content", "") or ""
    return str(role), str(content)


def _normalize(message: Any) -> ChatMessage:
    """历史消息统一为 user/assistant/system 三种角色（"ai" 等都算 assistant）。"""

    role, content = _role_content(message)
    if role not in ("user", "system"):
        role = "assistant"
    return ChatMessage(role=role, content=content)


class ConversationContextManager:
    """按不同策略裁剪对话历史。"""

    def __init__(
        self,
        max_messages: Optional[int] = None,
        max_tokens: Optional[int] = None,
        recent_messages: Optional[int] = None,
    ):
        self.max_messages = getattr(settings, "max_context_messages", 10) if max_messages is None else max_messages
        self.max_tokens = getattr(settings, "max_context_tokens", 2000) if max_tokens is None else max_tokens
        self.recent_messages = getattr(settings, "summary_recent_messages", 5) if recent_messages is None else recent_messages

    def get_fixed_window(self, messages: Sequence[Any], max_messages: Optional[int] = None) -> List[ChatMessage]:
        """最近 max_messages 条消息。"""

        limit = self.max_messages if max_messages is None else max_messages
        if limit <= 0:
            return []
        return [_normalize(m) for m in list(messages)[-limit:]]

    def get_token_aware_context(
        self,
        messages: Sequence[Any],
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
        max_messages: Optional[int] = None,
    ) -> List[ChatMessage]:
        """从最新消息往回取，直到 token 预算或条数上限用尽。

        system_prompt 放在最前面（预算允许时），也计入条数上限。
        """

        budget = self.max_tokens if max_tokens is None else max_tokens
        limit = max_messages
        head: List[ChatMessage] = []
        used = 0
        if system_prompt:
            system_tokens = estimate_tokens(system_prompt)
            if system_tokens < budget and (limit is None or limit > 0):
                head.append(ChatMessage(role="system", content=system_prompt))
                used += system_tokens

        picked: List[ChatMessage] = []
        for message in reversed(list(messages)):
            if limit is not None and len(head) + len(picked) >= limit:
                break
            normalized = _normalize(message)
            cost = estimate_tokens(normalized.content)
            if used + cost > budget:
                break
            picked.append(normalized)
            used += cost
        picked.reverse()
        return head + picked

    def summarize_conversation(self, messages: Iterable[Any]) -> str:
        """基于关键词频次的摘要（非语义）。"""

        topics: Counter = Counter()
        first_seen: dict = {}
        user_turns = 0
        assistant_turns = 0
        for message in messages:
            role, content = _role_content(message)
            if role == "user":
                user_turns += 1
                for word in _WORD.findall(content.lower()):
                    if len(word) > 4 and word not in _QUESTION_WORDS:
                        topics[word] += 1
                        first_seen.setdefault(word, len(first_seen))
            elif role != "system":
                assistant_turns += 1

        if not user_turns and not assistant_turns:
            return "No previous conversation."
        ranked = sorted(topics, key=lambda w: (-topics[w], first_seen[w]))[:3]
        topic_list = ", ".join(ranked) or "general questions"
        return (
            f"Discussed topics: {topic_list}. "
            f"User asked {user_turns} questions, AI provided {assistant_turns} responses."
        )

    def get_smart_context(
        self,
        messages: Sequence[Any],
        max_messages: Optional[int] = None,
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
    ) -> List[ChatMessage]:
        """短对话走 token 感知窗口；长对话用 系统提示 + 旧消息摘要 + 最近几条。"""

        limit = self.max_messages if max_messages is None else max_messages
        history = list(messages)
        if len(history) <= limit:
            return self.get_token_aware_context(history, max_tokens, system_prompt, max_messages=limit)

        recent_count = min(self.recent_messages, len(history))
        older = history[:-recent_count]
        recent = history[-recent_count:]

        context: List[ChatMessage] = []
        if system_prompt:
            context.append(ChatMessage(role="system", content=system_prompt))
        context.append(
            ChatMessage(
                role="system",
                content=f"Previous conversation summary: {self.summarize_conversation(older)}",
            )
        )
        context = context[:limit]
        remaining = max(0, limit - len(context))
        return context + self.get_fixed_window(recent, min(recent_count, remaining))

    def get_optimized_context(
        self,
        messages: Sequence[Any],
        max_messages: Optional[int] = None,
        max_tokens: Optional[int] = None,
        system_prompt: Optional[str] = None,
    ) -> List[ChatMessage]:
        """按对话长度选择策略：<=5 条全量，<=15 条固定窗口，更长走 token 感知窗口。"""

        count = len(messages)
        limit = self.max_messages if max_messages is None else max_messages
        if count <= 5:
            return self.get_fixed_window(messages, min(count, limit))
        if count <= 15:
            return self.get_fixed_window(messages, min(8, limit) if max_messages is None else limit)
        return self.get_token_aware_context(
            messages,
            1500 if max_tokens is None else max_tokens,
            system_prompt,
            max_messages=limit,
        )


context_manager = ConversationContextManager()
