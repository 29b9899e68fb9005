from tutor_core.context.manager import ConversationContextManager, estimate_tokens
from tutor_core.domain.models import ChatMessage


def _history(n, size=40):
    msgs = []
    for i in range(n):
        role = "user" if i % 2 == 0 else "assistant"
        msgs.append({"role": role, "content": f"{i:03d}" + "x" * (size - 3)})
    return msgs


def _is_ordered_subsequence(picked, history):
    contents = [m["content"] for m in history]
    positions = [contents.index(m.content) for m in picked if m.content in contents]
    return positions == sorted(positions)


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_fixed_window_keeps_last_messages_in_order():
    history = _history(12)
    window = ConversationContextManager(max_messages=10).get_fixed_window(history)
    assert [m.content for m in window] == [m["content"] for m in history[-10:]]


def test_token_aware_window_stops_at_budget():
    history = _history(6)  # 每条 10 token
    window = ConversationContextManager().get_token_aware_context(history, max_tokens=25)
    assert [m.content for m in window] == [m["content"] for m in history[-2:]]


def test_system_prompt_goes_first_and_uses_budget():
    history = _history(6)
    window = ConversationContextManager().get_token_aware_context(history, max_tokens=25, system_prompt="x" * 40)
    assert window[0].role == "system"
    assert len(window) == 2
    assert window[1].content == history[-1]["content"]


def test_roles_are_normalized():
    history = [
        {"role": "user", "content": "hi"},
        {"type": "ai", "content": "hello"},
        ChatMessage(role="assistant", content="again"),
    ]
    window = ConversationContextManager().get_fixed_window(history)
    assert [m.role for m in window] == ["user", "assistant", "assistant"]


def test_smart_context_summarizes_long_history():
    history = _history(20)
    history[0]["content"] = "Explain photosynthesis please"
    manager = ConversationContextManager(max_messages=10, recent_messages=5)
    window = manager.get_smart_context(history, system_prompt="You are a tutor.")

    assert len(window) <= 10
    assert window[0].content == "You are a tutor."
    assert window[1].content.startswith("Previous conversation summary:")
    assert "photosynthesis" in window[1].content
    assert [m.content for m in window[2:]] == [m["content"] for m in history[-5:]]


def test_results_never_exceed_message_cap():
    for size in range(0, 30):
        history = _history(size)
        for limit in range(0, 12):
            manager = ConversationContextManager(max_messages=limit, max_tokens=10_000)
            smart = manager.get_smart_context(history, system_prompt="sys")
            assert len(smart) <= limit
            optimized = manager.get_optimized_context(history, max_messages=limit)
            assert len(optimized) <= limit
            assert _is_ordered_subsequence(optimized, history)


def test_optimized_context_by_length():
    manager = ConversationContextManager(max_messages=10)
    assert len(manager.get_optimized_context(_history(3))) == 3
    assert len(manager.get_optimized_context(_history(12))) == 8
    long_window = manager.get_optimized_context(_history(40))
    assert 0 < len(long_window) <= 10


def test_summary_of_empty_history():
    assert ConversationContextManager().summarize_conversation([]) == "No previous conversation."


def test_zero_message_limit_is_respected():
    manager = ConversationContextManager(max_messages=0)
    assert manager.max_messages == 0
    assert manager.get_optimized_context(_history(3)) == []
    assert manager.get_optimized_context(_history(12)) == []
    assert ConversationContextManager().get_optimized_context(_history(3), max_messages=0) == []
    assert ConversationContextManager().get_optimized_context(_history(12), max_messages=0) == []
