from tutor_core.context.manager import ConversationContextManager, context_manager, estimate_tokens

__all__ = ["ConversationContextManager", "context_manager", "estimate_tokens"]
