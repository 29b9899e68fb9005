from tutor_core.infrastructure.storage.json_store import JsonConversationStore

__all__ = ["JsonConversationStore"]
