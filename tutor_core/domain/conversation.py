from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Protocol
from datetime import datetime
from .models import Role


@dataclass
class ChatSession:
    id: str
    title: str
    user_id: Optional[str]
    created_at: datetime
    updated_at: datetime
    meta: Dict[str, Any]


@dataclass
class MessageRecord:
    id: str
    session_id: str
    role: Role
    content: str
    created_at: datetime
    meta: Dict[str, Any]


class ConversationStore(Protocol):
    def create_session(self, user_id: Optional[str], meta: Dict[str, Any]) -> ChatSession:
        ...

    def get_session(self, session_id: str) -> ChatSession:
        ...

    def list_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        ...

    def add_message(self, message: MessageRecord) -> None:
        ...

    def list_messages(self, session_id: str) -> List[MessageRecord]:
        ...

    def delete_session(self, session_id: str) -> None:
        ...
