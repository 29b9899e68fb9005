import json
import os
import shutil
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from tutor_core.config.settings import settings
from tutor_core.domain.conversation import ChatSession, ConversationStore, MessageRecord
from tutor_core.domain.exceptions import BusinessError

DEFAULT_TITLE = "New Chat Session"
_TITLE_CHARS = 40


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_dt(value: Any) -> datetime:
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def title_from_message(content: str) -> str:
    """首条用户消息的前 40 个字符作为会话标题。"""

    content = content.strip()
    return content[:_TITLE_CHARS] + "..." if len(content) > _TITLE_CHARS else content


class JsonConversationStore(ConversationStore):
    """基于文件的会话存储：sessions/<id>/meta.json + messages.jsonl。"""

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._sessions_root = self._root / "sessions"
        self._sessions_root.mkdir(parents=True, exist_ok=True)

    def create_session(self, user_id: Optional[str], meta: Dict[str, Any]) -> ChatSession:
        sid = f"s-{uuid4().hex}"
        sdir = self._sessions_root / sid
        sdir.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        meta_copy = dict(meta)
        title = meta_copy.pop("title", None) or meta_copy.get("topic") or DEFAULT_TITLE
        session = ChatSession(id=sid, title=title, user_id=user_id, created_at=now, updated_at=now, meta=meta_copy)
        self._write_meta(sdir, session)
        return session

    def get_session(self, session_id: str) -> ChatSession:
        meta_path = self._sessions_root / session_id / "meta.json"
        if not meta_path.exists():
            raise BusinessError(code="SESSION_NOT_FOUND", message=session_id, http_status=404)
        try:
            data = json.loads(meta_path.read_text(encoding="utf-8"))
            return self._to_session(data)
        except (OSError, ValueError, KeyError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e), http_status=500)

    def list_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        """按 updated_at 倒序返回会话；损坏的 meta 文件跳过。"""

        items: List[ChatSession] = []
        for sdir in self._sessions_root.glob("*/"):
            meta_path = sdir / "meta.json"
            if not meta_path.exists():
                continue
            try:
                session = self._to_session(json.loads(meta_path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError):
                continue
            if user_id is None or session.user_id == user_id:
                items.append(session)
        items.sort(key=lambda s: s.updated_at, reverse=True)
        return items

    def add_message(self, message: MessageRecord) -> None:
        sdir = self._sessions_root / message.session_id
        msgs_path = sdir / "messages.jsonl"
        session = self.get_session(message.session_id)
        try:
            payload = asdict(message)
            payload["created_at"] = _iso(message.created_at)
            with msgs_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e), http_status=500)

        session.updated_at = datetime.now(timezone.utc)
        if message.role == "user" and session.title == DEFAULT_TITLE and message.content.strip():
            session.title = title_from_message(message.content)
        for key in ("provider", "model"):
            if message.meta.get(key):
                session.meta[key] = message.meta[key]
        self._write_meta(sdir, session)

    def list_messages(self, session_id: str) -> List[MessageRecord]:
        msgs_path = self._sessions_root / session_id / "messages.jsonl"
        items: List[MessageRecord] = []
        if not msgs_path.exists():
            return items
        for line in msgs_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                items.append(self._to_message(json.loads(line)))
            except (ValueError, KeyError):
                continue
        items.sort(key=lambda m: m.created_at)
        return items

    def delete_session(self, session_id: str) -> None:
        sdir = self._sessions_root / session_id
        if not sdir.exists():
            raise BusinessError(code="SESSION_NOT_FOUND", message=session_id, http_status=404)
        try:
            shutil.rmtree(sdir)
        except OSError as e:
            raise BusinessError(code="STORE_DELETE_ERROR", message=str(e), http_status=500)

    def _write_meta(self, sdir: Path, session: ChatSession) -> None:
        meta_path = sdir / "meta.json"
        tmp_path = sdir / f"meta.{uuid4().hex}.json.tmp"
        obj = {
            "id": session.id,
            "title": session.title,
            "user_id": session.user_id,
            "created_at": _iso(session.created_at),
            "updated_at": _iso(session.updated_at),
            "meta": session.meta,
        }
        try:
            tmp_path.write_text(json.dumps(obj, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, meta_path)
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e), http_status=500)

    def _to_session(self, data: Dict[str, Any]) -> ChatSession:
        return ChatSession(
            id=data["id"],
            title=data.get("title") or DEFAULT_TITLE,
            user_id=data.get("user_id"),
            created_at=_parse_dt(data["created_at"]),
            updated_at=_parse_dt(data["updated_at"]),
            meta=data.get("meta") or {},
        )

    def _to_message(self, data: Dict[str, Any]) -> MessageRecord:
        return MessageRecord(
            id=data["id"],
            session_id=data["session_id"],
            role=data["role"],
            content=data.get("content") or "",
            created_at=_parse_dt(data["created_at"]),
            meta=data.get("meta") or {},
        )
