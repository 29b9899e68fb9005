import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tutor_core.domain.conversation import MessageRecord
from tutor_core.domain.exceptions import BusinessError
from tutor_core.infrastructure.storage.json_store import DEFAULT_TITLE, JsonConversationStore, title_from_message


def _message(session_id, mid, role, content, offset=0):
    return MessageRecord(
        id=mid,
        session_id=session_id,
        role=role,
        content=content,
        created_at=datetime.now(timezone.utc) + timedelta(seconds=offset),
        meta={},
    )


def test_json_store_create_and_messages():
    with tempfile.TemporaryDirectory() as d:
        store = JsonConversationStore(root=Path(d) / ".storage")
        session = store.create_session("u1", {"topic": "Algebra"})
        assert session.title == "Algebra"

        store.add_message(_message(session.id, "m2", "assistant", "second", offset=1))
        store.add_message(_message(session.id, "m1", "user", "first"))
        msgs = store.list_messages(session.id)
        assert [m.id for m in msgs] == ["m1", "m2"]


def test_first_user_message_becomes_title():
    with tempfile.TemporaryDirectory() as d:
        store = JsonConversationStore(root=Path(d))
        session = store.create_session(None, {})
        assert session.title == DEFAULT_TITLE
        long_text = "Can you help me understand quadratic equations and the discriminant?"
        store.add_message(_message(session.id, "m1", "user", long_text))
        assert store.get_session(session.id).title == title_from_message(long_text)
        assert store.get_session(session.id).title.endswith("...")


def test_assistant_meta_updates_session():
    with tempfile.TemporaryDirectory() as d:
        store = JsonConversationStore(root=Path(d))
        session = store.create_session("u1", {"title": "Chat"})
        msg = _message(session.id, "m1", "assistant", "hi")
        msg.meta = {"provider": "openrouter", "model": "tutor-chat"}
        store.add_message(msg)
        assert store.get_session(session.id).meta["provider"] == "openrouter"


def test_list_sessions_filters_by_user_and_skips_corrupt_meta():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d)
        store = JsonConversationStore(root=root)
        mine = store.create_session("u1", {})
        store.create_session("u2", {})
        broken = root / "sessions" / "s-broken"
        broken.mkdir()
        (broken / "meta.json").write_text("{not json", encoding="utf-8")

        assert [s.id for s in store.list_sessions("u1")] == [mine.id]
        assert len(store.list_sessions()) == 2


def test_delete_session():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d) / ".storage"
        store = JsonConversationStore(root=root)
        session = store.create_session(None, {"title": "temp"})
        session_dir = root / "sessions" / session.id
        assert session_dir.exists()
        store.delete_session(session.id)
        assert not session_dir.exists()
        with pytest.raises(BusinessError) as exc:
            store.delete_session(session.id)
        assert exc.value.code == "SESSION_NOT_FOUND"


def test_missing_session_raises():
    with tempfile.TemporaryDirectory() as d:
        store = JsonConversationStore(root=Path(d))
        with pytest.raises(BusinessError) as exc:
            store.get_session("s-missing")
        assert exc.value.http_status == 404
        assert store.list_messages("s-missing") == []
