"""对外 API 服务模块。

提供简化的函数接口供 Web 路由处理函数调用。所有函数返回可直接 JSON 序列化的 dict；
错误以 domain.exceptions 中的 BusinessError 子类抛出，路由层据 http_status / code 映射响应。
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from tutor_core.config.settings import settings
from tutor_core.domain.conversation import ChatSession, ConversationStore, MessageRecord
from tutor_core.domain.exceptions import BusinessError, ValidationError
from tutor_core.domain.models import StudentProfile
from tutor_core.generation import plans, questions
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.infrastructure.storage.json_store import JsonConversationStore
from tutor_core.practice.scoring import score_attempt
from tutor_core.providers import create_default_providers
from tutor_core.providers.manager import AIProviderManager
from tutor_core.tutor.engine import TutorEngine
from tutor_core.tutor.keywords import KeywordExtractor


_store: Optional[ConversationStore] = None


def get_default_store() -> ConversationStore:
    """获取默认的会话存储（单例，首次使用时创建）。"""
    global _store
    if _store is None:
        _store = JsonConversationStore(root=settings.storage_root)
    return _store


def _manager() -> AIProviderManager:
    # Provider 列表每次请求新建
    return AIProviderManager(create_default_providers())


def _engine() -> TutorEngine:
    return TutorEngine(manager=_manager(), store=get_default_store())


def _session_dict(session: ChatSession) -> Dict[str, Any]:
    return {
        "id": session.id,
        "title": session.title,
        "display_title": session.meta.get("topic") or session.title,
        "user_id": session.user_id,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "meta": session.meta,
    }


def _message_dict(message: MessageRecord) -> Dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
        "created_at": message.created_at.isoformat(),
        "meta": message.meta,
    }


def _logged(operation: str, fn, **fields):
    try:
        return fn()
    except BusinessError as e:
        logger.error(
            f"{operation} failed: {e.message}",
            extra={"extra": {"operation": operation, "error_code": e.code, **fields}},
        )
        raise


def generate_text(prompt: str, max_tokens: int = 500) -> Dict[str, Any]:
    """单条 prompt 直接生成文本（带 Provider 降级）。"""
    if not prompt:
        raise ValidationError("INVALID_ARGUMENT", "Prompt is required")
    text = _logged("generate_text", lambda: _manager().generate_with_fallback(prompt, max_tokens), max_tokens=max_tokens)
    return {"success": True, "response": text}


def generate_questions(**params: Any) -> Dict[str, Any]:
    finalized = _logged("generate_questions", lambda: questions.generate_questions(manager=_manager(), **params))
    return {"success": True, "questions": finalized}


def start_practice_session(section: str, topic: str, question_count: int = 10) -> Dict[str, Any]:
    return _logged(
        "start_practice_session",
        lambda: questions.start_practice_session(section, topic, question_count, manager=_manager()),
        section=section,
    )


def explain_question(question: str, topic: str, difficulty: Optional[str] = None) -> Dict[str, Any]:
    return _logged(
        "explain_question",
        lambda: questions.explain_question(question, topic, difficulty, manager=_manager()),
    )


def generate_quiz(concept: str, difficulty: str = "medium") -> Dict[str, Any]:
    if not concept:
        raise ValidationError("INVALID_ARGUMENT", "Concept is required")
    quiz = _logged("generate_quiz", lambda: _engine().generate_micro_quiz(concept, difficulty))
    if quiz is None:
        raise BusinessError(code="QUIZ_UNAVAILABLE", message="Failed to generate quiz", http_status=502)
    return {
        "quiz": {
            "question": quiz.question,
            "options": quiz.options,
            "correctAnswer": quiz.correct_answer,
            "explanation": quiz.explanation,
        }
    }


def tutor_chat(
    message: str,
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    concept: Optional[str] = None,
    profile: Optional[Mapping[str, Any]] = None,
    **meta: Any,
) -> Dict[str, Any]:
    """辅导对话。

    传入 concept 与 profile 时返回结构化讲解（type="explanation"），
    否则进行一轮带历史的对话（type="chat"）。
    """
    if not message:
        raise ValidationError("INVALID_ARGUMENT", "Message is required")
    engine = _engine()
    if concept and profile:
        reply = _logged(
            "tutor_explanation",
            lambda: engine.generate_explanation(concept, StudentProfile.from_dict(dict(profile))),
        )
        return {
            "type": "explanation",
            "data": {"explanation": reply.explanation, "funFact": reply.fun_fact, "analogy": reply.analogy},
        }

    session, user_rec, assistant_rec = _logged(
        "tutor_chat",
        lambda: engine.chat(message, session_id=session_id, user_id=user_id, **meta),
        session_id=session_id,
    )
    return {
        "type": "chat",
        "session_id": session.id,
        "data": {"message": assistant_rec.content},
        "user_message": _message_dict(user_rec),
        "assistant_message": _message_dict(assistant_rec),
        "usage": assistant_rec.meta.get("usage"),
    }


def generate_study_plan(**params: Any) -> Dict[str, Any]:
    result = _logged("generate_study_plan", lambda: plans.generate_study_plan(manager=_manager(), **params))
    return {"success": True, **result}


def generate_mock_blueprint(goal: str = "SAT", grade: int = 11) -> Dict[str, Any]:
    exam = _logged("generate_mock_blueprint", lambda: plans.generate_mock_blueprint(goal, grade, manager=_manager()))
    return {"success": True, "exam": exam}


def extract_keywords(text: str, grade_level: int = 9) -> Dict[str, Any]:
    """学生文本中的关键术语（LLM 优先，失败时退回正则）。"""
    if not text:
        raise ValidationError("INVALID_ARGUMENT", "Text is required")
    keywords = _logged("extract_keywords", lambda: KeywordExtractor(_manager()).extract_keywords(text, grade_level))
    return {"success": True, "keywords": keywords}


def score_practice(
    sections: Sequence[Mapping[str, Any]],
    answers: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Any]:
    """给一次练习/模拟考试作答打分（不调用模型）。"""
    return {"success": True, **score_attempt(sections, answers)}


def provider_health() -> Dict[str, Any]:
    manager = _manager()
    available = manager.get_available_providers()
    return {
        "status": "ok" if available else "degraded",
        "providers": [{"name": p.name, "available": p.is_available()} for p in manager.providers],
        "available": available,
    }


def list_chat_sessions(user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    return [_session_dict(s) for s in get_default_store().list_sessions(user_id)]


def get_chat_messages(session_id: str) -> List[Dict[str, Any]]:
    store = get_default_store()
    store.get_session(session_id)
    return [_message_dict(m) for m in store.list_messages(session_id)]


__all__ = [
    "explain_question",
    "extract_keywords",
    "generate_mock_blueprint",
    "generate_questions",
    "generate_quiz",
    "generate_study_plan",
    "generate_text",
    "get_chat_messages",
    "get_default_store",
    "list_chat_sessions",
    "provider_health",
    "score_practice",
    "start_practice_session",
    "tutor_chat",
]
