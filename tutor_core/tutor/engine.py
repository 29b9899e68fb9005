"""辅导引擎。

把提示词构造、Provider 降级调度、JSON 修复和上下文窗口选择组合成
面向学生的功能：概念讲解、学习方法、趣味知识、鼓励语、小测验、
快速回复、入门问卷以及带历史的多轮对话。
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from tutor_core.config.settings import settings
from tutor_core.context.manager import ConversationContextManager, context_manager
from tutor_core.domain.conversation import ChatSession, ConversationStore, MessageRecord
from tutor_core.domain.exceptions import MalformedOutputError, ValidationError
from tutor_core.domain.models import ChatMessage, QuizQuestion, StudentProfile, TutorResponse
from tutor_core.flows import GenerationSpec, run_generation
from tutor_core.generation.fallbacks import fallback_tutor_explanation
from tutor_core.generation.questions import match_answer_index
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.prompts import (
    ONBOARDING_QUESTIONS,
    encouragement_prompt,
    explanation_prompt,
    fun_fact_prompt,
    load_system_prompt,
    micro_quiz_prompt,
    onboarding_followup_prompt,
    study_method_prompt,
)
from tutor_core.providers.manager import AIProviderManager

DIFFICULTIES = ("easy", "medium", "hard")


def _tutor_response(data: Any) -> TutorResponse:
    if not isinstance(data, dict) or not isinstance(data.get("explanation"), str) or not data["explanation"].strip():
        raise MalformedOutputError("Explanation is missing")
    return TutorResponse(
        explanation=data["explanation"],
        fun_fact=data.get("funFact"),
        analogy=data.get("analogy"),
    )


def _quiz_question(data: Any) -> QuizQuestion:
    if not isinstance(data, dict) or not data.get("question"):
        raise MalformedOutputError("Quiz is missing a question")
    options = data.get("options")
    if not isinstance(options, list) or len(options) < 2:
        raise MalformedOutputError("Quiz needs at least two options")
    options = [str(o) for o in options]
    correct = str(data.get("correctAnswer") or "")
    if correct not in options:
        correct = options[match_answer_index(correct, options)]
    return QuizQuestion(
        question=str(data["question"]),
        options=options,
        correct_answer=correct,
        explanation=str(data.get("explanation") or ""),
    )


class TutorEngine:
    def __init__(
        self,
        manager: Optional[AIProviderManager] = None,
        store: Optional[ConversationStore] = None,
        context: Optional[ConversationContextManager] = None,
        temperature: Optional[float] = None,
    ):
        self._manager = manager or AIProviderManager()
        self._store = store
        self._context = context or context_manager
        self._temperature = settings.default_temperature if temperature is None else temperature

    @property
    def manager(self) -> AIProviderManager:
        return self._manager

    def generate_explanation(self, concept: str, profile: StudentProfile) -> TutorResponse:
        spec = GenerationSpec(
            kind="tutor_explanation",
            validate=_tutor_response,
            fallback=lambda raw: _tutor_response(fallback_tutor_explanation(raw)),
            max_tokens=500,
        )
        return run_generation(spec, explanation_prompt(concept, profile), self._manager).data

    def generate_study_method(self, topic: str, time_available: int, profile: StudentProfile) -> str:
        return self._manager.generate_with_fallback(study_method_prompt(topic, time_available, profile), 300)

    def generate_fun_fact(self, subject: str, current_topic: str) -> str:
        return self._manager.generate_with_fallback(fun_fact_prompt(subject, current_topic), 100)

    def generate_encouragement(self, progress: int, streak: int) -> str:
        return self._manager.generate_with_fallback(encouragement_prompt(progress, streak), 80)

    def generate_micro_quiz(self, concept: str, difficulty: str = "medium") -> Optional[QuizQuestion]:
        """单题小测验；模型输出不可用时返回 None。"""

        if difficulty not in DIFFICULTIES:
            raise ValidationError("INVALID_ARGUMENT", "Difficulty must be easy, medium, or hard")
        spec = GenerationSpec(kind="micro_quiz", validate=_quiz_question, fallback=lambda _raw: None, max_tokens=200)
        return run_generation(spec, micro_quiz_prompt(concept, difficulty), self._manager).data

    def quick_response(self, prompt: str) -> str:
        result = self._manager.chat_with_fallback(
            [ChatMessage(role="user", content=prompt)],
            max_tokens=150,
            temperature=0.7,
        )
        return result.text or "Sure!"

    def onboarding_question(self, stage: int, previous_answers: Optional[Sequence[str]] = None) -> str:
        if 0 <= stage < len(ONBOARDING_QUESTIONS):
            return ONBOARDING_QUESTIONS[stage]
        return self.quick_response(onboarding_followup_prompt(list(previous_answers or [])))

    def chat(
        self,
        message: str,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **meta: Any,
    ) -> Tuple[ChatSession, MessageRecord, MessageRecord]:
        """一轮带历史的对话。

        Args:
            message: 用户输入
            session_id: 会话ID（可选，不提供则创建新会话）
            user_id: 会话归属用户
            meta: 会话/消息元数据（如 topic、title）

        Returns:
            (会话, 用户消息记录, 助手消息记录)
        """
        if not message or not message.strip():
            raise ValidationError("INVALID_ARGUMENT", "Message is required")
        if self._store is None:
            raise ValidationError("NO_STORE", "TutorEngine.chat requires a conversation store")

        start_time = time.time()
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}"}

        if session_id:
            session = self._store.get_session(session_id)
        else:
            session = self._store.create_session(user_id, dict(meta))
            self._log(logging.INFO, "Created chat session", log_ctx, session_id=session.id)
        log_ctx["session_id"] = session.id

        history = self._store.list_messages(session.id)
        context = self._context.get_smart_context(history, system_prompt=load_system_prompt("tutor"))
        chat_messages: List[ChatMessage] = context + [ChatMessage(role="user", content=message)]
        self._log(
            logging.INFO,
            "Selected context",
            log_ctx,
            history_count=len(history),
            context_count=len(context),
        )

        user_rec = MessageRecord(
            id=f"m-{uuid4().hex}",
            session_id=session.id,
            role="user",
            content=message,
            created_at=datetime.now(timezone.utc),
            meta={},
        )
        self._store.add_message(user_rec)

        result = self._manager.chat_with_fallback(
            chat_messages,
            max_tokens=settings.default_max_tokens,
            temperature=self._temperature,
            model=settings.default_model,
        )
        usage_meta: Dict[str, Any] = {}
        if result.usage:
            usage_meta = {
                "prompt_tokens": result.usage.prompt_tokens,
                "completion_tokens": result.usage.completion_tokens,
                "total_tokens": result.usage.total_tokens,
            }

        assistant_rec = MessageRecord(
            id=f"m-{uuid4().hex}",
            session_id=session.id,
            role="assistant",
            content=result.text,
            created_at=datetime.now(timezone.utc),
            meta={"provider": result.provider, "model": result.model, "usage": usage_meta},
        )
        self._store.add_message(assistant_rec)
        self._log(
            logging.INFO,
            "Completed chat turn",
            log_ctx,
            provider=result.provider,
            elapsed_seconds=round(time.time() - start_time, 2),
            **usage_meta,
        )
        return self._store.get_session(session.id), user_rec, assistant_rec

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
