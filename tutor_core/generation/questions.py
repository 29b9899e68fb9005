"""SAT 题目生成、练习会话与单题讲解。

- generate_questions: 给题库审核用，输出不合格直接报错，不做兜底。
- start_practice_session: 给学生练习用，输出不合格时换成兜底题目。
- explain_question: 单题讲解，输出不合格时换成通用讲解。
"""

import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from tutor_core.domain.exceptions import MalformedOutputError, ValidationError
from tutor_core.flows import GenerationSpec, run_generation
from tutor_core.generation.fallbacks import fallback_practice_questions, fallback_question_explanation
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.prompts import load_system_prompt
from tutor_core.prompts.builders import question_explanation_prompt, question_prompt
from tutor_core.providers.manager import AIProviderManager


_OPTION_PREFIX = re.compile(r"^[a-d]\)\s*", re.IGNORECASE)
_REQUIRED_FIELDS = ("question", "choices", "answer", "explanation")
_PLACEHOLDER_IDS = {"unique_id_or_null", "null", "none"}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _question_list(data: Any) -> List[Dict[str, Any]]:
    if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
        raise MalformedOutputError("Invalid response format from model - missing questions array")
    questions = data["questions"]
    if not questions:
        raise MalformedOutputError("Model returned empty questions array")
    for i, q in enumerate(questions, start=1):
        if not isinstance(q, dict) or any(not q.get(f) for f in _REQUIRED_FIELDS):
            raise MalformedOutputError(
                f"Question {i} is missing required fields (question, choices, answer, or explanation)"
            )
        if not isinstance(q["choices"], list) or len(q["choices"]) < 2:
            raise MalformedOutputError(f"Question {i} has invalid choices array")
    return questions


def match_answer_index(answer: Any, choices: Sequence[Any]) -> int:
    """把模型给出的答案文本映射到 choices 下标。

    先做忽略大小写的精确匹配；失败则去掉 "C) " 这类选项前缀，再做精确或包含匹配；
    仍失败时记录日志并返回 0。
    """

    normalized = str(answer or "").strip().lower()
    options = [str(c).strip().lower() for c in choices]
    if normalized in options:
        return options.index(normalized)

    cleaned = _OPTION_PREFIX.sub("", normalized)
    if cleaned:
        for i, option in enumerate(options):
            if option == cleaned or cleaned in option:
                return i

    logger.warning(
        "Could not match answer to choices",
        extra={"extra": {"answer": str(answer), "choices": [str(c) for c in choices]}},
    )
    return 0


def generate_questions(
    grade: int = 11,
    topic: str = "Algebra: Linear Equations",
    subject: str = "Math",
    difficulty: str = "medium",
    goal: str = "SAT",
    question_count: int = 1,
    manager: Optional[AIProviderManager] = None,
) -> List[Dict[str, Any]]:
    """生成待审核题目，每题补充 id / created_at / status。"""

    if question_count < 1:
        raise ValidationError("INVALID_ARGUMENT", "question_count must be at least 1")

    spec = GenerationSpec(
        kind="questions",
        validate=_question_list,
        max_tokens=2000,
        system_prompt=load_system_prompt("planner"),
        temperature=0.7,
    )
    prompt = question_prompt(grade, topic, difficulty, subject, goal, question_count)
    outcome = run_generation(spec, prompt, manager)

    created_at = datetime.now(timezone.utc).isoformat()
    stamp = _now_ms()
    finalized = []
    for i, q in enumerate(outcome.data):
        qid = q.get("id")
        if not qid or str(qid).lower() in _PLACEHOLDER_IDS:
            qid = f"gen_{stamp}_{i}"
        finalized.append({**q, "id": qid, "created_at": created_at, "status": "pending_review"})
    return finalized


def _practice_question_list(data: Any) -> List[Dict[str, Any]]:
    questions = _question_list(data)
    for i, q in enumerate(questions, start=1):
        if not isinstance(q["answer"], (str, int, float)):
            raise MalformedOutputError(f"Question {i} has an invalid answer")
    return questions


def start_practice_session(
    section: str,
    topic: str,
    question_count: int = 10,
    manager: Optional[AIProviderManager] = None,
) -> Dict[str, Any]:
    """生成一组练习题，答案统一成 choices 下标。"""

    if not section or not topic:
        raise ValidationError("INVALID_ARGUMENT", "Section and topic are required")

    subject = "Math" if section == "math" else "Reading and Writing"
    spec = GenerationSpec(
        kind="practice_questions",
        validate=_practice_question_list,
        fallback=lambda _raw: fallback_practice_questions(section, topic, question_count),
        max_tokens=2000,
        system_prompt=load_system_prompt("planner"),
        temperature=0.7,
    )
    prompt = question_prompt(11, topic, "medium", subject, "SAT", question_count)
    outcome = run_generation(spec, prompt, manager)

    stamp = _now_ms()
    questions = []
    for i, q in enumerate(outcome.data):
        difficulty = q.get("difficulty") if q.get("difficulty") in ("easy", "medium", "hard") else "medium"
        questions.append({
            "id": f"q_{stamp}_{uuid.uuid4().hex[:7]}_{i}",
            "question": q["question"],
            "choices": list(q["choices"]),
            "correctAnswer": match_answer_index(q["answer"], q["choices"]),
            "explanation": q["explanation"],
            "topic": topic,
            "difficulty": difficulty,
        })
    return {
        "section": section,
        "topic": topic,
        "questions": questions,
        "max_score": len(questions),
        "used_fallback": outcome.used_fallback,
    }


def _string_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _explanation(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict) or not isinstance(data.get("summary"), str):
        raise MalformedOutputError("Explanation is missing a summary")
    return {
        "summary": data["summary"],
        "keyPoints": _string_list(data.get("keyPoints")),
        "commonMistakes": _string_list(data.get("commonMistakes")),
        "links": [link for link in data.get("links") or [] if isinstance(link, dict) and link.get("url")],
    }


def explain_question(
    question: str,
    topic: str,
    difficulty: Optional[str] = None,
    manager: Optional[AIProviderManager] = None,
) -> Dict[str, Any]:
    if not question or not topic:
        raise ValidationError("INVALID_ARGUMENT", "Question and topic are required")

    spec = GenerationSpec(
        kind="question_explanation",
        validate=_explanation,
        fallback=lambda _raw: fallback_question_explanation(topic),
        max_tokens=800,
    )
    outcome = run_generation(spec, question_explanation_prompt(question, topic, difficulty), manager)
    return outcome.data
