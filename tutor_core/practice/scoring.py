"""练习/模拟考试评分。

SAT 分数换算只是线性近似（正确率 x 1600），仅用于粗略预估。
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


def _normalize(value: Any) -> str:
    return str(value if value is not None else "").strip().upper()


def _answer_text(question: Mapping[str, Any]) -> str:
    """题目的标准答案文本；练习题只有 correctAnswer 下标时取对应选项。"""

    if question.get("answer") is not None:
        return str(question["answer"])
    index = question.get("correctAnswer")
    choices = question.get("choices") or []
    if isinstance(index, int) and 0 <= index < len(choices):
        return str(choices[index])
    return ""


def score_question(
    question: Mapping[str, Any],
    user_answer: Optional[str],
    time_spent_seconds: float = 0,
) -> Dict[str, Any]:
    correct = bool(user_answer) and _normalize(user_answer) == _normalize(_answer_text(question))
    return {
        "qid": question.get("id"),
        "correct": correct,
        "points": 1 if correct else 0,
        "topic": question.get("topic") or "unknown",
        "difficulty": question.get("difficulty") or "medium",
        "time_spent_seconds": time_spent_seconds or 0,
    }


def _bucket_accuracy(buckets: Dict[str, Dict[str, float]]) -> None:
    for bucket in buckets.values():
        bucket["accuracy"] = bucket["correct"] / bucket["total"] if bucket["total"] else 0


def aggregate_results(scored: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    total = len(scored)
    total_correct = 0
    total_time = 0.0
    by_topic: Dict[str, Dict[str, float]] = {}
    by_difficulty: Dict[str, Dict[str, float]] = {}
    for item in scored:
        points = item.get("points", 0)
        total_correct += points
        total_time += item.get("time_spent_seconds") or 0
        for buckets, key in ((by_topic, item.get("topic", "unknown")), (by_difficulty, item.get("difficulty", "medium"))):
            bucket = buckets.setdefault(key, {"correct": 0, "total": 0})
            bucket["correct"] += points
            bucket["total"] += 1
    _bucket_accuracy(by_topic)
    _bucket_accuracy(by_difficulty)
    return {
        "total_questions": total,
        "total_correct": total_correct,
        "accuracy": total_correct / total if total else 0,
        "avg_time_per_question": total_time / total if total else 0,
        "by_topic": by_topic,
        "by_difficulty": by_difficulty,
    }


def approximate_sat_scale(percent: float) -> int:
    p = max(0.0, min(1.0, percent))
    return int(math.floor(p * 1600 + 0.5))


def score_attempt(
    sections: Iterable[Mapping[str, Any]],
    answers: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Any]:
    """按 section 给一次作答打分。

    answers: {question_id: {"answer": "...", "time_spent_seconds": 45}}
    """

    section_list = list(sections)
    scored: List[Dict[str, Any]] = []
    summaries = []
    for section in section_list:
        section_scored = []
        for question in section.get("questions") or []:
            given = answers.get(str(question.get("id"))) or {}
            section_scored.append(score_question(question, given.get("answer"), given.get("time_spent_seconds", 0)))
        scored.extend(section_scored)
        agg = aggregate_results(section_scored)
        summaries.append({
            "name": section.get("name"),
            "question_count": len(section_scored),
            "correct": agg["total_correct"],
            "accuracy": agg["accuracy"],
            "avg_time_per_question": agg["avg_time_per_question"],
        })

    overall = aggregate_results(scored)
    return {
        "scored": scored,
        "summary": {
            **overall,
            "projected_total": approximate_sat_scale(overall["accuracy"]),
            "sections": summaries,
        },
    }
