"""学习计划与模拟考试蓝图生成。"""

import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from tutor_core.domain.exceptions import MalformedOutputError, ValidationError
from tutor_core.flows import GenerationSpec, run_generation
from tutor_core.generation.fallbacks import fallback_study_plan
from tutor_core.prompts import load_system_prompt
from tutor_core.prompts.builders import mock_exam_blueprint_prompt, study_plan_prompt
from tutor_core.providers.manager import AIProviderManager


def _plan(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict) or not isinstance(data.get("weeks"), list) or not data["weeks"]:
        raise MalformedOutputError("Study plan has no weeks")
    for i, week in enumerate(data["weeks"], start=1):
        if not isinstance(week, dict) or not isinstance(week.get("daily_plan"), list):
            raise MalformedOutputError(f"Week {i} has no daily_plan")
        week.setdefault("week", i)
        week.setdefault("focus", "")
        week.setdefault("resources", [])
    data.setdefault("tips", [])
    return data


def _tasks(week: Dict[str, Any]) -> List[str]:
    return [str(item.get("task", "")) for item in week.get("daily_plan", []) if isinstance(item, dict)]


def _is_practice_test(task: str) -> bool:
    return "mock" in task or "test" in task


def summarize_study_plan(plan: Dict[str, Any], target_date: Optional[str] = None) -> Dict[str, Any]:
    """把模型生成的周计划折叠成 focus_areas / weekly_schedule / resource_recommendations。"""

    weeks = plan.get("weeks") or []
    first_focus = str(weeks[0].get("focus", "")) if weeks else ""

    def focus(keyword: str, default: str) -> List[str]:
        return [first_focus] if keyword in first_focus else [default]

    schedule: Dict[str, Dict[str, Any]] = {}
    for index, week in enumerate(weeks, start=1):
        tasks = _tasks(week)
        schedule[str(index)] = {
            "math": [t for t in tasks if "Math" in t],
            "reading": [t for t in tasks if "Reading" in t],
            "writing": [t for t in tasks if "Writing" in t],
            "practice_test": any(_is_practice_test(t) for t in tasks),
        }

    resources = [r for week in weeks for r in week.get("resources", []) if isinstance(r, dict)]
    return {
        "timeline": "custom" if target_date else "6-month",
        "focus_areas": {
            "math": focus("Math", "Math Fundamentals"),
            "reading": focus("Reading", "Reading Comprehension"),
            "writing": focus("Writing", "Writing Basics"),
        },
        "weekly_schedule": schedule,
        "resource_recommendations": {
            "books": [r["title"] for r in resources if "book" in str(r.get("title", "")).lower()],
            "websites": [r["url"] for r in resources if r.get("url")],
            "practice_tests": [t for week in weeks for t in _tasks(week) if _is_practice_test(t)],
        },
    }


def generate_study_plan(
    student_name: str = "Student",
    grade: int = 10,
    goals: Optional[Sequence[str]] = None,
    baseline_scores: Optional[Dict[str, int]] = None,
    weekly_hours: int = 6,
    target_date: Optional[str] = None,
    learning_style: str = "mixed",
    manager: Optional[AIProviderManager] = None,
) -> Dict[str, Any]:
    goals = list(goals or ["Academic Improvement"])
    if weekly_hours <= 0:
        raise ValidationError("INVALID_ARGUMENT", "weekly_hours must be positive")

    spec = GenerationSpec(
        kind="study_plan",
        validate=_plan,
        fallback=lambda _raw: fallback_study_plan(grade, weekly_hours),
        max_tokens=2500,
        system_prompt=load_system_prompt("planner"),
        temperature=0.7,
    )
    prompt = study_plan_prompt(student_name, grade, goals, baseline_scores, weekly_hours, target_date, learning_style)
    outcome = run_generation(spec, prompt, manager)
    return {
        "plan": outcome.data,
        "summary": summarize_study_plan(outcome.data, target_date),
        "used_fallback": outcome.used_fallback,
    }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _blueprint(data: Any) -> List[Dict[str, Any]]:
    if not isinstance(data, dict) or not isinstance(data.get("sections"), list) or not data["sections"]:
        raise MalformedOutputError("Blueprint has no sections")
    sections = []
    for i, section in enumerate(data["sections"], start=1):
        if not isinstance(section, dict) or not section.get("name"):
            raise MalformedOutputError(f"Section {i} has no name")
        count = int(section.get("question_count") or 0)
        ratio = section.get("difficulty_ratio") or {"medium": 1.0}
        sections.append({
            "name": section["name"],
            "subject": section.get("subject") or section["name"],
            "topics": list(section.get("topics") or []),
            "question_count": count,
            "time_limit_minutes": int(section.get("time_limit_minutes") or 0),
            "difficulty_counts": {level: _round_half_up(count * float(r)) for level, r in ratio.items()},
        })
    return sections


def generate_mock_blueprint(
    goal: str = "SAT",
    grade: int = 11,
    manager: Optional[AIProviderManager] = None,
) -> Dict[str, Any]:
    """生成模拟考试结构；蓝图不合格时报错（没有通用兜底）。"""

    spec = GenerationSpec(
        kind="mock_blueprint",
        validate=_blueprint,
        max_tokens=1500,
        system_prompt=load_system_prompt("planner"),
        temperature=0.7,
    )
    outcome = run_generation(spec, mock_exam_blueprint_prompt(goal), manager)
    sections = outcome.data
    return {
        "id": f"mock_{int(time.time() * 1000)}",
        "goal": goal,
        "grade": grade,
        "sections": sections,
        "total_time": sum(s["time_limit_minutes"] for s in sections),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
