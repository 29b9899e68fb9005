"""提示词构造与系统提示词加载。

- builders: 把年级、主题、难度等结构化参数插入自然语言指令，要求模型输出 JSON。
- load_system_prompt: 按语言(locale) 从 prompts/<locale> 目录读取系统提示词文本，
  用于构造 ChatMessage(role="system")。
"""

from pathlib import Path

from tutor_core.prompts.builders import (
    ONBOARDING_QUESTIONS,
    encouragement_prompt,
    explanation_prompt,
    fun_fact_prompt,
    keyword_prompt,
    micro_quiz_prompt,
    mock_exam_blueprint_prompt,
    onboarding_followup_prompt,
    question_explanation_prompt,
    question_prompt,
    study_method_prompt,
    study_plan_prompt,
)


PROMPTS_DIR = Path(__file__).resolve().parent

_SYSTEM_PROMPT_FILES = {
    "tutor": "tutor_system.md",
    "planner": "planner_system.md",
}


def load_system_prompt(name: str = "tutor", locale: str = "en") -> str:
    """根据用途和语言加载系统提示词文本。

    name 目前支持 "tutor"（对话辅导）与 "planner"（出题/学习计划）。
    """

    try:
        fname = _SYSTEM_PROMPT_FILES[name]
    except KeyError:
        raise KeyError(f"Unknown system prompt: {name!r}") from None
    return (PROMPTS_DIR / locale / fname).read_text(encoding="utf-8").strip()


__all__ = [
    "ONBOARDING_QUESTIONS",
    "encouragement_prompt",
    "explanation_prompt",
    "fun_fact_prompt",
    "keyword_prompt",
    "load_system_prompt",
    "micro_quiz_prompt",
    "mock_exam_blueprint_prompt",
    "onboarding_followup_prompt",
    "question_explanation_prompt",
    "question_prompt",
    "study_method_prompt",
    "study_plan_prompt",
]
