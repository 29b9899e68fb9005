"""Data shapes shared by providers, the dispatcher and the tutoring features.

ChatMessage / ChatRequest / ChatResult mirror the OpenAI-compatible
chat/completions wire format; Groq, Hugging Face and OpenRouter clients all
convert to and from them. StudentProfile, TutorResponse and QuizQuestion are
the payloads of the tutoring features.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List


# chat/completions role field
Role = Literal["system", "user", "assistant"]

Difficulty = Literal["easy", "medium", "hard"]


@dataclass
class ChatMessage:
    """One role-tagged turn. meta is stored with the turn but never sent."""

    role: Role
    content: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatRequest:
    """Request for one provider; model is the logical name resolved per vendor."""

    provider: str  # 逻辑 Provider 名，如 "groq"
    model: str  # 逻辑模型名，如 "tutor-chat"
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    top_p: float = 1.0
    max_tokens: Optional[int] = None


@dataclass
class ChatUsage:
    """Token counts as reported by the vendor."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatChoice:
    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """Parsed reply of one provider call; raw keeps the vendor JSON body."""

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None

    @property
    def text(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


@dataclass
class StudentProfile:
    """学生画像，用于个性化提示词。"""

    grade_level: int
    learning_style: Optional[str] = None
    interests: List[str] = field(default_factory=list)
    past_engagement: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentProfile":
        grade = data.get("grade_level", data.get("gradeLevel", 10))
        return cls(
            grade_level=int(grade),
            learning_style=data.get("learning_style") or data.get("learningStyle"),
            interests=list(data.get("interests") or []),
            past_engagement=int(data.get("past_engagement", data.get("pastEngagement", 0)) or 0),
        )


@dataclass
class TutorResponse:
    explanation: str
    fun_fact: Optional[str] = None
    analogy: Optional[str] = None


@dataclass
class QuizQuestion:
    question: str
    options: List[str]
    correct_answer: str
    explanation: str
