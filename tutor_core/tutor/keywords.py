import re
from typing import List, Optional

from tutor_core.domain.exceptions import BusinessError
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.prompts.builders import keyword_prompt
from tutor_core.providers.manager import AIProviderManager

_TERM = re.compile(r"\b([A-Z][a-z]{3,}|[a-z]{4,})\b")
_STOP_WORDS = {
    "that", "this", "with", "from", "they", "have", "been", "were", "said", "each",
    "which", "their", "time", "will", "about", "would", "there", "could", "other",
}
MAX_KEYWORDS = 5


class KeywordExtractor:
    """从学生文本中提取关键术语：优先走 LLM，失败或无 Provider 时退回正则。"""

    def __init__(self, manager: Optional[AIProviderManager] = None):
        self._manager = manager or AIProviderManager()

    def extract_keywords(self, text: str, grade_level: int) -> List[str]:
        if self._manager.get_available_providers():
            try:
                keywords = self.extract_with_llm(text, grade_level)
            except BusinessError as exc:
                logger.info(
                    "LLM keyword extraction failed, falling back to regex",
                    extra={"extra": {"error_code": exc.code}},
                )
            else:
                if keywords:
                    logger.info("Keywords extracted with LLM", extra={"extra": {"keywords": keywords}})
                    return keywords
        return self.extract_with_regex(text)

    def extract_with_llm(self, text: str, grade_level: int) -> List[str]:
        response = self._manager.generate_with_fallback(keyword_prompt(text, grade_level), 50)
        terms = [k.strip() for k in response.split(",")]
        return [k for k in terms if 2 < len(k) < 20][:MAX_KEYWORDS]

    @staticmethod
    def extract_with_regex(text: str) -> List[str]:
        seen: List[str] = []
        for term in _TERM.findall(text or ""):
            if term not in seen and term.lower() not in _STOP_WORDS:
                seen.append(term)
        logger.info("Regex-extracted keywords", extra={"extra": {"keywords": seen[:MAX_KEYWORDS]}})
        return seen[:MAX_KEYWORDS]
