from tutor_core.tutor.engine import TutorEngine
from tutor_core.tutor.keywords import KeywordExtractor

__all__ = ["KeywordExtractor", "TutorEngine"]
