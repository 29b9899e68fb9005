"""State definition for the structured generation graph."""

from __future__ import annotations

from typing import Any, List, Optional, TypedDict


class GenerationState(TypedDict, total=False):
    """State shared across generation nodes."""

    kind: str
    prompt: str
    max_tokens: int
    raw_text: Optional[str]
    data: Any
    stage: Optional[str]
    valid: bool
    errors: List[str]
    used_fallback: bool
