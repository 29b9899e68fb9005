"""High-level entry point for structured generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from tutor_core.flows.graph import GenerationSpec, build_graph
from tutor_core.flows.state import GenerationState
from tutor_core.providers.manager import AIProviderManager


@dataclass
class GenerationOutcome:
    """结构化生成的结果。

    - data: 校验后的数据，或兜底数据。
    - stage: 修复链中成功解析的阶段名；使用兜底数据时为 None。
    - used_fallback: 是否替换成了手写兜底数据。
    """

    data: Any
    stage: Optional[str]
    used_fallback: bool
    provider_text: str
    errors: List[str] = field(default_factory=list)


def run_generation(
    spec: GenerationSpec,
    prompt: str,
    manager: Optional[AIProviderManager] = None,
    max_tokens: Optional[int] = None,
) -> GenerationOutcome:
    """Execute the generation graph and return the outcome.

    Args:
        spec: 本次生成的类型、校验与兜底定义
        prompt: 完整提示词
        manager: Provider 调度器（默认按 settings 新建）
        max_tokens: 覆盖 spec.max_tokens
    """

    manager = manager or AIProviderManager()
    graph = build_graph(manager, spec)
    state: GenerationState = {
        "kind": spec.kind,
        "prompt": prompt,
        "max_tokens": max_tokens or spec.max_tokens,
        "raw_text": None,
        "data": None,
        "stage": None,
        "valid": False,
        "errors": [],
        "used_fallback": False,
    }
    result = graph.invoke(state)
    used_fallback = bool(result.get("used_fallback"))
    return GenerationOutcome(
        data=result.get("data"),
        stage=None if used_fallback else result.get("stage"),
        used_fallback=used_fallback,
        provider_text=result.get("raw_text") or "",
        errors=list(result.get("errors") or []),
    )
