"""LangGraph construction and node implementations for structured generation.

generate -> parse -> validate -> finalize, with parse/validate failures routed
to the fallback node. Provider exhaustion raised by the generate node is not
caught here; only malformed model output is ever replaced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from tutor_core.domain.exceptions import MalformedOutputError
from tutor_core.domain.models import ChatMessage
from tutor_core.flows.state import GenerationState
from tutor_core.generation.repair import parse_llm_json
from tutor_core.infrastructure.logging.logger import logger
from tutor_core.providers.manager import AIProviderManager


@dataclass
class GenerationSpec:
    """One kind of structured generation.

    validate: receives parsed JSON, returns the normalized payload or raises
        MalformedOutputError / ValueError / KeyError / TypeError.
    fallback: builds a canned payload from the raw model text; None means a
        malformed response is an error for this kind.
    system_prompt: when set, the prompt is sent as a user turn after this
        system message.
    """

    kind: str
    validate: Callable[[Any], Any]
    fallback: Optional[Callable[[str], Any]] = None
    max_tokens: int = 2000
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None


def generate_node(state: GenerationState, manager: AIProviderManager, spec: GenerationSpec) -> GenerationState:
    logger.info("generate_node.start", extra={"extra": {"kind": state["kind"], "max_tokens": state["max_tokens"]}})
    if spec.system_prompt:
        messages = [
            ChatMessage(role="system", content=spec.system_prompt),
            ChatMessage(role="user", content=state["prompt"]),
        ]
        result = manager.chat_with_fallback(messages, state["max_tokens"], spec.temperature)
        state["raw_text"] = result.text
    else:
        state["raw_text"] = manager.generate_with_fallback(state["prompt"], state["max_tokens"])
    return state


def parse_node(state: GenerationState) -> GenerationState:
    try:
        parsed = parse_llm_json(state.get("raw_text") or "")
    except MalformedOutputError as exc:
        state["data"] = None
        state["stage"] = None
        state.setdefault("errors", []).append(f"parse: {exc.message}")
        logger.info("parse_node.failed", extra={"extra": {"kind": state["kind"], "errors": exc.extra.get("errors")}})
        return state
    state["data"] = parsed.data
    state["stage"] = parsed.stage
    logger.info("parse_node.ok", extra={"extra": {"kind": state["kind"], "stage": parsed.stage}})
    return state


def validate_node(state: GenerationState, spec: GenerationSpec) -> GenerationState:
    try:
        state["data"] = spec.validate(state["data"])
        state["valid"] = True
    except MalformedOutputError as exc:
        state["valid"] = False
        state.setdefault("errors", []).append(f"validate: {exc.message}")
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        state["valid"] = False
        state.setdefault("errors", []).append(f"validate: {exc}")
    return state


def fallback_node(state: GenerationState, spec: GenerationSpec) -> GenerationState:
    errors = state.get("errors") or []
    if spec.fallback is None:
        message = f"Invalid {spec.kind} response from model"
        if errors:
            message = f"{message}: {errors[-1]}"
        raise MalformedOutputError(
            message,
            kind=spec.kind,
            errors=errors,
            preview=(state.get("raw_text") or "")[:200],
        )
    logger.warning(
        "fallback_node.substituted",
        extra={"extra": {"kind": spec.kind, "last_error": errors[-1] if errors else None}},
    )
    state["data"] = spec.fallback(state.get("raw_text") or "")
    state["used_fallback"] = True
    return state


def finalize_node(state: GenerationState) -> GenerationState:
    logger.info(
        "finalize_node",
        extra={"extra": {"kind": state["kind"], "stage": state.get("stage"), "used_fallback": state.get("used_fallback", False)}},
    )
    return state


def parse_router(state: GenerationState) -> str:
    return "validate" if state.get("data") is not None else "fallback"


def validate_router(state: GenerationState) -> str:
    return "finalize" if state.get("valid") else "fallback"


def build_graph(manager: AIProviderManager, spec: GenerationSpec) -> CompiledStateGraph:
    graph = StateGraph(GenerationState)
    graph.add_node("generate", lambda s: generate_node(s, manager, spec))
    graph.add_node("parse", parse_node)
    graph.add_node("validate", lambda s: validate_node(s, spec))
    graph.add_node("fallback", lambda s: fallback_node(s, spec))
    graph.add_node("finalize", finalize_node)
    graph.set_entry_point("generate")
    graph.add_edge("generate", "parse")
    graph.add_conditional_edges("parse", parse_router, {"validate": "validate", "fallback": "fallback"})
    graph.add_conditional_edges("validate", validate_router, {"finalize": "finalize", "fallback": "fallback"})
    graph.add_edge("fallback", "finalize")
    graph.add_edge("finalize", END)
    return graph.compile()
