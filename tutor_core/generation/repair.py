"""模型输出 JSON 的修复链。

LLM 经常在 JSON 前后夹带说明文字、被 max_tokens 截断、或留下尾随逗号。
parse_llm_json 按从严到宽的顺序依次尝试：

1. direct: 整段文本直接 json.loads。
2. braces: 取第一个 "{" 到最后一个 "}" 之间的子串。
3. balanced: 扫描出第一个括号配平的对象（感知 JSON 字符串与转义）。
4. fixed: 字符级修补，去控制字符、补齐缺失的 "}" / "]"、删尾随逗号。
5. tolerant: 交给 json_repair 做容错解析。

全部失败时抛出 MalformedOutputError，由调用方决定是否替换为兜底数据。
各阶段都只在字符串外部做结构性修改，不改写字符串内的反斜杠。
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple

from json_repair import repair_json

from tutor_core.domain.exceptions import MalformedOutputError


STAGES = ("direct", "braces", "balanced", "fixed", "tolerant")

_CLOSERS = {"{": "}", "[": "]"}

# 换行/制表符换成空格，其余 C0/C1 控制字符直接删除
_WHITESPACE_CONTROL = re.compile(r"[\n\r\t]")
_OTHER_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


@dataclass
class ParsedJson:
    """一次成功解析的结果。"""

    data: Any
    stage: str
    text: str


def _outside_strings(text: str) -> Iterator[Tuple[int, str]]:
    """逐个产出不在 JSON 字符串内部的 (下标, 字符)。"""

    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            continue
        yield i, ch


def _ends_inside_string(text: str) -> bool:
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
    return in_string


def extract_json_object(text: str) -> Optional[str]:
    """返回第一个 "{" 到最后一个 "}" 之间的子串（含两端）。"""

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or start >= end:
        return None
    return text[start : end + 1]


def find_balanced_object(text: str) -> Optional[str]:
    """扫描出第一个括号配平的 JSON 对象。"""

    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for i, ch in _outside_strings(text[start:]):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : start + i + 1]
    return None


def balance_closers(text: str) -> str:
    """为每个未闭合的 "{" / "[" 追加对应的闭合符，按嵌套顺序从内到外。

    截断在字符串中间时先补一个引号。多余的闭合符保持原样。
    """

    stack: List[str] = []
    for _, ch in _outside_strings(text):
        if ch in _CLOSERS:
            stack.append(ch)
        elif ch in ("}", "]") and stack and _CLOSERS[stack[-1]] == ch:
            stack.pop()
    suffix = '"' if _ends_inside_string(text) else ""
    return text + suffix + "".join(_CLOSERS[ch] for ch in reversed(stack))


def remove_trailing_commas(text: str) -> str:
    """删除紧跟在 "}" / "]" 之前的逗号（字符串外部）。"""

    drop = set()
    pending: Optional[int] = None
    for i, ch in _outside_strings(text):
        if ch == ",":
            pending = i
        elif ch in ("}", "]"):
            if pending is not None:
                drop.add(pending)
            pending = None
        elif not ch.isspace():
            pending = None
    if not drop:
        return text
    return "".join(ch for i, ch in enumerate(text) if i not in drop)


def strip_control_characters(text: str) -> str:
    return _OTHER_CONTROL.sub("", _WHITESPACE_CONTROL.sub(" ", text))


def fix_json_text(text: str) -> str:
    """字符级修补：去控制字符 -> 补闭合符 -> 删尾随逗号。"""

    fixed = strip_control_characters(text)
    fixed = balance_closers(fixed)
    return remove_trailing_commas(fixed)


def _loads_container(text: Optional[str]) -> Any:
    if not text:
        raise ValueError("empty candidate")
    data = json.loads(text)
    if not isinstance(data, (dict, list)):
        raise ValueError("JSON value is not an object or array")
    return data


def _truncated_candidates(raw: str) -> Iterator[str]:
    """阶段 4/5 的输入：从左到右依次取每个顶层 "{" 起的配平对象。

    遇到未闭合的 "{" 时截到末尾并停止（截断场景）。
    """

    pos = 0
    while True:
        start = raw.find("{", pos)
        if start == -1:
            return
        balanced = find_balanced_object(raw[start:])
        if balanced is None:
            yield raw[start:]
            return
        yield balanced
        pos = start + len(balanced)


def _tolerant(candidate: str) -> str:
    repaired = repair_json(candidate)
    data = _loads_container(repaired)
    if not isinstance(data, dict) or not data:
        raise ValueError("tolerant parse did not recover an object")
    return repaired


def _first_parsable(raw: str, transform: Callable[[str], str]) -> str:
    last_error: Exception = ValueError("no '{' in text")
    for candidate in _truncated_candidates(raw):
        try:
            text = transform(candidate)
            _loads_container(text)
        except (ValueError, RecursionError) as exc:
            last_error = exc
            continue
        return text
    raise last_error


def _stage_candidates(raw: str) -> Iterator[Tuple[str, Callable[[], Optional[str]]]]:
    yield "direct", lambda: raw
    yield "braces", lambda: extract_json_object(raw)
    yield "balanced", lambda: find_balanced_object(raw)
    yield "fixed", lambda: _first_parsable(raw, fix_json_text)
    yield "tolerant", lambda: _first_parsable(raw, _tolerant)


def parse_llm_json(raw: str) -> ParsedJson:
    """按修复链依次尝试解析，返回第一个成功的阶段结果。"""

    if raw is None:
        raise MalformedOutputError("model returned no text")
    errors: List[str] = []
    for stage, build in _stage_candidates(raw):
        try:
            candidate = build()
            data = _loads_container(candidate)
        except (ValueError, RecursionError) as exc:
            # json.JSONDecodeError 是 ValueError 的子类
            errors.append(f"{stage}: {exc}")
            continue
        return ParsedJson(data=data, stage=stage, text=candidate)
    raise MalformedOutputError(
        "No valid JSON found in model response",
        preview=raw[:200],
        errors=errors,
    )


def repair_json_text(raw: str) -> str:
    """返回修复链中第一个可解析的文本；合法 JSON 原样返回。"""

    return parse_llm_json(raw).text


def parse_llm_json_or_default(raw: str, default_factory: Callable[[], Any]) -> Tuple[Any, Optional[str]]:
    """解析失败时返回 default_factory() 的结果，第二项为成功阶段名或 None。"""

    try:
        parsed = parse_llm_json(raw)
    except MalformedOutputError:
        return default_factory(), None
    return parsed.data, parsed.stage
