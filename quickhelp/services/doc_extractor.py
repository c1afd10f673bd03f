"""Fetch and normalize candidate documentation for the quick-help popup."""

from __future__ import annotations

import re
from dataclasses import dataclass

from quickhelp.services.completion_engine import (
    CAPABILITY_DOC_BUFFER,
    CAPABILITY_QUICKHELP_STRING,
    Candidate,
    ChoiceStrategy,
    CompletionEngine,
    DocBuffer,
    first_choice,
)

TRUNCATION_MARKER = "\n\n[...]"

# Navigation footers some backends append to their help text.
_FOOTER_LINE = re.compile(r"^\s*(?:\[(?:back|forward|source)\]\s*)+$", re.IGNORECASE)


@dataclass(frozen=True)
class DocResult:
    text: str
    truncated: bool = False


def fetch_doc(
        engine: CompletionEngine,
        candidate: Candidate,
        *,
        max_lines: int | None = None,
        choose: ChoiceStrategy = first_choice,
) -> DocResult | None:
    """Ask the backend for ``candidate`` docs and cut them down to ``max_lines``.

    The ready-made ``quickhelp-string`` capability wins over ``doc-buffer``
    unless it normalizes to nothing. Any buffer involved is released before
    returning.
    """
    for capability in (CAPABILITY_QUICKHELP_STRING, CAPABILITY_DOC_BUFFER):
        response = engine.invoke_capability(candidate, capability, choose=choose)
        buffer, start = _coerce_response(response)
        if buffer is None:
            continue
        try:
            result = extract_from_buffer(buffer, start, max_lines=max_lines)
        finally:
            buffer.release()
        if result is not None:
            return result
    return None


def extract_from_buffer(buffer: DocBuffer, start: int = 0, *, max_lines: int | None = None) -> DocResult | None:
    text = buffer.text
    start = max(0, min(int(start or 0), len(text)))
    lines = text[start:].split("\n")

    limit = _effective_limit(max_lines)
    truncated = False
    if limit is not None and len(lines) > limit:
        truncated = bool("\n".join(lines[limit:]))
        lines = lines[:limit]

    end = len(lines)
    while end > 0 and _is_trailing_noise(lines[end - 1]):
        end -= 1
    body = "\n".join(lines[:end])
    if not body.strip():
        return None
    return DocResult(text=body, truncated=truncated)


def format_for_display(result: DocResult, marker: str = TRUNCATION_MARKER) -> str:
    if result.truncated:
        return result.text + marker
    return result.text


def _coerce_response(response) -> tuple[DocBuffer | None, int]:
    if response is None:
        return None, 0
    if isinstance(response, str):
        if not response:
            return None, 0
        return DocBuffer(response, name="*quickhelp-temp*"), 0
    if isinstance(response, DocBuffer):
        return response, 0
    if isinstance(response, tuple) and response and isinstance(response[0], DocBuffer):
        offset = response[1] if len(response) > 1 else 0
        try:
            return response[0], int(offset or 0)
        except (TypeError, ValueError):
            return response[0], 0
    return None, 0


def _effective_limit(max_lines: int | None) -> int | None:
    if max_lines is None:
        return None
    try:
        value = int(max_lines)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _is_trailing_noise(line: str) -> bool:
    return not line.strip() or bool(_FOOTER_LINE.match(line))
