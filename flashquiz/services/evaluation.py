"""Evaluation protocol: request building and tolerant parsing of evaluator output.

Models are asked for bare JSON but regularly wrap it in prose or markdown
fences, or leave trailing commas behind. The helpers here find the first
balanced JSON object in such text and decode it into a ``Judgment``.
"""

from __future__ import annotations

import itertools
import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from flashquiz.models import EvaluationRequest, Judgment, SessionAssessment
from flashquiz.prompts import EVALUATE_ANSWER

log = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
_INVALID_ESCAPE = re.compile(r'\\(?!["\\/bfnrtu])')

_request_ids = itertools.count(1)


class ParseFailure(ValueError):
    """Evaluator output could not be turned into a structured result."""

    def __init__(self, reason: str, raw: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


def build_request(
    question: str, reference: str, user_answer: str, flashcard_index: int = 0
) -> EvaluationRequest:
    """Create a request with a fresh, monotonically increasing id."""
    return EvaluationRequest(
        id=next(_request_ids),
        flashcard_index=flashcard_index,
        question=question,
        reference_answer=reference,
        user_answer=user_answer,
    )


def build_prompt(question: str, reference: str, user_answer: str) -> str:
    return EVALUATE_ANSWER.format(
        question=question, correct_answer=reference, user_answer=user_answer
    )


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede ``}`` or ``]`` outside of strings."""
    out: list[str] = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == ",":
            rest = text[index + 1 :].lstrip()
            if rest[:1] in ("}", "]"):
                continue
        out.append(char)
    return "".join(out)


def clean_json_response(response: str) -> str | None:
    """Extract the JSON object from noisy model output, or None if there is none."""
    cleaned = response.strip()
    fenced = _FENCE.search(cleaned)
    if fenced:
        candidate = find_json_object(fenced.group(1))
        if candidate is not None:
            return strip_trailing_commas(candidate)
    candidate = find_json_object(cleaned)
    if candidate is None:
        return None
    return strip_trailing_commas(candidate)


def _decode(raw: str, what: str) -> dict[str, Any]:
    cleaned = clean_json_response(raw)
    if cleaned is None:
        raise ParseFailure(f"no JSON object found in {what}", raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Models often emit stray backslashes; escape them and retry once.
        try:
            data = json.loads(_INVALID_ESCAPE.sub(r"\\\\", cleaned))
        except json.JSONDecodeError as e:
            raise ParseFailure(f"invalid JSON in {what}: {e}", raw) from e
    if not isinstance(data, dict):
        raise ParseFailure(f"expected a JSON object in {what}", raw)
    return data


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "value"
        problems.append(f"{field}: {item['msg']}")
    return "; ".join(problems)


def parse_response(raw_text: str) -> Judgment:
    """Decode evaluator output into a Judgment or raise ParseFailure."""
    data = _decode(raw_text, "evaluator response")
    try:
        judgment = Judgment.model_validate(data)
    except ValidationError as e:
        raise ParseFailure(f"unexpected evaluator response: {_describe(e)}", raw_text) from e
    log.debug(f"Parsed judgment: score={judgment.correctness_score:.2f}")
    return judgment


def parse_session_assessment(raw_text: str) -> SessionAssessment:
    data = _decode(raw_text, "session assessment")
    try:
        return SessionAssessment.model_validate(data)
    except ValidationError as e:
        raise ParseFailure(f"unexpected session assessment: {_describe(e)}", raw_text) from e
