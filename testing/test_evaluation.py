"""Tests for evaluator request building and response parsing."""

import pytest

from flashquiz.models import EvaluationOutcome, Judgment
from flashquiz.services.evaluation import (
    ParseFailure,
    build_prompt,
    build_request,
    clean_json_response,
    find_json_object,
    parse_response,
    parse_session_assessment,
    strip_trailing_commas,
)

VALID = (
    '{"is_correct": true, "correctness_score": 0.9, "corrections": [], '
    '"explanation": "Good answer", "suggestions": ["Mention ownership"]}'
)


def test_parse_plain_json():
    judgment = parse_response(VALID)

    assert judgment.is_correct
    assert judgment.correctness_score == 0.9
    assert judgment.suggestions == ["Mention ownership"]


def test_parse_fenced_json_with_surrounding_prose():
    raw = (
        "Sure! Here is my evaluation:\n```json\n"
        + VALID
        + "\n```\nLet me know if you need more {details}."
    )

    judgment = parse_response(raw)

    assert judgment.explanation == "Good answer"


def test_parse_tolerates_trailing_commas():
    raw = (
        '{"is_correct": false, "correctness_score": 0.4, '
        '"corrections": ["Borrowing is not moving",], "explanation": "Close",}'
    )

    judgment = parse_response(raw)

    assert judgment.corrections == ["Borrowing is not moving"]
    assert judgment.suggestions == []


def test_braces_inside_strings_do_not_end_object():
    raw = (
        'Result: {"is_correct": true, "correctness_score": 1, '
        '"explanation": "use {} or \\"}\\" freely"} trailing text'
    )

    judgment = parse_response(raw)

    assert judgment.explanation == 'use {} or "}" freely'


def test_invalid_escapes_are_repaired():
    raw = r'{"is_correct": true, "correctness_score": 0.8, "explanation": "match \d+ digits"}'

    judgment = parse_response(raw)

    assert judgment.explanation == r"match \d+ digits"


def test_score_is_clamped_and_null_lists_become_empty():
    high = parse_response('{"is_correct": true, "correctness_score": 1.7, "corrections": null}')
    low = parse_response('{"is_correct": false, "correctness_score": -0.2}')

    assert high.correctness_score == 1.0
    assert high.corrections == []
    assert low.correctness_score == 0.0


def test_no_json_object_raises_parse_failure():
    with pytest.raises(ParseFailure) as excinfo:
        parse_response("I think the answer is mostly right.")

    assert "no JSON object" in excinfo.value.reason
    assert excinfo.value.raw == "I think the answer is mostly right."


def test_missing_required_field_raises_parse_failure():
    with pytest.raises(ParseFailure) as excinfo:
        parse_response('{"correctness_score": 0.5}')

    assert "is_correct" in excinfo.value.reason


def test_find_json_object_skips_unbalanced_prefix():
    assert find_json_object('oops { "a": 1') is None
    assert find_json_object('{ broken {"a": {"b": 2}} done') == '{"a": {"b": 2}}'


def test_strip_trailing_commas_leaves_strings_alone():
    assert strip_trailing_commas('{"a": "x,}", "b": [1, 2,],}') == '{"a": "x,}", "b": [1, 2]}'


def test_clean_json_response_without_object():
    assert clean_json_response("```json\n```") is None


def test_parse_session_assessment():
    raw = """Here you go:
```json
{
  "grade_percentage": 120,
  "mastery_level": "Advanced",
  "overall_feedback": "Strong session.",
  "strengths": ["Ownership"],
  "weaknesses": [],
  "suggestions": ["Review lifetimes",]
}
```"""

    assessment = parse_session_assessment(raw)

    assert assessment.grade_percentage == 100.0
    assert assessment.mastery_level == "Advanced"
    assert assessment.suggestions == ["Review lifetimes"]


def test_build_request_ids_increase():
    first = build_request("Q", "A", "answer", flashcard_index=2)
    second = build_request("Q", "A", "answer", flashcard_index=2)

    assert second.id > first.id
    assert first.flashcard_index == 2


def test_build_prompt_includes_all_fields():
    prompt = build_prompt("What is 2+2?", "4", "four")

    assert "Question: What is 2+2?" in prompt
    assert "Correct Answer: 4" in prompt
    assert "User's Answer: four" in prompt


def test_judgment_label():
    assert Judgment(is_correct=True, correctness_score=0.9).label() == "Correct"
    assert Judgment(is_correct=False, correctness_score=0.6).label() == "Partially Correct"
    assert Judgment(is_correct=False, correctness_score=0.5).label() == "Incorrect"


def test_outcome_reaches_exactly_one_terminal_state():
    outcome = EvaluationOutcome.pending(build_request("Q", "A", "a"))

    done = outcome.timed_out("too slow")

    assert outcome.is_pending
    assert done.is_terminal
    with pytest.raises(ValueError):
        done.failed("again")
