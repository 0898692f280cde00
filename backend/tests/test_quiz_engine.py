import json

import pytest

from elearning.core.errors import DataIntegrityError, ValidationError
from elearning.services.quiz_engine import grade_answers, parse_quiz_definition, public_quiz_data

from conftest import SAMPLE_QUIZ


def test_parse_accepts_json_text():
    quiz = parse_quiz_definition(json.dumps(SAMPLE_QUIZ))
    assert len(quiz.questions) == 3
    assert quiz.to_storage()[1]["correct_answer_index"] == 0


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "not json",
        json.dumps({"question_text": "x"}),
        json.dumps([]),
        json.dumps([{"question_text": "q", "options": ["a", "b"], "correct_answer_index": 2}]),
        json.dumps([{"question_text": "q", "options": ["a", "b"], "correct_answer_index": -1}]),
        json.dumps([{"question_text": "q", "options": [], "correct_answer_index": 0}]),
        json.dumps([{"question_text": " ", "options": ["a"], "correct_answer_index": 0}]),
        json.dumps([{"question_text": "q", "options": ["a"], "correct_answer_index": True}]),
        json.dumps([{"question_text": "q", "options": ["a"]}]),
    ],
)
def test_parse_rejects_malformed_definitions(raw):
    with pytest.raises(ValidationError):
        parse_quiz_definition(raw)


def test_grade_all_correct():
    result = grade_answers(SAMPLE_QUIZ, [1, 0, 2])
    assert result.correct_answers == 3
    assert result.total_questions == 3
    assert result.score == 100.0


def test_grade_rounds_to_two_decimals():
    result = grade_answers(SAMPLE_QUIZ, [1, 1, 1])
    assert result.correct_answers == 1
    assert result.score == 33.33

    result = grade_answers(SAMPLE_QUIZ, [1, 0, 0])
    assert result.score == 66.67


def test_short_answer_list_scores_missing_as_wrong():
    result = grade_answers(SAMPLE_QUIZ, [1])
    assert result.correct_answers == 1
    assert result.total_questions == 3


def test_extra_answers_are_ignored():
    result = grade_answers(SAMPLE_QUIZ, [1, 0, 2, 0, 0])
    assert result.correct_answers == 3
    assert result.total_questions == 3


def test_malformed_answers_score_wrong_without_failing():
    result = grade_answers(SAMPLE_QUIZ, [None, "abc", {"x": 1}])
    assert result.correct_answers == 0
    assert result.score == 0.0


def test_numeric_strings_and_integral_floats_are_coerced():
    result = grade_answers(SAMPLE_QUIZ, ["1", 0.0, " 2 "])
    assert result.correct_answers == 3


def test_fractional_answers_are_not_truncated():
    result = grade_answers(SAMPLE_QUIZ, [1.7, "0.5", 2])
    assert result.correct_answers == 1


def test_booleans_never_match():
    result = grade_answers(SAMPLE_QUIZ, [True, False, 2])
    assert result.correct_answers == 1


def test_malformed_stored_question_counts_against_total():
    stored = [SAMPLE_QUIZ[0], {"question_text": "broken"}]
    result = grade_answers(stored, [1, 0])
    assert result.correct_answers == 1
    assert result.total_questions == 2
    assert result.score == 50.0


@pytest.mark.parametrize("stored", [[], None, {"a": 1}])
def test_empty_quiz_is_a_data_integrity_error(stored):
    with pytest.raises(DataIntegrityError):
        grade_answers(stored, [])


def test_public_quiz_data_hides_answer_key():
    shown = public_quiz_data(SAMPLE_QUIZ)
    assert len(shown) == 3
    assert all("correct_answer_index" not in q for q in shown)
    assert shown[0]["options"] == ["3", "4", "5"]
