import json

import pytest

from docquiz.models.quiz import QuizGenerationConfig
from docquiz.utils.languages import get_language_pack
from docquiz.utils.quiz_parser import (
    InvalidJSONError,
    QuizValidationError,
    extract_json_object,
    loads_with_repair,
    parse_quiz_collection,
    parse_summary,
    repair_json,
    sanitize_title,
    validate_question,
)

EN = get_language_pack("en")
ES = get_language_pack("es")


# ==================== EXTRACTION ====================

def test_extract_ignores_surrounding_prose_and_fences():
    raw = 'Here you go:\n```json\n{"a": 1}\n```\nHope this helps!'
    assert extract_json_object(raw) == '{"a": 1}'


def test_extract_stops_at_first_balanced_object_despite_trailing_braces():
    raw = '{"quizzes": []} and then some text with } and { unbalanced }'
    assert extract_json_object(raw) == '{"quizzes": []}'


def test_extract_ignores_braces_inside_strings():
    raw = '{"question": "What does {x} mean?", "n": {"k": "}"}} trailing'
    assert json.loads(extract_json_object(raw))["question"] == "What does {x} mean?"


def test_extract_without_object_raises():
    with pytest.raises(InvalidJSONError):
        extract_json_object("no json here")


def test_extract_unbalanced_raises():
    with pytest.raises(InvalidJSONError):
        extract_json_object('{"a": {"b": 1}')


# ==================== REPAIR ====================

def test_repair_trailing_commas_and_smart_quotes():
    text = '{“a”: [1, 2,], "b": 3,}'
    assert json.loads(repair_json(text)) == {"a": [1, 2], "b": 3}


def test_repair_unquoted_keys_and_values():
    assert loads_with_repair('{title: Basics, "ok": true}') == {"title": "Basics", "ok": True}


def test_repair_unquotes_integer_fields_only():
    repaired = json.loads(repair_json('{"points": "2", "correctAnswerIndex": "1", "correctAnswer": "3.10",}'))
    assert repaired == {"points": 2, "correctAnswerIndex": 1, "correctAnswer": "3.10"}


def test_repair_keeps_numeric_answer_text_verbatim(config):
    raw = (
        '{"quizzes":[{"type":"multiple_choice","questions":[{"question":"pi to 2dp?",'
        '"options":["3.10","3.14","3.41","4.13"],"correctAnswer":"3.10",}]}]}'
    )
    question = parse_quiz_collection(raw, config).quizzes[0].questions[0]
    assert question.correctAnswer == "3.10"
    assert question.options == ["3.10", "3.14", "3.41", "4.13"]
    assert question.correctAnswerIndex == 0


def test_loads_with_repair_fails_after_single_pass():
    with pytest.raises(InvalidJSONError):
        loads_with_repair('{"a": [1, 2}')


def test_valid_json_is_not_repaired():
    assert loads_with_repair('{"text": "a, b: c"}') == {"text": "a, b: c"}


# ==================== QUESTIONS ====================

def test_mc_requires_four_options():
    item = {"question": "Q?", "options": ["A", "B", "C"], "correctAnswer": "A"}
    assert validate_question(item, "multiple_choice", EN, 1) is None


def test_mc_answer_must_match_an_option_verbatim():
    item = {"question": "Q?", "options": ["A", "B", "C", "D"], "correctAnswer": "a"}
    assert validate_question(item, "multiple_choice", EN, 1) is None


def test_mc_question_defaults():
    item = {"question": "Q?", "options": ["A", "B", "C", "D"], "correctAnswer": "C"}
    question = validate_question(item, "multiple_choice", EN, 3)
    assert question.questionId == 3
    assert question.correctAnswerIndex == 2
    assert question.points == 1
    assert question.explanation == EN.no_explanation
    assert question.skillCategory == "factual_recall"
    assert question.topicArea == "general"
    assert question.strength == EN.default_strength


def test_tf_options_are_canonical_and_json_booleans_map_to_tokens():
    item = {"question": "The sky is blue.", "options": ["yes", "no"], "correctAnswer": False}
    question = validate_question(item, "true_false", EN, 1)
    assert question.options == ["True", "False"]
    assert question.correctAnswer == "False"
    assert question.correctAnswerIndex == 1


def test_tf_uses_language_tokens():
    item = {"question": "El cielo es azul.", "correctAnswer": "Verdadero"}
    question = validate_question(item, "true_false", ES, 1)
    assert question.options == ["Verdadero", "Falso"]
    assert question.correctAnswerIndex == 0


def test_tf_rejects_unknown_answer():
    item = {"question": "Statement.", "correctAnswer": "Maybe"}
    assert validate_question(item, "true_false", EN, 1) is None


def test_fill_blank_has_no_options():
    item = {"question": "The powerhouse of the cell is the ____.", "options": ["x"], "correctAnswer": "mitochondria"}
    question = validate_question(item, "fill_blank", EN, 1)
    assert question.options == []
    assert question.correctAnswerIndex == -1


def test_question_without_text_is_dropped():
    assert validate_question({"correctAnswer": "A"}, "fill_blank", EN, 1) is None
    assert validate_question("not a dict", "fill_blank", EN, 1) is None


# ==================== TITLES ====================

def test_sanitize_title_strips_disallowed_characters():
    assert sanitize_title("Cells <script> & 🧬 Basics!", EN, "medium", "multiple_choice") == "Cells script Basics!"


def test_sanitize_title_default_when_empty():
    assert sanitize_title("🧬🧬", EN, "hard", "true_false") == "Hard True/False Quiz"
    assert sanitize_title(None, EN, "easy", "multiple_choice") == "Easy Multiple Choice Quiz"


def test_sanitize_title_keeps_language_script():
    assert sanitize_title("Biología celular", ES, "medium", "multiple_choice") == "Biología celular"


def test_sanitize_title_is_capped():
    assert len(sanitize_title("a" * 500, EN, "medium", "multiple_choice")) == 200


# ==================== COLLECTIONS ====================

def test_parse_collection(collection_response, config):
    parsed = parse_quiz_collection(collection_response(), config)
    assert [q.type for q in parsed.quizzes] == ["multiple_choice", "true_false"]
    assert parsed.question_count == 20
    assert parsed.droppedQuizzes == 0
    assert [q.questionId for q in parsed.quizzes[0].questions] == list(range(1, 11))


def test_invalid_questions_are_dropped_and_ids_stay_contiguous(config):
    raw = json.dumps({"quizzes": [{
        "type": "multiple_choice",
        "questions": [
            {"question": "Q1", "options": ["A", "B", "C", "D"], "correctAnswer": "A"},
            {"question": "Q2", "options": ["A", "B"], "correctAnswer": "A"},
            {"question": "Q3", "options": ["A", "B", "C", "D"], "correctAnswer": "D"},
        ],
    }]})
    parsed = parse_quiz_collection(raw, config)
    quiz = parsed.quizzes[0]
    assert [q.questionId for q in quiz.questions] == [1, 2]
    assert parsed.droppedQuestions == 1
    assert quiz.estimatedTime == 3


def test_missing_type_falls_back_to_requested_order(config):
    raw = json.dumps({"quizzes": [
        {"questions": [{"question": "Q", "options": ["A", "B", "C", "D"], "correctAnswer": "B"}]},
        {"questions": [{"question": "S", "correctAnswer": "true"}]},
    ]})
    parsed = parse_quiz_collection(raw, config)
    assert [q.type for q in parsed.quizzes] == ["multiple_choice", "true_false"]


def test_single_quiz_object_is_accepted(config):
    raw = json.dumps({"type": "true_false", "questions": [{"question": "S", "correctAnswer": "False"}]})
    parsed = parse_quiz_collection(raw, config)
    assert len(parsed.quizzes) == 1


def test_zero_surviving_quizzes_raises(config):
    raw = json.dumps({"quizzes": [
        {"type": "multiple_choice", "questions": [{"question": "Q", "options": ["A"], "correctAnswer": "A"}]},
        {"type": "true_false", "questions": []},
    ]})
    with pytest.raises(QuizValidationError):
        parse_quiz_collection(raw, config)


def test_garbage_response_raises_invalid_json(config):
    with pytest.raises(InvalidJSONError):
        parse_quiz_collection("I cannot help with that.", config)
    with pytest.raises(InvalidJSONError):
        parse_quiz_collection("   ", config)


def test_parse_collection_in_markdown_with_trailing_prose(collection_response, config):
    raw = "```json\n" + collection_response(mc_count=2, tf_count=2) + "\n```\nLet me know if you need more {quizzes}."
    parsed = parse_quiz_collection(raw, config)
    assert parsed.question_count == 4


def test_spanish_config_uses_spanish_tokens():
    config = QuizGenerationConfig(question_types=["true_false"], questions_per_quiz=1, language="es")
    raw = json.dumps({"quizzes": [{"type": "true_false", "questions": [{"question": "S", "correctAnswer": True}]}]})
    question = parse_quiz_collection(raw, config).quizzes[0].questions[0]
    assert question.correctAnswer == "Verdadero"


# ==================== SUMMARY ====================

def test_parse_summary(summary_response):
    analysis = parse_summary(summary_response)
    assert analysis.summary.startswith("The document")
    assert len(analysis.keyPoints) == 2
    assert analysis.topics == ["Cell biology", "Genetics"]


def test_parse_summary_requires_text():
    with pytest.raises(QuizValidationError):
        parse_summary('{"summary": "  ", "keyPoints": []}')
