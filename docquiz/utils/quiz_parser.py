"""
Quiz Parser
Parses and validates AI-generated quiz and summary JSON responses.

Untrusted AI text goes through three steps:
1. isolate the first balanced JSON object (string-aware brace matching)
2. json.loads, with a single repair pass on failure
3. per-type validation; invalid questions are dropped, quizzes left with
   no questions are dropped, and an empty result is an error
"""
import json
import math
import re
import logging
from typing import List, Dict, Any, Optional, Tuple

from docquiz.core.exceptions import DocQuizError
from docquiz.models.quiz import (
    QuizGenerationConfig,
    Question,
    GeneratedQuiz,
    ParsedQuizCollection,
    DocumentAnalysis,
    QUESTION_TYPES,
    SKILL_CATEGORIES,
)
from docquiz.utils.languages import LanguagePack, get_language_pack
from docquiz.utils.quiz_prompt import TYPE_LABELS

logger = logging.getLogger(__name__)


class QuizParseError(DocQuizError):
    """Base exception for quiz parsing errors"""
    kind = "parse-failure"
    status_code = 502


class InvalidJSONError(QuizParseError):
    """Raised when JSON cannot be parsed even after repair"""
    pass


class QuizValidationError(QuizParseError):
    """Raised when no quiz survives structural validation"""
    kind = "validation-failure"


MC_OPTIONS_COUNT = 4
MAX_TITLE_LENGTH = 200
DEFAULT_TOPIC_AREA = "general"
DEFAULT_SKILL_CATEGORY = "factual_recall"

TYPE_ALIASES = {
    "multiple_choice": "multiple_choice",
    "multiple-choice": "multiple_choice",
    "multiplechoice": "multiple_choice",
    "mcq": "multiple_choice",
    "true_false": "true_false",
    "true-false": "true_false",
    "truefalse": "true_false",
    "boolean": "true_false",
    "fill_blank": "fill_blank",
    "fill-blank": "fill_blank",
    "fill_in_blank": "fill_blank",
    "fill_in_the_blank": "fill_blank",
    "fill-in-the-blank": "fill_blank",
}

SMART_QUOTES = {
    "“": '"', "”": '"', "„": '"', "‟": '"',
    "‘": "'", "’": "'", "‚": "'", "‛": "'",
}

_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_UNQUOTED_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_UNQUOTED_VALUE = re.compile(r"(:\s*)([A-Za-z_][^,}\]\n\"]*?)(\s*[,}\]\n])")
# Integer fields the model sometimes emits as strings; answer and option text is never touched
_QUOTED_NUMBER = re.compile(
    r"(\"(?:questionId|correctAnswerIndex|points|estimatedTime|passingScore)\"\s*:\s*)\"(-?\d+)\"(\s*[,}\]])"
)
_JSON_LITERALS = {"true", "false", "null"}


# ==================== EXTRACTION ====================

def _strip_markdown(text: str) -> str:
    """Remove markdown code fence markers, keeping their content"""
    return re.sub(r"```[A-Za-z]*", "", text).strip()


def extract_json_object(text: str) -> str:
    """
    Extract the first balanced JSON object from free-form text

    Braces inside JSON string literals are ignored, so trailing prose with
    unbalanced braces does not extend or truncate the match.

    Args:
        text: Raw AI response

    Returns:
        The JSON object substring

    Raises:
        InvalidJSONError: If no object start or no matching close brace
    """
    text = _strip_markdown(text or "")
    start = text.find("{")
    if start == -1:
        raise InvalidJSONError("No JSON object found in response")

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
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
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    raise InvalidJSONError("Unbalanced braces in JSON object")


# ==================== REPAIR ====================

def _quote_bare_value(match: "re.Match") -> str:
    prefix, value, suffix = match.group(1), match.group(2).strip(), match.group(3)
    if value in _JSON_LITERALS:
        return match.group(0)
    return f'{prefix}{json.dumps(value, ensure_ascii=False)}{suffix}'


def repair_json(text: str) -> str:
    """
    Apply the repair pass for common AI JSON malformations

    Best effort: can corrupt valid JSON whose strings contain ``, x:``
    sequences, which is why it only runs after a strict parse failed.
    """
    for smart, plain in SMART_QUOTES.items():
        text = text.replace(smart, plain)
    text = _TRAILING_COMMA.sub(r"\1", text)
    text = _UNQUOTED_KEY.sub(r'\1"\2":', text)
    text = _UNQUOTED_VALUE.sub(_quote_bare_value, text)
    text = _QUOTED_NUMBER.sub(r"\1\2\3", text)
    return text


def loads_with_repair(text: str) -> Any:
    """
    Parse JSON, retrying exactly once after the repair pass

    Raises:
        InvalidJSONError: If the repaired text still does not parse
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug(f"Strict parse failed: {e}. Attempting repair...")

    repaired = repair_json(text)
    try:
        data = json.loads(repaired)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed after repair: {e}")
        raise InvalidJSONError(f"Failed to parse JSON after repair: {e}")

    logger.debug("JSON parse successful after repair")
    return data


def _load_payload(raw_response: str) -> Any:
    if not raw_response or not raw_response.strip():
        raise InvalidJSONError("Empty response received")
    return loads_with_repair(extract_json_object(raw_response))


# ==================== NORMALIZATION HELPERS ====================

def _as_text(value: Any) -> Optional[str]:
    """Scalar to stripped string; JSON booleans keep their JSON spelling"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return None


def _non_empty(value: Any, default: str) -> str:
    text = _as_text(value)
    return text if text else default


def normalize_question_type(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    key = value.strip().lower().replace(" ", "_")
    return TYPE_ALIASES.get(key)


def sanitize_title(
    title: Any,
    pack: LanguagePack,
    difficulty: str,
    quiz_type: str
) -> str:
    """
    Strip characters outside the allow-list from a quiz title

    Allowed: ASCII letters and digits, whitespace, common punctuation and the
    language's own script range.
    """
    default = f"{difficulty.strip().title()} {TYPE_LABELS[quiz_type].title()} Quiz"
    text = _as_text(title)
    if not text:
        return default

    disallowed = re.compile(rf"[^A-Za-z0-9\s\-_.,()\[\]:!?'{pack.script_range}]")
    cleaned = disallowed.sub("", text)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if not cleaned:
        return default
    return cleaned[:MAX_TITLE_LENGTH].rstrip()


# ==================== VALIDATION ====================

def _resolve_options(raw_options: Any, quiz_type: str, pack: LanguagePack) -> Optional[List[str]]:
    if quiz_type == "true_false":
        return [pack.true_token, pack.false_token]
    if quiz_type == "fill_blank":
        return []

    if not isinstance(raw_options, list) or len(raw_options) != MC_OPTIONS_COUNT:
        return None
    options = [_as_text(opt) for opt in raw_options]
    if any(not opt for opt in options):
        return None
    return options


def _resolve_answer(
    answer: str,
    options: List[str],
    quiz_type: str,
    pack: LanguagePack
) -> Optional[Tuple[str, int]]:
    """Return (canonical answer, index) or None if the answer is invalid"""
    if quiz_type == "multiple_choice":
        if answer in options:
            return answer, options.index(answer)
        return None

    if quiz_type == "true_false":
        if answer == "true":
            answer = pack.true_token
        elif answer == "false":
            answer = pack.false_token
        if answer == pack.true_token:
            return answer, 0
        if answer == pack.false_token:
            return answer, 1
        return None

    return answer, -1


def validate_question(
    item: Any,
    quiz_type: str,
    pack: LanguagePack,
    question_id: int
) -> Optional[Question]:
    """
    Validate and normalize one question for the quiz type

    Returns:
        The canonical Question, or None when the question must be dropped
    """
    if not isinstance(item, dict):
        return None

    text = _as_text(item.get("question", item.get("text")))
    if not text:
        return None

    answer = _as_text(item.get("correctAnswer", item.get("answer")))
    if not answer:
        return None

    options = _resolve_options(item.get("options"), quiz_type, pack)
    if options is None:
        return None

    resolved = _resolve_answer(answer, options, quiz_type, pack)
    if resolved is None:
        return None
    correct_answer, correct_index = resolved

    points = item.get("points")
    if isinstance(points, bool) or not isinstance(points, int) or points < 1:
        points = 1

    skill = item.get("skillCategory")
    if skill not in SKILL_CATEGORIES:
        skill = DEFAULT_SKILL_CATEGORY

    return Question(
        questionId=question_id,
        question=text,
        options=options,
        correctAnswer=correct_answer,
        correctAnswerIndex=correct_index,
        explanation=_non_empty(item.get("explanation"), pack.no_explanation),
        points=points,
        skillCategory=skill,
        topicArea=_non_empty(item.get("topicArea"), DEFAULT_TOPIC_AREA),
        strength=_non_empty(item.get("strength"), pack.default_strength),
        weakness=_non_empty(item.get("weakness"), pack.default_weakness),
    )


def _quiz_type_for(item: Dict[str, Any], position: int, config: QuizGenerationConfig) -> str:
    quiz_type = normalize_question_type(item.get("type"))
    if quiz_type in QUESTION_TYPES:
        return quiz_type
    # Quizzes come back in the order they were requested
    if position < len(config.question_types):
        return config.question_types[position]
    return config.question_types[0]


def validate_quiz(
    item: Any,
    position: int,
    config: QuizGenerationConfig,
    pack: LanguagePack
) -> Tuple[Optional[GeneratedQuiz], int]:
    """
    Validate one quiz and its questions

    Returns:
        (quiz or None, number of dropped questions)
    """
    if not isinstance(item, dict):
        return None, 0

    raw_questions = item.get("questions")
    if not isinstance(raw_questions, list) or not raw_questions:
        return None, 0

    quiz_type = _quiz_type_for(item, position, config)

    questions: List[Question] = []
    for raw_question in raw_questions:
        question = validate_question(raw_question, quiz_type, pack, len(questions) + 1)
        if question is not None:
            questions.append(question)

    dropped = len(raw_questions) - len(questions)
    if dropped:
        logger.warning(f"⚠️ Quiz {position + 1} ({quiz_type}): dropped {dropped} invalid question(s)")

    if not questions:
        return None, dropped

    difficulty = _non_empty(item.get("difficulty"), config.difficulty)

    estimated = item.get("estimatedTime")
    if isinstance(estimated, bool) or not isinstance(estimated, int) or estimated < 1:
        estimated = math.ceil(len(questions) * 1.5)

    quiz = GeneratedQuiz(
        title=sanitize_title(item.get("title"), pack, difficulty, quiz_type),
        description=_non_empty(item.get("description"), ""),
        type=quiz_type,
        difficulty=difficulty,
        estimatedTime=estimated,
        questions=questions,
    )
    return quiz, dropped


def parse_quiz_collection(raw_response: str, config: QuizGenerationConfig) -> ParsedQuizCollection:
    """
    Parse and validate a quiz collection from an AI response

    Args:
        raw_response: Raw string response from the AI service
        config: Generation settings the prompt was built with

    Returns:
        ParsedQuizCollection with at least one quiz

    Raises:
        InvalidJSONError: If no JSON object can be extracted or parsed
        QuizValidationError: If no quiz survives validation
    """
    logger.debug(f"Parsing quiz response ({len(raw_response or '')} chars)")
    data = _load_payload(raw_response)

    if not isinstance(data, dict):
        raise QuizValidationError(f"Expected a JSON object, got {type(data).__name__}")

    raw_quizzes = data.get("quizzes")
    if raw_quizzes is None and "questions" in data:
        raw_quizzes = [data]
    if not isinstance(raw_quizzes, list) or not raw_quizzes:
        raise QuizValidationError("Response contains no quizzes")

    pack = get_language_pack(config.language)
    quizzes: List[GeneratedQuiz] = []
    dropped_questions = 0

    for position, item in enumerate(raw_quizzes):
        quiz, dropped = validate_quiz(item, position, config, pack)
        dropped_questions += dropped
        if quiz is not None:
            quizzes.append(quiz)

    if not quizzes:
        raise QuizValidationError(
            f"No valid quizzes: all {len(raw_quizzes)} quiz(zes) failed validation"
        )

    collection = ParsedQuizCollection(
        quizzes=quizzes,
        droppedQuizzes=len(raw_quizzes) - len(quizzes),
        droppedQuestions=dropped_questions,
    )
    logger.info(
        f"✅ Parsed {len(quizzes)} quiz(zes) with {collection.question_count} questions "
        f"({collection.droppedQuestions} questions dropped)"
    )
    return collection


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_as_text(v) for v in value) if text]


def parse_summary(raw_response: str) -> DocumentAnalysis:
    """
    Parse the document analysis payload

    Raises:
        InvalidJSONError: If no JSON object can be extracted or parsed
        QuizValidationError: If the summary text is missing
    """
    data = _load_payload(raw_response)

    if not isinstance(data, dict):
        raise QuizValidationError(f"Expected a JSON object, got {type(data).__name__}")

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise QuizValidationError("Summary response has no summary text")

    return DocumentAnalysis(
        summary=summary.strip(),
        keyPoints=_string_list(data.get("keyPoints")),
        topics=_string_list(data.get("topics")),
    )
