"""
Quiz Prompt Builder
Constructs prompts for document analysis and quiz collection generation
"""
import json
from typing import Dict, Any

from docquiz.models.quiz import QuizGenerationConfig
from docquiz.utils.languages import LanguagePack, get_language_pack


TYPE_LABELS = {
    "multiple_choice": "multiple choice",
    "true_false": "true/false",
    "fill_blank": "fill in the blank",
}

SUMMARY_SCHEMA = """{
  "summary": "comprehensive summary here",
  "keyPoints": ["point 1", "point 2"],
  "topics": ["topic 1", "topic 2"]
}"""


def _option_rule(question_type: str, pack: LanguagePack) -> str:
    if question_type == "multiple_choice":
        return (
            "exactly 4 distinct options; \"correctAnswer\" must repeat one option "
            "verbatim and \"correctAnswerIndex\" is its 0-based position"
        )
    if question_type == "true_false":
        return (
            f"options exactly [\"{pack.true_token}\", \"{pack.false_token}\"]; "
            f"\"correctAnswer\" is \"{pack.true_token}\" or \"{pack.false_token}\""
        )
    return (
        "a sentence containing ____ for the missing term; \"options\" is [] and "
        "\"correctAnswerIndex\" is -1; \"correctAnswer\" is the missing term"
    )


def _example_question(question_type: str, pack: LanguagePack) -> Dict[str, Any]:
    """One fully worked question anchoring the output format for a type"""
    common = {
        "points": 1,
        "skillCategory": "conceptual_understanding",
        "topicArea": "Cellular respiration",
        "strength": "You understand where the cell produces its energy.",
        "weakness": "Review how mitochondria convert nutrients into ATP.",
    }
    if question_type == "multiple_choice":
        return {
            "id": 1,
            "question": "Which organelle produces most of the ATP in a eukaryotic cell?",
            "options": ["Nucleus", "Mitochondria", "Ribosome", "Golgi apparatus"],
            "correctAnswer": "Mitochondria",
            "correctAnswerIndex": 1,
            "explanation": "Mitochondria run the citric acid cycle and oxidative phosphorylation.",
            **common,
        }
    if question_type == "true_false":
        return {
            "id": 1,
            "question": "Oxidative phosphorylation takes place in the mitochondria.",
            "options": [pack.true_token, pack.false_token],
            "correctAnswer": pack.true_token,
            "correctAnswerIndex": 0,
            "explanation": "The electron transport chain sits in the inner mitochondrial membrane.",
            **common,
        }
    return {
        "id": 1,
        "question": "The ____ is the organelle that produces most of the cell's ATP.",
        "options": [],
        "correctAnswer": "mitochondrion",
        "correctAnswerIndex": -1,
        "explanation": "ATP synthesis by oxidative phosphorylation happens in the mitochondrion.",
        **common,
    }


def _example_collection(config: QuizGenerationConfig, pack: LanguagePack) -> str:
    quizzes = []
    for question_type in config.question_types:
        quizzes.append({
            "title": f"{TYPE_LABELS[question_type].title()} Quiz",
            "description": "Short description of what the quiz covers",
            "type": question_type,
            "difficulty": config.difficulty,
            "questions": [_example_question(question_type, pack)],
        })
    return json.dumps({"quizzes": quizzes}, indent=2, ensure_ascii=False)


def build_quiz_prompt(text: str, config: QuizGenerationConfig) -> str:
    """
    Build a prompt requesting one quiz per configured question type

    Args:
        text: Document text, already bounded to the token budget
        config: Generation settings for this request

    Returns:
        A complete prompt string requesting structured JSON output
    """
    pack = get_language_pack(config.language)
    n = config.questions_per_quiz

    quiz_lines = "\n".join(
        f"- Quiz {i}: type \"{t}\" ({TYPE_LABELS[t]}), {n} questions, {_option_rule(t, pack)}"
        for i, t in enumerate(config.question_types, start=1)
    )

    prompt = f"""TASK: Generate EXACTLY {config.total_quizzes} quizzes with {n} questions each ({config.total_questions} questions in total) based on the document below. Difficulty: {config.difficulty}.

QUIZZES:
{quiz_lines}

DO NOT ask about:
- Document metadata (title, author, chapter names, page numbers)
- Administrative details (semester, course codes, dates of the document)
- "What is the title of..." questions

FOCUS ON:
- Core concepts and how they work
- Practical applications and problem-solving
- Key principles and their relationships

EVERY QUESTION MUST HAVE:
- "question": the question text
- "options": as required for its quiz type
- "correctAnswer": the canonical answer
- "correctAnswerIndex": index of correctAnswer in options (-1 for fill in the blank)
- "explanation": why the answer is correct
- "points": 1
- "skillCategory": one of factual_recall, conceptual_understanding, analytical_thinking, procedural_knowledge, critical_thinking
- "topicArea": the topic of the document the question covers
- "strength": feedback shown when answered correctly
- "weakness": feedback shown when answered incorrectly

LANGUAGE:
- Write titles, questions, options, explanations and feedback in {pack.name}
- {pack.write_instruction}
- Keep JSON keys and type names in English

STRICT FORMATTING RULES:
- Output ONLY one valid JSON object
- Do NOT include markdown code blocks (no ```)
- Do NOT include any explanation, preamble, or additional text
- Do NOT include trailing commas

EXAMPLE (one question per quiz shown; produce {n} per quiz):
{_example_collection(config, pack)}

DOCUMENT:
{text}

Generate the {config.total_quizzes} quizzes now. Output ONLY the JSON object, nothing else."""

    return prompt


def build_summary_prompt(text: str, language: str = "en") -> str:
    """
    Build a prompt requesting a summary, key points and topics

    Args:
        text: Document text, already bounded to the token budget
        language: Language code for the response

    Returns:
        Prompt string requesting a JSON object
    """
    pack = get_language_pack(language)

    return f"""Please analyze this document and provide:
1. A comprehensive summary (3-4 paragraphs)
2. Key points (5-7 points)
3. Main topics covered (3-5 topics)

Write the response in {pack.name}.
{pack.write_instruction}

Document content:
{text}

Please respond ONLY with JSON in this format:
{SUMMARY_SCHEMA}"""

