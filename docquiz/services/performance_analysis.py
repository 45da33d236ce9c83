"""
Performance analysis of a finished attempt.
Groups answers by skill category and topic area; no AI calls.
"""

import logging
from typing import List, Dict, Tuple

from docquiz.models.quiz import Question
from docquiz.models.quiz_attempt import AnswerRecord, AreaScore, AttemptFeedback, Improvement

logger = logging.getLogger(__name__)

STRENGTH_THRESHOLD = 75
STRENGTH_MIN_QUESTIONS = 2
WEAKNESS_THRESHOLD = 60
HIGH_PRIORITY_THRESHOLD = 40

PERFORMANCE_LEVELS = [
    (86, "excellent"),
    (76, "good"),
    (61, "average"),
    (41, "below_average"),
]

OVERALL_FEEDBACK = [
    (90, "Excellent work! You demonstrated outstanding understanding of the material."),
    (80, "Great job! You have a solid grasp of most concepts with room for minor improvements."),
    (70, "Good effort! You understand the basics but could benefit from reviewing some areas."),
    (60, "You're making progress, but there are several areas that need more attention."),
]
LOW_SCORE_FEEDBACK = "This material requires more study. Focus on understanding the fundamental concepts."


def latest_answers(answers: List[AnswerRecord]) -> Dict[int, AnswerRecord]:
    """Last submitted answer per question index"""
    latest: Dict[int, AnswerRecord] = {}
    for answer in answers:
        latest[answer.questionIndex] = answer
    return latest


def get_performance_level(percentage: float) -> str:
    for threshold, level in PERFORMANCE_LEVELS:
        if percentage >= threshold:
            return level
    return "poor"


def _area_scores(groups: Dict[str, Tuple[int, int]]) -> Tuple[List[AreaScore], List[AreaScore]]:
    strengths, weaknesses = [], []
    for area, (correct, total) in groups.items():
        score = round(correct / total * 100)
        entry = AreaScore(area=area, score=score, totalQuestions=total, correctAnswers=correct)
        if score >= STRENGTH_THRESHOLD and total >= STRENGTH_MIN_QUESTIONS:
            strengths.append(entry)
        elif score < WEAKNESS_THRESHOLD:
            weaknesses.append(entry)
    return strengths, weaknesses


def analyze_performance(
    answers: List[AnswerRecord],
    questions: List[Question]
) -> Tuple[List[AreaScore], List[AreaScore]]:
    """
    Determine strengths (>= 75% over at least 2 questions) and weaknesses (< 60%)

    Args:
        answers: Answer records of the attempt
        questions: Questions of the quiz, in order

    Returns:
        (strengths sorted by score descending, weaknesses sorted ascending)
    """
    skills: Dict[str, Tuple[int, int]] = {}
    topics: Dict[str, Tuple[int, int]] = {}

    for index, answer in latest_answers(answers).items():
        if not 0 <= index < len(questions):
            logger.warning(f"⚠️ Answer for unknown question index {index}")
            continue
        question = questions[index]
        hit = 1 if answer.isCorrect else 0
        for groups, key in ((skills, question.skillCategory), (topics, question.topicArea or "general")):
            correct, total = groups.get(key, (0, 0))
            groups[key] = (correct + hit, total + 1)

    skill_strengths, skill_weaknesses = _area_scores(skills)
    topic_strengths, topic_weaknesses = _area_scores(topics)

    strengths = sorted(skill_strengths + topic_strengths, key=lambda a: a.score, reverse=True)
    weaknesses = sorted(skill_weaknesses + topic_weaknesses, key=lambda a: a.score)

    logger.info(f"📊 Performance analysis: {len(strengths)} strengths, {len(weaknesses)} weaknesses")
    return strengths, weaknesses


def build_feedback(percentage: float, weaknesses: List[AreaScore]) -> AttemptFeedback:
    overall = LOW_SCORE_FEEDBACK
    for threshold, text in OVERALL_FEEDBACK:
        if percentage >= threshold:
            overall = text
            break

    improvements = [
        Improvement(
            area=weakness.area,
            suggestion=(
                f"Focus on improving your {weakness.area.replace('_', ' ')} "
                f"skills through targeted practice."
            ),
            priority="high" if weakness.score < HIGH_PRIORITY_THRESHOLD else "medium",
        )
        for weakness in weaknesses
    ]
    return AttemptFeedback(overall=overall, improvements=improvements)
