import json

import pytest
from mongomock_motor import AsyncMongoMockClient

from docquiz.models.quiz import QuizGenerationConfig
from docquiz.services.quiz_service import QuizService
from docquiz.services.quiz_attempt_service import QuizAttemptService
from docquiz.utils.quiz_parser import parse_quiz_collection


def make_mc_question(n):
    return {
        "question": f"Which value belongs to concept {n}?",
        "options": [f"Value {n}A", f"Value {n}B", f"Value {n}C", f"Value {n}D"],
        "correctAnswer": f"Value {n}B",
        "correctAnswerIndex": 1,
        "explanation": f"Concept {n} is defined by value B.",
        "points": 1,
        "skillCategory": "factual_recall" if n % 2 else "conceptual_understanding",
        "topicArea": "Cell biology",
        "strength": "Well done.",
        "weakness": "Review this concept.",
    }


def make_tf_question(n, answer="True"):
    return {
        "question": f"Statement {n} about the document is correct.",
        "correctAnswer": answer,
        "correctAnswerIndex": 0 if answer == "True" else 1,
        "explanation": "The document says so.",
        "skillCategory": "conceptual_understanding",
        "topicArea": "Genetics",
    }


def make_collection_response(mc_count=10, tf_count=10):
    payload = {
        "quizzes": [
            {
                "title": "Cell Biology Basics",
                "description": "Multiple choice questions",
                "type": "multiple_choice",
                "difficulty": "medium",
                "estimatedTime": 15,
                "questions": [make_mc_question(i) for i in range(1, mc_count + 1)],
            },
            {
                "title": "Genetics True or False",
                "description": "True/false questions",
                "type": "true_false",
                "difficulty": "medium",
                "estimatedTime": 10,
                "questions": [make_tf_question(i) for i in range(1, tf_count + 1)],
            },
        ]
    }
    return json.dumps(payload)


SUMMARY_RESPONSE = json.dumps({
    "summary": "The document introduces cell biology.",
    "keyPoints": ["Cells are the unit of life", "Mitochondria produce ATP"],
    "topics": ["Cell biology", "Genetics"],
})


@pytest.fixture
def db():
    """Fresh in-memory MongoDB database per test"""
    client = AsyncMongoMockClient()
    return client["docquiz_test"]


@pytest.fixture
def config():
    return QuizGenerationConfig(question_types=["multiple_choice", "true_false"], questions_per_quiz=10)


@pytest.fixture
def quiz_service(db):
    return QuizService(db)


@pytest.fixture
def attempt_service(db, quiz_service):
    return QuizAttemptService(db, quiz_service=quiz_service)


@pytest.fixture
async def stored_quizzes(quiz_service, config):
    """MC quiz (10 questions) and TF quiz (10 questions) owned by user_1"""
    parsed = parse_quiz_collection(make_collection_response(), config)
    return await quiz_service.store_quiz_collection(
        parsed, document_id="doc_test", owner_id="user_1", config=config, model="test-model", provider="deepseek"
    )


@pytest.fixture
def collection_response():
    """Factory for a raw two-quiz AI response"""
    return make_collection_response


@pytest.fixture
def summary_response():
    return SUMMARY_RESPONSE
