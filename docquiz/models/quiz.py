"""
Quiz Models
Generation config, validated quiz entities and persisted quiz records
FILE: docquiz/models/quiz.py
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Dict
from datetime import datetime
import uuid

from docquiz.utils.timeutils import utc_now


QuestionType = Literal["multiple_choice", "true_false", "fill_blank"]
QUESTION_TYPES = ("multiple_choice", "true_false", "fill_blank")

SkillCategory = Literal[
    "factual_recall",
    "conceptual_understanding",
    "analytical_thinking",
    "procedural_knowledge",
    "critical_thinking",
]
SKILL_CATEGORIES = (
    "factual_recall",
    "conceptual_understanding",
    "analytical_thinking",
    "procedural_knowledge",
    "critical_thinking",
)

QuizStatus = Literal["active", "deleted"]


class QuizGenerationConfig(BaseModel):
    """
    Immutable settings for one generation request.
    Built once per pipeline run and handed to the prompt builder and parser.
    """
    question_types: List[QuestionType] = Field(
        default_factory=lambda: ["multiple_choice", "true_false"],
        min_length=1,
        description="One quiz is generated per question type"
    )
    questions_per_quiz: int = Field(default=10, ge=1, le=50)
    difficulty: str = Field(default="medium", min_length=1)
    language: str = Field(default="en", min_length=2)

    @property
    def total_quizzes(self) -> int:
        return len(self.question_types)

    @property
    def total_questions(self) -> int:
        return self.total_quizzes * self.questions_per_quiz

    @classmethod
    def from_settings(cls, settings, **overrides) -> "QuizGenerationConfig":
        values = {
            "question_types": list(settings.quiz_question_types),
            "questions_per_quiz": settings.questions_per_quiz,
            "difficulty": settings.default_difficulty,
            "language": settings.default_language,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    class Config:
        frozen = True


class Question(BaseModel):
    """
    Validated question as stored inside a quiz.
    correctAnswer and correctAnswerIndex are never sent to quiz takers
    before they answer.
    """
    questionId: int = Field(..., ge=1, description="1-based position in the quiz")
    question: str = Field(..., min_length=1)
    options: List[str] = Field(default_factory=list)
    correctAnswer: str = Field(..., min_length=1)
    correctAnswerIndex: int = Field(default=-1, description="-1 for fill_blank")
    explanation: str
    points: int = Field(default=1, ge=1)
    skillCategory: SkillCategory = "factual_recall"
    topicArea: str = "general"
    strength: str
    weakness: str

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "questionId": 1,
                "question": "What organelle produces most of a cell's ATP?",
                "options": ["Nucleus", "Mitochondria", "Ribosome", "Golgi apparatus"],
                "correctAnswer": "Mitochondria",
                "correctAnswerIndex": 1,
                "explanation": "Mitochondria carry out cellular respiration.",
                "points": 1,
                "skillCategory": "factual_recall",
                "topicArea": "Cell biology",
                "strength": "You know where cellular respiration happens.",
                "weakness": "Review the role of mitochondria."
            }
        }


class PublicQuestion(BaseModel):
    """Question as shown to a quiz taker before answering"""
    questionId: int
    question: str
    options: List[str]
    points: int

    @classmethod
    def from_question(cls, question: Question) -> "PublicQuestion":
        return cls(
            questionId=question.questionId,
            question=question.question,
            options=list(question.options),
            points=question.points,
        )


class GeneratedQuiz(BaseModel):
    """A quiz that survived validation but is not yet stored"""
    title: str
    description: str = ""
    type: QuestionType
    difficulty: str
    estimatedTime: int = Field(..., ge=1, description="Minutes")
    questions: List[Question] = Field(..., min_length=1)


class ParsedQuizCollection(BaseModel):
    """Every quiz that survived validation for one generation run"""
    quizzes: List[GeneratedQuiz] = Field(..., min_length=1)
    droppedQuizzes: int = 0
    droppedQuestions: int = 0

    @property
    def question_count(self) -> int:
        return sum(len(q.questions) for q in self.quizzes)


class DocumentAnalysis(BaseModel):
    """Summary payload returned by the AI service"""
    summary: str = Field(..., min_length=1)
    keyPoints: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)


class QuizAnalytics(BaseModel):
    attemptCount: int = 0
    averageScore: float = 0.0
    averageTime: float = Field(default=0.0, description="Milliseconds")
    lastAttemptAt: Optional[datetime] = None


class AIMetadata(BaseModel):
    model: Optional[str] = None
    provider: Optional[str] = None
    generationType: str = "comprehensive"
    generatedAt: datetime = Field(default_factory=utc_now)


class Quiz(BaseModel):
    """Persisted quiz (collection: quizzes)"""
    quizId: str = Field(
        default_factory=lambda: f"quiz_{uuid.uuid4().hex[:12]}",
        description="Unique quiz identifier"
    )
    collectionId: str = Field(..., description="Shared by all quizzes of one generation run")
    documentId: str
    ownerId: str
    title: str
    description: str = ""
    type: QuestionType
    difficulty: str
    language: str = "en"
    estimatedTime: int = Field(..., ge=1)
    passingScore: int = Field(default=70, ge=0, le=100)
    questions: List[Question]
    analytics: QuizAnalytics = Field(default_factory=QuizAnalytics)
    aiMetadata: AIMetadata = Field(default_factory=AIMetadata)
    status: QuizStatus = "active"
    deletedAt: Optional[datetime] = None
    createdAt: datetime = Field(default_factory=utc_now)
    updatedAt: datetime = Field(default_factory=utc_now)

    @property
    def total_questions(self) -> int:
        return len(self.questions)


class QuizSummary(BaseModel):
    """Quiz listing entry without question bodies"""
    quizId: str
    documentId: str
    title: str
    description: str
    type: QuestionType
    difficulty: str
    estimatedTime: int
    passingScore: int
    totalQuestions: int
    analytics: QuizAnalytics
    createdAt: datetime

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> "QuizSummary":
        return cls(
            quizId=quiz.quizId,
            documentId=quiz.documentId,
            title=quiz.title,
            description=quiz.description,
            type=quiz.type,
            difficulty=quiz.difficulty,
            estimatedTime=quiz.estimatedTime,
            passingScore=quiz.passingScore,
            totalQuestions=quiz.total_questions,
            analytics=quiz.analytics,
            createdAt=quiz.createdAt,
        )


class QuizCollectionStats(BaseModel):
    documentId: str
    totalQuizzes: int
    totalQuestions: int
    types: Dict[str, int]
    difficulties: Dict[str, int]
    averageEstimatedTime: float



class QuizDetail(QuizSummary):
    """Quiz with its questions, answers withheld"""
    questions: List[PublicQuestion]

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> "QuizDetail":
        summary = QuizSummary.from_quiz(quiz)
        return cls(
            **summary.model_dump(),
            questions=[PublicQuestion.from_question(q) for q in quiz.questions],
        )
