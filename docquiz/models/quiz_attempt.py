"""
Quiz Attempt Models
One user's pass through a quiz, plus request/response shapes
FILE: docquiz/models/quiz_attempt.py
"""
from datetime import datetime
from typing import Literal, Optional, List, Union
from pydantic import BaseModel, Field
import uuid

from docquiz.models.quiz import PublicQuestion, QuestionType
from docquiz.utils.timeutils import utc_now


AttemptStatus = Literal["in_progress", "completed"]
PerformanceLevel = Literal["poor", "below_average", "average", "good", "excellent"]
DeviceType = Literal["mobile", "tablet", "desktop", "unknown"]


class SessionInfo(BaseModel):
    """Device metadata sent by the client when an attempt starts"""
    userAgent: Optional[str] = None
    deviceType: DeviceType = "unknown"
    ipAddress: Optional[str] = None


class QuizSnapshot(BaseModel):
    """Quiz fields copied into the attempt at start"""
    title: str
    type: QuestionType
    difficulty: str
    totalQuestions: int
    passingScore: int


class AnswerRecord(BaseModel):
    """
    Appended on every submission. Resubmitting a question adds another record.
    """
    questionId: int = Field(..., description="Question ID reference")
    questionIndex: int = Field(..., ge=0)
    userAnswer: str
    isCorrect: bool
    pointsEarned: int = Field(..., ge=0)
    timeSpent: int = Field(default=0, ge=0, description="Milliseconds")
    answeredAt: datetime = Field(default_factory=utc_now)


class AreaScore(BaseModel):
    area: str
    score: int = Field(..., description="Percentage correct in this area")
    totalQuestions: int
    correctAnswers: int


class Improvement(BaseModel):
    area: str
    suggestion: str
    priority: Literal["high", "medium", "low"]


class AttemptFeedback(BaseModel):
    overall: str = ""
    improvements: List[Improvement] = Field(default_factory=list)


class QuizAttempt(BaseModel):
    """Quiz attempt (collection: quiz_attempts)"""
    attemptId: str = Field(
        default_factory=lambda: f"attempt_{uuid.uuid4().hex[:12]}",
        description="Unique attempt identifier"
    )
    quizId: str
    userId: str
    documentId: str
    quizSnapshot: QuizSnapshot
    status: AttemptStatus = Field(default="in_progress")

    answers: List[AnswerRecord] = Field(default_factory=list)

    score: int = 0
    percentage: float = 0.0
    pointsEarned: int = 0
    timeSpent: int = Field(default=0, description="Milliseconds")
    performanceLevel: Optional[PerformanceLevel] = None
    passed: Optional[bool] = None
    feedback: AttemptFeedback = Field(default_factory=AttemptFeedback)
    strengths: List[AreaScore] = Field(default_factory=list)
    weaknesses: List[AreaScore] = Field(default_factory=list)

    sessionInfo: SessionInfo = Field(default_factory=SessionInfo)
    startedAt: datetime = Field(default_factory=utc_now)
    completedAt: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "attemptId": "attempt_a1b2c3d4e5f6",
                "quizId": "quiz_0f1e2d3c4b5a",
                "userId": "user_42",
                "documentId": "doc_3f9a1c2b7d4e",
                "status": "in_progress",
                "answers": [],
                "score": 0
            }
        }


# ==================== REQUESTS ====================

class StartAttemptRequest(BaseModel):
    sessionInfo: SessionInfo = Field(default_factory=SessionInfo)


class SubmitAnswerRequest(BaseModel):
    questionIndex: int = Field(..., ge=0, description="0-based question index")
    userAnswer: Union[str, int] = Field(..., description="Answer text or option index")
    timeSpentMs: int = Field(default=0, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "questionIndex": 0,
                "userAnswer": "Mitochondria",
                "timeSpentMs": 8200
            }
        }


# ==================== RESPONSES ====================

class StartAttemptResponse(BaseModel):
    attempt: QuizAttempt
    isExisting: bool
    questions: List[PublicQuestion]


class AttemptProgress(BaseModel):
    answered: int
    total: int
    percentage: float


class SubmitAnswerResponse(BaseModel):
    questionId: int
    isCorrect: bool
    correctAnswer: str
    explanation: str
    feedback: str
    pointsEarned: int
    progress: AttemptProgress


class CompleteAttemptResponse(BaseModel):
    attemptId: str
    score: int
    percentage: float
    timeSpent: int
    performanceLevel: PerformanceLevel
    passed: bool
    correctAnswers: int
    totalQuestions: int
    feedback: AttemptFeedback
    strengths: List[AreaScore]
    weaknesses: List[AreaScore]


class QuestionResult(BaseModel):
    """One answer joined with the question it answered"""
    questionIndex: int
    questionId: int
    question: str
    options: List[str]
    correctAnswer: str
    userAnswer: Optional[str] = None
    isCorrect: bool
    pointsEarned: int
    explanation: str
    feedback: str
    skillCategory: str
    topicArea: str
    timeSpent: int = 0


class AttemptResults(BaseModel):
    attemptId: str
    quizId: str
    quizTitle: str
    status: AttemptStatus
    score: int
    percentage: float
    timeSpent: int
    performanceLevel: Optional[PerformanceLevel] = None
    passed: Optional[bool] = None
    feedback: AttemptFeedback
    strengths: List[AreaScore]
    weaknesses: List[AreaScore]
    startedAt: datetime
    completedAt: Optional[datetime] = None
    questionDetails: List[QuestionResult]
