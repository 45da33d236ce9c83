"""
Quiz Attempt Service
Attempt lifecycle: start (or resume), submit answers, complete, review results.

State machine per attempt: in_progress -> completed (terminal).
At most one in_progress attempt exists per (user, quiz).
"""
from typing import Optional, List, Union
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from docquiz.core.exceptions import NotFoundError, InvalidStateError, BadInputError
from docquiz.db.mongodb import ATTEMPTS_COLLECTION
from docquiz.models.quiz import Quiz, Question, PublicQuestion
from docquiz.models.quiz_attempt import (
    QuizAttempt,
    QuizSnapshot,
    SessionInfo,
    AnswerRecord,
    StartAttemptResponse,
    SubmitAnswerResponse,
    AttemptProgress,
    CompleteAttemptResponse,
    AttemptResults,
    QuestionResult,
)
from docquiz.services.performance_analysis import (
    analyze_performance,
    build_feedback,
    get_performance_level,
    latest_answers,
)
from docquiz.services.quiz_service import QuizService
from docquiz.utils.timeutils import utc_now, elapsed_ms

logger = logging.getLogger(__name__)

POINTS_PER_CORRECT = 10


def _attempt_from_doc(doc: dict) -> QuizAttempt:
    doc.pop("_id", None)
    return QuizAttempt(**doc)


def _normalize(value: str) -> str:
    return value.strip().casefold()


def resolve_user_answer(question: Question, quiz_type: str, user_answer: Union[str, int]) -> str:
    """
    Turn a submitted answer into the string that gets compared

    Multiple-choice answers may be an option index (int or digit string).

    Raises:
        BadInputError: Empty answer or out-of-range option index
    """
    if isinstance(user_answer, bool):
        raise BadInputError("Answer must be text or an option index")

    if isinstance(user_answer, int):
        if quiz_type != "multiple_choice":
            return str(user_answer)
        if not 0 <= user_answer < len(question.options):
            raise BadInputError(f"Option index out of range: {user_answer}")
        return question.options[user_answer]

    text = (user_answer or "").strip()
    if not text:
        raise BadInputError("Answer cannot be empty")

    if quiz_type == "multiple_choice" and text not in question.options and text.isdigit():
        index = int(text)
        if 0 <= index < len(question.options):
            return question.options[index]
    return text


def is_answer_correct(question: Question, quiz_type: str, answer: str) -> bool:
    if quiz_type == "multiple_choice":
        return answer == question.correctAnswer
    return _normalize(answer) == _normalize(question.correctAnswer)


class QuizAttemptService:
    """Service class for quiz attempt operations"""

    COLLECTION_NAME = ATTEMPTS_COLLECTION

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        quiz_service: Optional[QuizService] = None,
        points_per_correct: int = POINTS_PER_CORRECT
    ):
        """
        Initialize quiz attempt service

        Args:
            db: MongoDB database instance
            quiz_service: Quiz store used for lookups and analytics
            points_per_correct: Points awarded per correct answer (default: 10)
        """
        self.db = db
        self.collection = db[self.COLLECTION_NAME]
        self.quiz_service = quiz_service or QuizService(db)
        self.points_per_correct = points_per_correct

    async def _get_attempt(self, attempt_id: str, user_id: str) -> QuizAttempt:
        doc = await self.collection.find_one({"attemptId": attempt_id, "userId": user_id})
        if not doc:
            raise NotFoundError(f"Attempt not found: {attempt_id}")
        return _attempt_from_doc(doc)

    async def _get_quiz_for_attempt(self, attempt: QuizAttempt) -> Quiz:
        # Quizzes deleted after an attempt started stay answerable
        return await self.quiz_service.get_quiz(attempt.quizId, attempt.userId, active_only=False)

    async def start_attempt(
        self,
        quiz_id: str,
        user_id: str,
        session_info: Optional[SessionInfo] = None
    ) -> StartAttemptResponse:
        """
        Resume the user's in-progress attempt on a quiz, or create one

        Raises:
            NotFoundError: Quiz missing, deleted or not owned by the user
        """
        quiz = await self.quiz_service.get_quiz(quiz_id, user_id)

        attempt = QuizAttempt(
            quizId=quiz.quizId,
            userId=user_id,
            documentId=quiz.documentId,
            quizSnapshot=QuizSnapshot(
                title=quiz.title,
                type=quiz.type,
                difficulty=quiz.difficulty,
                totalQuestions=quiz.total_questions,
                passingScore=quiz.passingScore,
            ),
            sessionInfo=session_info or SessionInfo(),
        )

        # Upsert keyed on the in-progress triple: an existing attempt is returned untouched
        doc = await self.collection.find_one_and_update(
            {"quizId": quiz.quizId, "userId": user_id, "status": "in_progress"},
            {"$setOnInsert": attempt.model_dump(exclude={"quizId", "userId", "status"})},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        stored = _attempt_from_doc(doc)
        is_existing = stored.attemptId != attempt.attemptId

        if is_existing:
            logger.info(f"↩️ Resuming attempt {stored.attemptId} on quiz {quiz_id} for user {user_id}")
        else:
            logger.info(f"✅ Created attempt {stored.attemptId} on quiz {quiz_id} for user {user_id}")

        return StartAttemptResponse(
            attempt=stored,
            isExisting=is_existing,
            questions=[PublicQuestion.from_question(q) for q in quiz.questions],
        )

    async def submit_answer(
        self,
        attempt_id: str,
        user_id: str,
        question_index: int,
        user_answer: Union[str, int],
        time_spent_ms: int = 0
    ) -> SubmitAnswerResponse:
        """
        Evaluate and append one answer

        Resubmitting a question appends another record; nothing is deduplicated.

        Raises:
            NotFoundError: Attempt missing or not the user's
            InvalidStateError: Attempt already completed
            BadInputError: Bad question index, empty answer or negative time
        """
        attempt = await self._get_attempt(attempt_id, user_id)
        if attempt.status != "in_progress":
            raise InvalidStateError(f"Attempt {attempt_id} is already {attempt.status}")

        if time_spent_ms is None or time_spent_ms < 0:
            raise BadInputError("timeSpentMs must be zero or positive")

        quiz = await self._get_quiz_for_attempt(attempt)
        if isinstance(question_index, bool) or not 0 <= question_index < quiz.total_questions:
            raise BadInputError(
                f"Invalid question index {question_index} "
                f"(quiz has {quiz.total_questions} questions)"
            )

        question = quiz.questions[question_index]
        answer = resolve_user_answer(question, quiz.type, user_answer)
        correct = is_answer_correct(question, quiz.type, answer)

        record = AnswerRecord(
            questionId=question.questionId,
            questionIndex=question_index,
            userAnswer=answer,
            isCorrect=correct,
            pointsEarned=self.points_per_correct if correct else 0,
            timeSpent=time_spent_ms,
        )

        result = await self.collection.update_one(
            {"attemptId": attempt_id, "userId": user_id, "status": "in_progress"},
            {"$push": {"answers": record.model_dump()}}
        )
        if result.matched_count == 0:
            raise InvalidStateError(f"Attempt {attempt_id} is no longer in progress")

        answered = len({a.questionIndex for a in attempt.answers} | {question_index})
        total = quiz.total_questions

        logger.info(
            f"✅ Attempt {attempt_id}: question {question_index} answered "
            f"({'correct' if correct else 'incorrect'})"
        )

        return SubmitAnswerResponse(
            questionId=question.questionId,
            isCorrect=correct,
            correctAnswer=question.correctAnswer,
            explanation=question.explanation,
            feedback=question.strength if correct else question.weakness,
            pointsEarned=record.pointsEarned,
            progress=AttemptProgress(
                answered=answered,
                total=total,
                percentage=round(answered / total * 100, 2),
            ),
        )

    async def complete_attempt(self, attempt_id: str, user_id: str) -> CompleteAttemptResponse:
        """
        Score the attempt, freeze it and update the quiz's analytics

        Only the latest answer per question counts. Unanswered questions score 0.

        Raises:
            NotFoundError: Attempt missing or not the user's
            InvalidStateError: Attempt already completed
        """
        attempt = await self._get_attempt(attempt_id, user_id)
        if attempt.status != "in_progress":
            raise InvalidStateError(f"Attempt {attempt_id} is already {attempt.status}")

        quiz = await self._get_quiz_for_attempt(attempt)
        total = quiz.total_questions
        latest = latest_answers(attempt.answers)

        score = sum(a.pointsEarned for a in latest.values())
        correct_count = sum(1 for a in latest.values() if a.isCorrect)
        max_score = total * self.points_per_correct
        percentage = round(score / max_score * 100, 2) if max_score else 0.0

        completed_at = utc_now()
        time_spent = elapsed_ms(attempt.startedAt, completed_at)
        level = get_performance_level(percentage)
        passed = percentage >= quiz.passingScore
        strengths, weaknesses = analyze_performance(attempt.answers, quiz.questions)
        feedback = build_feedback(percentage, weaknesses)

        result = await self.collection.update_one(
            {"attemptId": attempt_id, "userId": user_id, "status": "in_progress"},
            {"$set": {
                "status": "completed",
                "score": score,
                "pointsEarned": score,
                "percentage": percentage,
                "timeSpent": time_spent,
                "performanceLevel": level,
                "passed": passed,
                "strengths": [s.model_dump() for s in strengths],
                "weaknesses": [w.model_dump() for w in weaknesses],
                "feedback": feedback.model_dump(),
                "completedAt": completed_at,
            }}
        )
        if result.matched_count == 0:
            raise InvalidStateError(f"Attempt {attempt_id} is no longer in progress")

        await self.quiz_service.update_analytics(quiz.quizId, percentage, time_spent)

        logger.info(
            f"🏁 Attempt {attempt_id} completed: {score}/{max_score} ({percentage}%) - {level}"
        )

        return CompleteAttemptResponse(
            attemptId=attempt_id,
            score=score,
            percentage=percentage,
            timeSpent=time_spent,
            performanceLevel=level,
            passed=passed,
            correctAnswers=correct_count,
            totalQuestions=total,
            feedback=feedback,
            strengths=strengths,
            weaknesses=weaknesses,
        )

    async def get_results(self, attempt_id: str, user_id: str) -> AttemptResults:
        """
        Full per-question review of a completed attempt

        Raises:
            NotFoundError: Attempt missing or not the user's
            InvalidStateError: Attempt still in progress
        """
        attempt = await self._get_attempt(attempt_id, user_id)
        if attempt.status != "completed":
            raise InvalidStateError("Results are only available for completed attempts")

        quiz = await self._get_quiz_for_attempt(attempt)
        latest = latest_answers(attempt.answers)

        details: List[QuestionResult] = []
        for index, question in enumerate(quiz.questions):
            answer = latest.get(index)
            correct = bool(answer and answer.isCorrect)
            details.append(QuestionResult(
                questionIndex=index,
                questionId=question.questionId,
                question=question.question,
                options=list(question.options),
                correctAnswer=question.correctAnswer,
                userAnswer=answer.userAnswer if answer else None,
                isCorrect=correct,
                pointsEarned=answer.pointsEarned if answer else 0,
                explanation=question.explanation,
                feedback=question.strength if correct else question.weakness,
                skillCategory=question.skillCategory,
                topicArea=question.topicArea,
                timeSpent=answer.timeSpent if answer else 0,
            ))

        return AttemptResults(
            attemptId=attempt.attemptId,
            quizId=attempt.quizId,
            quizTitle=attempt.quizSnapshot.title,
            status=attempt.status,
            score=attempt.score,
            percentage=attempt.percentage,
            timeSpent=attempt.timeSpent,
            performanceLevel=attempt.performanceLevel,
            passed=attempt.passed,
            feedback=attempt.feedback,
            strengths=attempt.strengths,
            weaknesses=attempt.weaknesses,
            startedAt=attempt.startedAt,
            completedAt=attempt.completedAt,
            questionDetails=details,
        )

    async def list_attempts(
        self,
        user_id: str,
        quiz_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[QuizAttempt]:
        """User's attempts, newest first"""
        query = {"userId": user_id}
        if quiz_id:
            query["quizId"] = quiz_id
        if status:
            query["status"] = status

        cursor = self.collection.find(query).sort("startedAt", -1)
        return [_attempt_from_doc(doc) async for doc in cursor]
