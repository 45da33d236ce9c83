"""
Quiz API Routes
Quiz lookup and the quiz-taking flow: start, answer, complete, review.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from docquiz.api.dependencies import get_user_id, get_quiz_service, get_attempt_service
from docquiz.models.quiz import QuizDetail, QuizSummary
from docquiz.models.quiz_attempt import (
    AttemptStatus,
    QuizAttempt,
    SessionInfo,
    StartAttemptRequest,
    StartAttemptResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    CompleteAttemptResponse,
    AttemptResults,
)
from docquiz.services.quiz_attempt_service import QuizAttemptService
from docquiz.services.quiz_service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter()


def detect_device_type(user_agent: Optional[str]) -> str:
    """Coarse device class from a User-Agent header"""
    if not user_agent:
        return "unknown"
    ua = user_agent.lower()
    if "ipad" in ua or "tablet" in ua:
        return "tablet"
    if "mobi" in ua or "android" in ua or "iphone" in ua:
        return "mobile"
    return "desktop"


# ============================================================================
# QUIZZES
# ============================================================================

@router.get(
    "/quizzes/{quiz_id}",
    response_model=QuizDetail,
    summary="Get a quiz with its questions (answers withheld)"
)
async def get_quiz(
    quiz_id: str,
    user_id: str = Depends(get_user_id),
    quiz_service: QuizService = Depends(get_quiz_service)
) -> QuizDetail:
    quiz = await quiz_service.get_quiz(quiz_id, user_id)
    return QuizDetail.from_quiz(quiz)


@router.delete(
    "/quizzes/{quiz_id}",
    response_model=QuizSummary,
    summary="Soft delete a quiz"
)
async def delete_quiz(
    quiz_id: str,
    user_id: str = Depends(get_user_id),
    quiz_service: QuizService = Depends(get_quiz_service)
) -> QuizSummary:
    quiz = await quiz_service.soft_delete_quiz(quiz_id, user_id)
    return QuizSummary.from_quiz(quiz)


# ============================================================================
# ATTEMPTS
# ============================================================================

@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=StartAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "Existing in-progress attempt resumed"},
        201: {"description": "New attempt created"},
        404: {"description": "Quiz not found"}
    },
    summary="Start or resume a quiz attempt",
    description="""
    Returns the caller's in-progress attempt on this quiz when one exists
    (`isExisting: true`), otherwise creates a new attempt.
    """
)
async def start_attempt(
    quiz_id: str,
    request: Request,
    response: Response,
    body: Optional[StartAttemptRequest] = None,
    user_id: str = Depends(get_user_id),
    service: QuizAttemptService = Depends(get_attempt_service)
) -> StartAttemptResponse:
    session_info = body.sessionInfo if body else SessionInfo()
    if not session_info.userAgent:
        user_agent = request.headers.get("user-agent")
        session_info = SessionInfo(
            userAgent=user_agent,
            deviceType=detect_device_type(user_agent),
            ipAddress=session_info.ipAddress or (request.client.host if request.client else None),
        )

    result = await service.start_attempt(quiz_id, user_id, session_info)
    if result.isExisting:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/attempts",
    response_model=List[QuizAttempt],
    summary="List the caller's attempts"
)
async def list_attempts(
    quiz_id: Optional[str] = Query(default=None),
    status_filter: Optional[AttemptStatus] = Query(default=None, alias="status"),
    user_id: str = Depends(get_user_id),
    service: QuizAttemptService = Depends(get_attempt_service)
) -> List[QuizAttempt]:
    return await service.list_attempts(user_id, quiz_id=quiz_id, status=status_filter)


@router.post(
    "/attempts/{attempt_id}/answers",
    response_model=SubmitAnswerResponse,
    summary="Submit an answer",
    description="""
    Evaluates one answer and appends it to the attempt.

    `userAnswer` may be the option text or, for multiple choice, the option index.
    Resubmitting a question appends another record.
    """
)
async def submit_answer(
    attempt_id: str,
    body: SubmitAnswerRequest,
    user_id: str = Depends(get_user_id),
    service: QuizAttemptService = Depends(get_attempt_service)
) -> SubmitAnswerResponse:
    return await service.submit_answer(
        attempt_id,
        user_id,
        question_index=body.questionIndex,
        user_answer=body.userAnswer,
        time_spent_ms=body.timeSpentMs,
    )


@router.post(
    "/attempts/{attempt_id}/complete",
    response_model=CompleteAttemptResponse,
    summary="Complete an attempt and score it"
)
async def complete_attempt(
    attempt_id: str,
    user_id: str = Depends(get_user_id),
    service: QuizAttemptService = Depends(get_attempt_service)
) -> CompleteAttemptResponse:
    return await service.complete_attempt(attempt_id, user_id)


@router.get(
    "/attempts/{attempt_id}/results",
    response_model=AttemptResults,
    summary="Per-question results of a completed attempt"
)
async def get_attempt_results(
    attempt_id: str,
    user_id: str = Depends(get_user_id),
    service: QuizAttemptService = Depends(get_attempt_service)
) -> AttemptResults:
    return await service.get_results(attempt_id, user_id)
