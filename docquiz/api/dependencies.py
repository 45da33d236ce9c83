"""
Shared API dependencies
"""
from fastapi import Depends, Header, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from docquiz.core.config import Settings, get_settings
from docquiz.db.mongodb import get_database
from docquiz.services.document_service import DocumentService
from docquiz.services.quiz_attempt_service import QuizAttemptService
from docquiz.services.quiz_service import QuizService


async def get_db() -> AsyncIOMotorDatabase:
    """Dependency to get MongoDB database instance"""
    return get_database()


async def get_user_id(x_user_id: str = Header(default="", alias="X-User-Id")) -> str:
    """Caller identity; authentication happens upstream"""
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required"
        )
    return user_id


def get_quiz_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> QuizService:
    """Dependency to get QuizService instance"""
    return QuizService(db=db, passing_score=settings.default_passing_score)


def get_document_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
    quiz_service: QuizService = Depends(get_quiz_service)
) -> DocumentService:
    """Dependency to get DocumentService instance"""
    return DocumentService(db=db, settings=settings, quiz_service=quiz_service)


def get_attempt_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
    quiz_service: QuizService = Depends(get_quiz_service)
) -> QuizAttemptService:
    """Dependency to get QuizAttemptService instance"""
    return QuizAttemptService(
        db=db,
        quiz_service=quiz_service,
        points_per_correct=settings.points_per_correct
    )
