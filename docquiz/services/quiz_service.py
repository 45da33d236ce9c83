"""
Quiz Service
Stores validated quiz collections and serves quizzes by document
"""
import logging
import uuid
from typing import List, Optional, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from docquiz.core.exceptions import NotFoundError
from docquiz.db.mongodb import QUIZZES_COLLECTION
from docquiz.models.quiz import (
    Quiz,
    AIMetadata,
    ParsedQuizCollection,
    QuizGenerationConfig,
    QuizCollectionStats,
)
from docquiz.utils.quiz_parser import QuizValidationError
from docquiz.utils.timeutils import utc_now

logger = logging.getLogger(__name__)


def _quiz_from_doc(doc: Dict[str, Any]) -> Quiz:
    doc.pop("_id", None)
    return Quiz(**doc)


class QuizService:
    """Service class for quiz storage operations"""

    COLLECTION_NAME = QUIZZES_COLLECTION

    def __init__(self, db: AsyncIOMotorDatabase, passing_score: int = 70):
        self.db = db
        self.collection = db[self.COLLECTION_NAME]
        self.passing_score = passing_score

    async def store_quiz_collection(
        self,
        collection: ParsedQuizCollection,
        document_id: str,
        owner_id: str,
        config: QuizGenerationConfig,
        model: Optional[str] = None,
        provider: Optional[str] = None
    ) -> List[Quiz]:
        """
        Persist every quiz of a generation run in one bulk insert

        All records are built before anything is written, so a collection
        is either stored whole or not at all.

        Returns:
            The stored quizzes
        """
        if not collection.quizzes:
            raise QuizValidationError("Refusing to store an empty quiz collection")

        collection_id = f"collection_{uuid.uuid4().hex[:12]}"
        generated_at = utc_now()

        quizzes = [
            Quiz(
                collectionId=collection_id,
                documentId=document_id,
                ownerId=owner_id,
                title=generated.title,
                description=generated.description,
                type=generated.type,
                difficulty=generated.difficulty,
                language=config.language,
                estimatedTime=generated.estimatedTime,
                passingScore=self.passing_score,
                questions=generated.questions,
                aiMetadata=AIMetadata(
                    model=model,
                    provider=provider,
                    generatedAt=generated_at,
                ),
            )
            for generated in collection.quizzes
        ]

        await self.collection.insert_many([q.model_dump() for q in quizzes])
        logger.info(
            f"✅ Stored quiz collection {collection_id} for document {document_id}: "
            f"{len(quizzes)} quizzes"
        )
        return quizzes

    async def get_quiz(self, quiz_id: str, owner_id: str, active_only: bool = True) -> Quiz:
        query = {"quizId": quiz_id, "ownerId": owner_id}
        if active_only:
            query["status"] = "active"

        doc = await self.collection.find_one(query)
        if not doc:
            raise NotFoundError(f"Quiz not found: {quiz_id}")
        return _quiz_from_doc(doc)

    async def list_quizzes(
        self,
        document_id: str,
        owner_id: str,
        quiz_type: Optional[str] = None,
        difficulty: Optional[str] = None
    ) -> List[Quiz]:
        """Active quizzes of a document, oldest first"""
        query: Dict[str, Any] = {
            "documentId": document_id,
            "ownerId": owner_id,
            "status": "active",
        }
        if quiz_type:
            query["type"] = quiz_type
        if difficulty:
            query["difficulty"] = difficulty

        cursor = self.collection.find(query).sort("createdAt", 1)
        return [_quiz_from_doc(doc) async for doc in cursor]

    async def soft_delete_quiz(self, quiz_id: str, owner_id: str) -> Quiz:
        now = utc_now()
        doc = await self.collection.find_one_and_update(
            {"quizId": quiz_id, "ownerId": owner_id, "status": "active"},
            {"$set": {"status": "deleted", "deletedAt": now, "updatedAt": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError(f"Quiz not found: {quiz_id}")

        logger.info(f"🗑️ Soft deleted quiz {quiz_id}")
        return _quiz_from_doc(doc)

    async def discard_quizzes(self, quiz_ids: List[str]) -> int:
        """Soft delete quizzes stored by a pipeline run that did not complete"""
        if not quiz_ids:
            return 0
        now = utc_now()
        result = await self.collection.update_many(
            {"quizId": {"$in": quiz_ids}, "status": "active"},
            {"$set": {"status": "deleted", "deletedAt": now, "updatedAt": now}},
        )
        logger.info(f"🗑️ Discarded {result.modified_count} quizzes from an unfinished run")
        return result.modified_count

    async def get_collection_stats(self, document_id: str, owner_id: str) -> QuizCollectionStats:
        quizzes = await self.list_quizzes(document_id, owner_id)

        types: Dict[str, int] = {}
        difficulties: Dict[str, int] = {}
        for quiz in quizzes:
            types[quiz.type] = types.get(quiz.type, 0) + 1
            difficulties[quiz.difficulty] = difficulties.get(quiz.difficulty, 0) + 1

        average_time = (
            round(sum(q.estimatedTime for q in quizzes) / len(quizzes), 2)
            if quizzes else 0.0
        )

        return QuizCollectionStats(
            documentId=document_id,
            totalQuizzes=len(quizzes),
            totalQuestions=sum(q.total_questions for q in quizzes),
            types=types,
            difficulties=difficulties,
            averageEstimatedTime=average_time,
        )

    async def update_analytics(self, quiz_id: str, percentage: float, time_spent_ms: int) -> None:
        """
        Fold one completed attempt into the quiz's running averages
        """
        doc = await self.collection.find_one({"quizId": quiz_id}, {"analytics": 1})
        if not doc:
            raise NotFoundError(f"Quiz not found: {quiz_id}")

        analytics = doc.get("analytics") or {}
        count = analytics.get("attemptCount", 0)
        new_count = count + 1
        average_score = (analytics.get("averageScore", 0.0) * count + percentage) / new_count
        average_time = (analytics.get("averageTime", 0.0) * count + time_spent_ms) / new_count

        now = utc_now()
        # Guarded on the count read above so a concurrent update is not lost silently
        result = await self.collection.update_one(
            {"quizId": quiz_id, "analytics.attemptCount": count},
            {"$set": {
                "analytics.attemptCount": new_count,
                "analytics.averageScore": round(average_score, 2),
                "analytics.averageTime": round(average_time, 2),
                "analytics.lastAttemptAt": now,
                "updatedAt": now,
            }}
        )
        if result.matched_count == 0:
            logger.warning(f"⚠️ Analytics of quiz {quiz_id} changed concurrently, retrying")
            await self.update_analytics(quiz_id, percentage, time_spent_ms)
            return

        logger.info(f"📊 Quiz {quiz_id} analytics updated: {new_count} attempts")
