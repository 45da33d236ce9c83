"""
Document Service
Owns the document processing state machine:

    pending -> processing/ai_analysis -> processing/processing -> completed
                         |                        |
                         +--------> failed <------+

Processing runs detached (FastAPI BackgroundTasks). The pipeline body never
raises: every failure is persisted on the document as errorInfo. A retry
always restarts from the first stage.
"""
import asyncio
import logging
import time
from typing import Optional, List, Callable, Awaitable, Dict, Any

from fastapi import BackgroundTasks
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from docquiz.core.config import Settings, settings as default_settings
from docquiz.core.exceptions import DocQuizError, NotFoundError, InvalidStateError
from docquiz.db.mongodb import DOCUMENTS_COLLECTION
from docquiz.models.document import (
    Document,
    ErrorInfo,
    ProcessingAcknowledgement,
    REPROCESSABLE_STATUSES,
)
from docquiz.models.quiz import Quiz, QuizGenerationConfig
from docquiz.services import llm_client
from docquiz.services.quiz_service import QuizService
from docquiz.services.text_chunker import truncate_to_token_budget, chunk_stats
from docquiz.services.text_extractor import ExtractionResult, extract_text
from docquiz.utils.languages import SUPPORTED_LANGUAGES
from docquiz.utils.quiz_parser import parse_quiz_collection, parse_summary
from docquiz.utils.quiz_prompt import build_quiz_prompt, build_summary_prompt
from docquiz.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

CompleteFn = Callable[[str, int, float], Awaitable[str]]
ExtractFn = Callable[[str], ExtractionResult]


def _document_from_doc(doc: Dict[str, Any]) -> Document:
    doc.pop("_id", None)
    return Document(**doc)


def _error_kind(error: Exception) -> str:
    if isinstance(error, DocQuizError):
        return error.kind
    return "unknown-error"


def _elapsed_ms(started: float) -> int:
    return int((time.time() - started) * 1000)


class DocumentService:
    """Service class for document lifecycle operations"""

    COLLECTION_NAME = DOCUMENTS_COLLECTION

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        settings: Optional[Settings] = None,
        quiz_service: Optional[QuizService] = None,
        extractor: ExtractFn = extract_text,
        complete: CompleteFn = llm_client.complete
    ):
        """
        Initialize document service

        Args:
            db: MongoDB database instance
            settings: Application settings
            quiz_service: Quiz store receiving generated collections
            extractor: Text extraction collaborator
            complete: AI completion collaborator (prompt, max_tokens, temperature)
        """
        self.db = db
        self.collection = db[self.COLLECTION_NAME]
        self.settings = settings or default_settings
        self.quiz_service = quiz_service or QuizService(
            db, passing_score=self.settings.default_passing_score
        )
        self.extractor = extractor
        self.complete = complete

    # ==================== CRUD ====================

    async def create_document(
        self,
        owner_id: str,
        filename: str,
        file_path: str,
        file_size: int,
        content_type: str,
        file_hash: str
    ) -> Document:
        document = Document(
            ownerId=owner_id,
            filename=filename,
            filePath=file_path,
            fileSize=file_size,
            contentType=content_type,
            fileHash=file_hash,
        )
        await self.collection.insert_one(document.model_dump())
        logger.info(f"✅ Created document {document.documentId} ({filename}) for owner {owner_id}")
        return document

    async def get_document(self, document_id: str, owner_id: str, record_view: bool = True) -> Document:
        query = {"documentId": document_id, "ownerId": owner_id}
        if not record_view:
            doc = await self.collection.find_one(query)
        else:
            now = utc_now()
            doc = await self.collection.find_one_and_update(
                query,
                {
                    "$inc": {"analytics.viewCount": 1},
                    "$set": {"analytics.lastViewedAt": now, "analytics.lastAccessedAt": now}
                },
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            raise NotFoundError(f"Document not found: {document_id}")
        return _document_from_doc(doc)

    async def find_by_hash(self, owner_id: str, file_hash: str) -> Optional[Document]:
        """Owner's document with identical file content, if any"""
        doc = await self.collection.find_one({"ownerId": owner_id, "fileHash": file_hash})
        return _document_from_doc(doc) if doc else None

    async def list_documents(
        self,
        owner_id: str,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Document]:
        """Owner's documents, newest first"""
        query: Dict[str, Any] = {"ownerId": owner_id}
        if status:
            query["status"] = status

        cursor = self.collection.find(query).sort("createdAt", -1).skip(skip).limit(limit)
        return [_document_from_doc(doc) async for doc in cursor]

    async def record_download(self, document_id: str, owner_id: str) -> Document:
        now = utc_now()
        doc = await self.collection.find_one_and_update(
            {"documentId": document_id, "ownerId": owner_id},
            {
                "$inc": {"analytics.downloadCount": 1},
                "$set": {"analytics.lastDownloadedAt": now, "analytics.lastAccessedAt": now}
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError(f"Document not found: {document_id}")
        return _document_from_doc(doc)

    # ==================== PROCESSING GATE ====================

    async def request_processing(self, document_id: str, owner_id: str) -> Document:
        """
        Move a pending or failed document to processing/ai_analysis

        The status check and the transition are one conditional update, so
        two concurrent requests cannot both start a run.

        Raises:
            NotFoundError: Document missing or not owned by the caller
            InvalidStateError: Document is processing or completed
        """
        now = utc_now()
        doc = await self.collection.find_one_and_update(
            {
                "documentId": document_id,
                "ownerId": owner_id,
                "status": {"$in": list(REPROCESSABLE_STATUSES)},
            },
            {
                "$set": {
                    "status": "processing",
                    "processingStage": "ai_analysis",
                    "errorInfo": None,
                    "processingMetadata.startedAt": now,
                    "processingMetadata.completedAt": None,
                    "updatedAt": now,
                },
                "$inc": {"processingAttempts": 1},
            },
            return_document=ReturnDocument.AFTER,
        )

        if doc:
            logger.info(f"🚀 Document {document_id} queued for processing")
            return _document_from_doc(doc)

        existing = await self.collection.find_one(
            {"documentId": document_id, "ownerId": owner_id},
            {"status": 1}
        )
        if not existing:
            raise NotFoundError(f"Document not found: {document_id}")

        logger.warning(f"⚠️ Rejected processing of document {document_id}: status {existing['status']}")
        raise InvalidStateError(
            f"Document {document_id} is {existing['status']}; only pending or failed "
            f"documents can be processed"
        )

    async def start_background_processing(
        self,
        document_id: str,
        owner_id: str,
        background_tasks: BackgroundTasks,
        config: Optional[QuizGenerationConfig] = None
    ) -> ProcessingAcknowledgement:
        """Gate the document and schedule the pipeline; returns immediately"""
        document = await self.request_processing(document_id, owner_id)
        background_tasks.add_task(self.process_document, document_id, config)

        return ProcessingAcknowledgement(
            documentId=document.documentId,
            status=document.status,
            processingStage=document.processingStage,
            processingAttempts=document.processingAttempts,
        )

    # ==================== PIPELINE ====================

    async def _update(self, document_id: str, fields: Dict[str, Any], inc: Optional[Dict[str, int]] = None):
        update: Dict[str, Any] = {"$set": {**fields, "updatedAt": utc_now()}}
        if inc:
            update["$inc"] = inc
        result = await self.collection.update_one(
            {"documentId": document_id, "status": "processing"},
            update
        )
        if result.matched_count == 0:
            raise InvalidStateError(f"Document {document_id} left the processing state")

    def _generation_config(
        self,
        config: Optional[QuizGenerationConfig],
        extraction: ExtractionResult
    ) -> QuizGenerationConfig:
        if config is not None:
            return config
        language = extraction.language if extraction.language in SUPPORTED_LANGUAGES else None
        return QuizGenerationConfig.from_settings(self.settings, language=language)

    async def process_document(
        self,
        document_id: str,
        config: Optional[QuizGenerationConfig] = None
    ) -> None:
        """
        Run the whole pipeline for a document already gated to processing

        Never raises. Failures are persisted as status=failed with errorInfo.
        """
        stage = "ai_analysis"
        timings: Dict[str, int] = {}
        quizzes: List[Quiz] = []
        pipeline_started = time.time()

        try:
            doc = await self.collection.find_one({"documentId": document_id})
            if not doc:
                raise NotFoundError(f"Document not found: {document_id}")
            document = _document_from_doc(doc)
            if document.status != "processing":
                logger.warning(
                    f"⚠️ Skipping pipeline for document {document_id}: status {document.status}"
                )
                return

            logger.info(f"🚀 Processing document {document_id} (attempt {document.processingAttempts})")

            # Stage 1: extract and summarize
            started = time.time()
            extraction = await asyncio.to_thread(self.extractor, document.filePath)
            timings["extraction"] = _elapsed_ms(started)

            text = truncate_to_token_budget(
                extraction.text,
                self.settings.max_input_tokens,
                self.settings.chars_per_token
            )
            stats = chunk_stats(extraction.text, text, self.settings.chars_per_token)
            if stats["was_truncated"]:
                logger.info(
                    f"✂️ Document {document_id} truncated from {stats['original_tokens']} "
                    f"to {stats['truncated_tokens']} estimated tokens"
                )

            generation = self._generation_config(config, extraction)

            await self._update(document_id, {
                "content.extractedText": extraction.text,
                "fileMetadata": {
                    "pageCount": extraction.page_count,
                    "wordCount": extraction.word_count,
                    "characterCount": extraction.character_count,
                    "language": extraction.language,
                    "complexity": extraction.complexity,
                    "quality": extraction.quality,
                    "estimatedTokens": stats["original_tokens"],
                    "wasTruncated": stats["was_truncated"],
                },
            })

            started = time.time()
            raw_summary = await self.complete(
                build_summary_prompt(text, generation.language),
                self.settings.summary_max_tokens,
                self.settings.summary_temperature
            )
            analysis = parse_summary(raw_summary)
            timings["summary"] = _elapsed_ms(started)

            await self._update(document_id, {
                "content.summary": analysis.summary,
                "content.keyPoints": analysis.keyPoints,
                "content.topics": analysis.topics,
                "processingStage": "processing",
            })
            stage = "processing"
            logger.info(f"✅ Summary stored for document {document_id}")

            # Stage 2: generate, validate and store the quiz collection
            started = time.time()
            raw_quizzes = await self.complete(
                build_quiz_prompt(text, generation),
                self.settings.quiz_max_tokens,
                self.settings.quiz_temperature
            )
            parsed = parse_quiz_collection(raw_quizzes, generation)
            timings["quizGeneration"] = _elapsed_ms(started)

            provider = self.settings.llm_provider
            model = llm_client.get_model_name(provider)

            quizzes = await self.quiz_service.store_quiz_collection(
                parsed,
                document_id=document.documentId,
                owner_id=document.ownerId,
                config=generation,
                model=model,
                provider=provider,
            )

            timings["total"] = _elapsed_ms(pipeline_started)
            await self._update(
                document_id,
                {
                    "status": "completed",
                    "processingStage": "completed",
                    "processingMetadata.model": model,
                    "processingMetadata.provider": provider,
                    "processingMetadata.language": generation.language,
                    "processingMetadata.quizCount": len(quizzes),
                    "processingMetadata.questionCount": parsed.question_count,
                    "processingMetadata.quizIds": [q.quizId for q in quizzes],
                    "processingMetadata.completedAt": utc_now(),
                    "processingMetadata.timingMs": timings,
                },
                inc={"analytics.quizGeneratedCount": len(quizzes)},
            )
            logger.info(
                f"🏁 Document {document_id} completed: {len(quizzes)} quizzes, "
                f"{parsed.question_count} questions in {timings['total']}ms"
            )

        except Exception as e:
            logger.error(f"❌ Processing failed for document {document_id} at stage {stage}: {e}")
            await self._mark_failed(document_id, e, stage)
            await self._discard_unfinished(document_id, quizzes)

    async def _discard_unfinished(self, document_id: str, quizzes: List[Quiz]) -> None:
        if not quizzes:
            return
        try:
            await self.quiz_service.discard_quizzes([q.quizId for q in quizzes])
        except Exception as db_error:
            logger.error(f"❌ Could not discard quizzes for document {document_id}: {db_error}")

    async def _mark_failed(self, document_id: str, error: Exception, stage: str) -> None:
        error_info = ErrorInfo(kind=_error_kind(error), message=str(error) or type(error).__name__, stage=stage)
        try:
            await self.collection.update_one(
                {"documentId": document_id, "status": "processing"},
                {"$set": {
                    "status": "failed",
                    "processingStage": "finalization",
                    "errorInfo": error_info.model_dump(),
                    "updatedAt": utc_now(),
                }}
            )
        except Exception as db_error:
            logger.error(f"❌ Could not record failure for document {document_id}: {db_error}")
