"""
Document API Routes
Upload, inspect and (re)process documents; list the quizzes generated from them.
"""
from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Query, Depends, BackgroundTasks, status
from fastapi.responses import FileResponse
from typing import List, Optional
import os
import secrets
import hashlib
import logging

from docquiz.api.dependencies import get_user_id, get_document_service, get_quiz_service
from docquiz.core.config import Settings, get_settings
from docquiz.models.document import (
    Document,
    DocumentResponse,
    DocumentStatus,
    ProcessingAcknowledgement,
    ReprocessRequest,
)
from docquiz.models.quiz import QuizSummary, QuizCollectionStats, QuestionType
from docquiz.services.document_service import DocumentService
from docquiz.services.quiz_service import QuizService
from docquiz.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
}


def validate_file_type(contents: bytes, ext: str) -> bool:
    """
    Validate file content matches its extension
    PDF files start with %PDF-; text files must decode as UTF-8
    """
    if ext == ".pdf":
        return contents.startswith(b'%PDF-')
    try:
        contents.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def generate_safe_filename(original_filename: str) -> str:
    """
    Generate a safe, unique filename
    Prevents path traversal attacks
    """
    safe_name = os.path.basename(original_filename)
    _, ext = os.path.splitext(safe_name)

    timestamp = utc_now().strftime("%Y%m%d_%H%M%S")
    random_token = secrets.token_hex(8)

    return f"{timestamp}_{random_token}{ext.lower()}"


def calculate_file_hash(contents: bytes) -> str:
    """Calculate SHA-256 hash of file for deduplication"""
    return hashlib.sha256(contents).hexdigest()


@router.post(
    "/documents/upload",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document",
    description="""
    Upload a PDF or TXT document.

    With `process_immediately=true` the processing pipeline is scheduled in the
    background and the document is returned with status `processing`.
    Uploading the same file twice returns the existing document.
    """
)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    process_immediately: bool = Form(default=False),
    user_id: str = Depends(get_user_id),
    service: DocumentService = Depends(get_document_service),
    settings: Settings = Depends(get_settings)
) -> DocumentResponse:
    filename = file.filename or ""
    ext = os.path.splitext(filename)[1].lower()
    if ext not in settings.allowed_extensions:
        logger.warning(f"Invalid file extension attempted: {ext}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {', '.join(settings.allowed_extensions)} files are allowed"
        )

    contents = await file.read()

    if not contents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    if len(contents) > settings.max_file_size:
        logger.warning(f"File too large: {len(contents)} bytes")
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {settings.max_file_size / (1024*1024):.1f}MB"
        )

    if not validate_file_type(contents, ext):
        logger.warning(f"Invalid content for file: {filename}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File content does not match its {ext} extension"
        )

    file_hash = calculate_file_hash(contents)
    existing = await service.find_by_hash(user_id, file_hash)
    if existing:
        logger.info(f"🔴 Duplicate upload of {filename}, returning {existing.documentId}")
        return DocumentResponse.from_document(existing)

    os.makedirs(settings.upload_dir, exist_ok=True)
    file_path = os.path.join(settings.upload_dir, generate_safe_filename(filename))
    with open(file_path, "wb") as buffer:
        buffer.write(contents)
    logger.info(f"✅ File saved: {file_path}")

    try:
        document = await service.create_document(
            owner_id=user_id,
            filename=os.path.basename(filename),
            file_path=file_path,
            file_size=len(contents),
            content_type=CONTENT_TYPES[ext],
            file_hash=file_hash,
        )
    except Exception:
        if os.path.exists(file_path):
            os.remove(file_path)
            logger.info(f"Cleaned up file after error: {file_path}")
        raise

    if process_immediately:
        await service.start_background_processing(document.documentId, user_id, background_tasks)
        document = await service.get_document(document.documentId, user_id, record_view=False)

    return DocumentResponse.from_document(document)


@router.get(
    "/documents",
    response_model=List[DocumentResponse],
    summary="List documents"
)
async def list_documents(
    status_filter: Optional[DocumentStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    service: DocumentService = Depends(get_document_service)
) -> List[DocumentResponse]:
    documents = await service.list_documents(user_id, status=status_filter, skip=skip, limit=limit)
    return [DocumentResponse.from_document(d) for d in documents]


@router.get(
    "/documents/{document_id}",
    response_model=Document,
    summary="Get a document with its content and processing state"
)
async def get_document(
    document_id: str,
    user_id: str = Depends(get_user_id),
    service: DocumentService = Depends(get_document_service)
) -> Document:
    return await service.get_document(document_id, user_id)


@router.get(
    "/documents/{document_id}/download",
    summary="Download the original file"
)
async def download_document(
    document_id: str,
    user_id: str = Depends(get_user_id),
    service: DocumentService = Depends(get_document_service)
):
    document = await service.record_download(document_id, user_id)
    if not os.path.exists(document.filePath):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stored file is missing")
    return FileResponse(document.filePath, media_type=document.contentType, filename=document.filename)


@router.post(
    "/documents/{document_id}/reprocess",
    response_model=ProcessingAcknowledgement,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start processing a pending or failed document",
    description="""
    Restarts the whole pipeline from the first stage.

    Rejected with 409 when the document is already processing or completed.
    """
)
async def reprocess_document(
    document_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[ReprocessRequest] = None,
    user_id: str = Depends(get_user_id),
    service: DocumentService = Depends(get_document_service),
    settings: Settings = Depends(get_settings)
) -> ProcessingAcknowledgement:
    config = request.to_config(settings) if request and request.model_fields_set else None
    return await service.start_background_processing(document_id, user_id, background_tasks, config)


@router.get(
    "/documents/{document_id}/quizzes",
    response_model=List[QuizSummary],
    summary="List the quizzes generated from a document"
)
async def list_document_quizzes(
    document_id: str,
    quiz_type: Optional[QuestionType] = Query(default=None, alias="type"),
    difficulty: Optional[str] = Query(default=None),
    user_id: str = Depends(get_user_id),
    quiz_service: QuizService = Depends(get_quiz_service)
) -> List[QuizSummary]:
    quizzes = await quiz_service.list_quizzes(document_id, user_id, quiz_type=quiz_type, difficulty=difficulty)
    return [QuizSummary.from_quiz(q) for q in quizzes]


@router.get(
    "/documents/{document_id}/quiz-stats",
    response_model=QuizCollectionStats,
    summary="Statistics of a document's quiz collection"
)
async def get_document_quiz_stats(
    document_id: str,
    user_id: str = Depends(get_user_id),
    quiz_service: QuizService = Depends(get_quiz_service)
) -> QuizCollectionStats:
    return await quiz_service.get_collection_stats(document_id, user_id)
