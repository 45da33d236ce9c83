"""
Pydantic models for document management
FILE: docquiz/models/document.py
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, List, Literal
from datetime import datetime
import uuid

from docquiz.models.quiz import QuestionType, QuizGenerationConfig
from docquiz.utils.timeutils import utc_now


DocumentStatus = Literal["pending", "processing", "completed", "failed"]
ProcessingStage = Literal["upload", "ai_analysis", "processing", "completed", "finalization"]

# Statuses from which a processing run may start
REPROCESSABLE_STATUSES = ("pending", "failed")

ComplexityBand = Literal["very_simple", "simple", "moderate", "complex", "very_complex"]
QualityBand = Literal["poor", "fair", "good", "excellent"]


class DocumentContent(BaseModel):
    extractedText: Optional[str] = None
    summary: Optional[str] = None
    keyPoints: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)


class FileMetadata(BaseModel):
    pageCount: Optional[int] = None
    wordCount: Optional[int] = None
    characterCount: Optional[int] = None
    language: Optional[str] = None
    complexity: Optional[ComplexityBand] = None
    quality: Optional[QualityBand] = None
    estimatedTokens: Optional[int] = None
    wasTruncated: bool = False


class ProcessingMetadata(BaseModel):
    """Metadata of the last comprehensive processing run"""
    model: Optional[str] = None
    provider: Optional[str] = None
    language: Optional[str] = None
    quizCount: int = 0
    questionCount: int = 0
    quizIds: List[str] = Field(default_factory=list)
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    timingMs: Dict[str, int] = Field(default_factory=dict)


class DocumentAnalytics(BaseModel):
    viewCount: int = 0
    downloadCount: int = 0
    quizGeneratedCount: int = 0
    lastViewedAt: Optional[datetime] = None
    lastDownloadedAt: Optional[datetime] = None
    lastAccessedAt: Optional[datetime] = None


class ErrorInfo(BaseModel):
    kind: str
    message: str
    stage: Optional[str] = None
    occurredAt: datetime = Field(default_factory=utc_now)


class Document(BaseModel):
    """
    Uploaded document and its derived AI content (collection: documents)
    """
    documentId: str = Field(
        default_factory=lambda: f"doc_{uuid.uuid4().hex[:12]}",
        description="Unique document identifier"
    )
    ownerId: str = Field(..., min_length=1)
    filename: str
    filePath: str
    fileSize: int = Field(..., ge=0)
    contentType: str
    fileHash: str

    status: DocumentStatus = "pending"
    processingStage: ProcessingStage = "upload"
    processingAttempts: int = 0

    content: DocumentContent = Field(default_factory=DocumentContent)
    fileMetadata: FileMetadata = Field(default_factory=FileMetadata)
    processingMetadata: ProcessingMetadata = Field(default_factory=ProcessingMetadata)
    analytics: DocumentAnalytics = Field(default_factory=DocumentAnalytics)
    errorInfo: Optional[ErrorInfo] = None

    createdAt: datetime = Field(default_factory=utc_now)
    updatedAt: datetime = Field(default_factory=utc_now)

    class Config:
        json_schema_extra = {
            "example": {
                "documentId": "doc_3f9a1c2b7d4e",
                "ownerId": "user_42",
                "filename": "cell_biology.pdf",
                "filePath": "uploads/3f9a1c2b7d4e.pdf",
                "fileSize": 482113,
                "contentType": "application/pdf",
                "fileHash": "9c56cc51b374c3ba189210d5b6d4bf57790d351c96c47c02190ecf1e430635ab",
                "status": "completed",
                "processingStage": "completed",
                "processingAttempts": 1
            }
        }


class DocumentResponse(BaseModel):
    """
    Response model for document list queries
    Excludes extracted text to keep responses lightweight
    """
    documentId: str
    filename: str
    fileSize: int
    contentType: str
    status: DocumentStatus
    processingStage: ProcessingStage
    processingAttempts: int
    summary: Optional[str] = None
    fileMetadata: FileMetadata
    errorInfo: Optional[ErrorInfo] = None
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentResponse":
        return cls(
            documentId=doc.documentId,
            filename=doc.filename,
            fileSize=doc.fileSize,
            contentType=doc.contentType,
            status=doc.status,
            processingStage=doc.processingStage,
            processingAttempts=doc.processingAttempts,
            summary=doc.content.summary,
            fileMetadata=doc.fileMetadata,
            errorInfo=doc.errorInfo,
            createdAt=doc.createdAt,
            updatedAt=doc.updatedAt,
        )


class ProcessingAcknowledgement(BaseModel):
    """Returned when a processing run has been scheduled"""
    documentId: str
    status: DocumentStatus
    processingStage: ProcessingStage
    processingAttempts: int
    message: str = "Document processing started"


class ReprocessRequest(BaseModel):
    """Optional generation overrides for a processing run"""
    questionTypes: Optional[List[QuestionType]] = Field(default=None, min_length=1)
    questionsPerQuiz: Optional[int] = Field(default=None, ge=1, le=50)
    difficulty: Optional[str] = None
    language: Optional[str] = None

    def to_config(self, settings) -> QuizGenerationConfig:
        return QuizGenerationConfig.from_settings(
            settings,
            question_types=self.questionTypes,
            questions_per_quiz=self.questionsPerQuiz,
            difficulty=self.difficulty,
            language=self.language,
        )
