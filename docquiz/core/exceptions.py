"""
Domain exceptions
FILE: docquiz/core/exceptions.py

Every error raised by the services carries a machine-readable ``kind`` and
the HTTP status the API layer answers with.
"""


class DocQuizError(Exception):
    """Base exception for all domain errors"""
    kind = "unknown-error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind


class NotFoundError(DocQuizError):
    """Requested record does not exist or is not visible to the caller"""
    kind = "not-found"
    status_code = 404


class InvalidStateError(DocQuizError):
    """Operation not allowed in the record's current state"""
    kind = "invalid-state"
    status_code = 409


class BadInputError(DocQuizError):
    """Request payload failed validation"""
    kind = "bad-input"
    status_code = 400


class TextExtractionError(DocQuizError):
    """Text could not be extracted from the stored file"""
    kind = "extraction-failure"
    status_code = 422
