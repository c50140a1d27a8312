"""Document pipeline exceptions."""

from .base import BaseAppException


class DocumentExtractionError(BaseAppException):
    """Raised when text cannot be read from an uploaded document."""

    def __init__(self, message: str = "Unable to read the uploaded document"):
        super().__init__(message=message, status_code=400, error_code="DOCUMENT_EXTRACTION_ERROR")
