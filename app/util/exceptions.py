"""
Error taxonomy.

Fatal at the call site:
- ConfigurationError: a backend credential is missing.
- ExtractionError / AsyncJobResponseError: the file being processed failed.
- NotFoundError: update/delete on an id the repository doesn't hold.
- StorageError: the PDF or a repository table couldn't be written.

ClassificationError is raised by the classifier but caught per record by the
backfill, so one bad record never sinks the batch.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""


class ExtractionError(AppError):
    """Raised when the extraction backend fails or returns an unusable response."""


class AsyncJobResponseError(ExtractionError):
    """Raised when the backend hands back a job handle instead of a result."""


class ClassificationError(AppError):
    """Raised when the classification backend call fails."""


class StorageError(AppError):
    """Raised when a file or table can't be written."""


class NotFoundError(AppError):
    """Raised when a repository operation targets a missing id."""

    def __init__(self, entity: str, item_id: str):
        super().__init__(f"{entity} {item_id} not found")
        self.entity = entity
        self.item_id = item_id
