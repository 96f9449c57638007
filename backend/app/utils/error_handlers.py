"""
Centralized error types and user-facing error messages.
"""
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Bad or missing input field."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found", details: dict | None = None):
        super().__init__(message, status_code=404, details=details)


class DuplicateEmailError(AppError):
    """A candidate with the same email is already stored."""
    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or get_error_message("email_exists"), status_code=400, details=details)


class PersistenceError(AppError):
    """Storage operation failed for reasons unrelated to business rules."""
    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(message or get_error_message("database_error"), status_code=500, details=details)


class CandidateWriteError(PersistenceError):
    """The candidate row itself could not be written. Nothing was stored."""


class ChildWriteError(PersistenceError):
    """
    The candidate row produced an identity but one of its education, work experience
    or resume rows failed.

    `compensated` tells whether the parent row is gone again (rolled back or deleted).
    When it is False, `parent_id` names the orphaned row.
    """
    def __init__(
        self,
        message: str | None = None,
        *,
        parent_id: int | None = None,
        compensated: bool = True,
        details: dict | None = None,
    ):
        self.parent_id = parent_id
        self.compensated = compensated
        details = {**(details or {}), "parent_id": parent_id, "compensated": compensated}
        super().__init__(message or get_error_message("candidate_details_failed"), details=details)


# User-friendly error messages
ERROR_MESSAGES = {
    # Candidates
    "candidate_add_failed": "Error adding candidate",
    "candidate_added": "Candidate added successfully",
    "candidate_not_found": "Candidate not found",
    "candidate_details_failed": "Error saving candidate education, experience or resume records",
    "email_exists": "The email already exists in the database",
    "invalid_email": "Invalid email",
    "resume_required": "At least one resume is required",
    "invalid_cv": "Invalid CV data: filePath is required",

    # File uploads
    "file_too_large": "File is too large. Maximum size is {limit}.",
    "invalid_file_type": "Invalid file type. Please upload a PDF or DOCX file.",
    "file_processing_failed": "Failed to store the uploaded file.",

    # General
    "server_error": "Something went wrong on our end. Please try again later.",
    "database_error": "Database operation failed",
}


def get_error_message(error_key: str, default: str | None = None) -> str:
    """Get a user-friendly error message."""
    return ERROR_MESSAGES.get(error_key, default or ERROR_MESSAGES["server_error"])


def is_unique_violation(error: Exception) -> bool:
    """Best-effort detection of a unique-constraint failure across DB drivers."""
    root = getattr(error, "orig", None) or error
    error_str = str(root).lower()
    return "duplicate" in error_str or "unique" in error_str


def create_error_response(status_code: int, message: str) -> JSONResponse:
    """
    Standard error body. The candidate form reads `message`, API clients read `error`;
    both always carry the same text.
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "message": message,
            "error": message,
        },
    )
