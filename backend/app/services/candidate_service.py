"""
Candidate creation workflow: validate, build the aggregate, persist.
"""
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import REQUIRE_RESUME
from ..utils.error_handlers import AppError, DuplicateEmailError, ValidationError
from ..utils.validation import validate_candidate_data
from .candidate_aggregate import CandidateAggregate

logger = logging.getLogger(__name__)


class CandidateResult(BaseModel):
    success: bool
    data: dict | None = None
    error_type: str | None = None  # validation | duplicate_email | persistence
    message: str | None = None


def _error_type(error: AppError) -> str:
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, DuplicateEmailError):
        return "duplicate_email"
    return "persistence"


def create_candidate(db: Session, payload: dict, require_resume: bool | None = None) -> CandidateAggregate:
    """
    Validate `payload`, then save it as a new candidate.

    Validation runs to completion before anything touches storage. Errors propagate
    unchanged so their message reaches the caller verbatim.
    """
    if require_resume is None:
        require_resume = REQUIRE_RESUME
    data = validate_candidate_data(payload, require_resume=require_resume)
    candidate = CandidateAggregate.from_payload(data)
    return candidate.save(db)


def add_candidate(db: Session, payload: dict, require_resume: bool | None = None) -> CandidateResult:
    try:
        candidate = create_candidate(db, payload, require_resume=require_resume)
    except AppError as e:
        logger.warning("Candidate not added (%s): %s", _error_type(e), e.message)
        return CandidateResult(success=False, error_type=_error_type(e), message=e.message)

    return CandidateResult(success=True, data=candidate.to_public())


def get_candidate(db: Session, candidate_id: int) -> dict | None:
    candidate = CandidateAggregate.find_one(db, candidate_id)
    return candidate.to_public() if candidate else None
