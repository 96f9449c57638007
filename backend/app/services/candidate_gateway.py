"""
Persistence gateway for the candidate aggregate.

This is the only module that touches the candidates, educations, work_experiences
and resumes tables. Child rows are written only once the candidate row has produced
an id, and the two ways an insert can fail are reported separately:

- CandidateWriteError: the candidate row itself failed, nothing was stored.
- ChildWriteError: the candidate row got an id but a child row failed. The error
  says whether the candidate row was removed again (`compensated`).

Two write strategies are available (CANDIDATE_WRITE_STRATEGY):

- "transaction": parent flushed, children flushed, single commit. A child failure
  rolls the whole thing back.
- "sequential": parent committed on its own, children committed afterwards. A child
  failure triggers a compensating delete of the candidate and any rows written for it.
"""
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..config import CANDIDATE_WRITE_STRATEGY
from ..models.candidate import Candidate
from ..models.education import Education
from ..models.resume import Resume
from ..models.work_experience import WorkExperience
from ..utils.error_handlers import (
    CandidateWriteError,
    ChildWriteError,
    DuplicateEmailError,
    PersistenceError,
    get_error_message,
    is_unique_violation,
)

if TYPE_CHECKING:
    from .candidate_aggregate import CandidateAggregate

logger = logging.getLogger(__name__)

WRITE_STRATEGIES = ("transaction", "sequential")
CANDIDATE_FIELDS = {"first_name", "last_name", "email", "phone", "address"}
# Identity columns are owned by the database, never copied from the aggregate.
_IDENTITY_FIELDS = {"id", "candidate_id"}


class WriteResult(BaseModel):
    """Identities produced by a successful write, in the aggregate's collection order."""
    candidate_id: int
    education_ids: list[int] = Field(default_factory=list)
    work_experience_ids: list[int] = Field(default_factory=list)
    resume_ids: list[int] = Field(default_factory=list)


def _assign(row, values: dict) -> None:
    for key, value in values.items():
        setattr(row, key, value)


def _child_row(model, candidate_id: int, entry):
    row = model(candidate_id=candidate_id)
    _assign(row, entry.model_dump(exclude=_IDENTITY_FIELDS))
    return row


def _child_rows(candidate_id: int, candidate: "CandidateAggregate") -> tuple[list, list, list]:
    return (
        [_child_row(Education, candidate_id, e) for e in candidate.educations],
        [_child_row(WorkExperience, candidate_id, w) for w in candidate.work_experiences],
        [_child_row(Resume, candidate_id, r) for r in candidate.resumes],
    )


def _result(candidate_id: int, educations: list, work_experiences: list, resumes: list) -> WriteResult:
    return WriteResult(
        candidate_id=candidate_id,
        education_ids=[r.id for r in educations],
        work_experience_ids=[r.id for r in work_experiences],
        resume_ids=[r.id for r in resumes],
    )


def _write_parent(db: Session, candidate: "CandidateAggregate", *, commit: bool) -> int:
    row = Candidate()
    _assign(row, candidate.model_dump(include=CANDIDATE_FIELDS))
    try:
        db.add(row)
        if commit:
            db.commit()
        else:
            db.flush()
        candidate_id = row.id
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.warning("Rejected duplicate candidate email %s", candidate.email)
            raise DuplicateEmailError() from e
        logger.error("Candidate insert violated a constraint: %s", e)
        raise CandidateWriteError(get_error_message("candidate_add_failed")) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Candidate insert failed: %s", e)
        raise CandidateWriteError(get_error_message("candidate_add_failed")) from e

    if candidate_id is None:
        raise CandidateWriteError(get_error_message("candidate_add_failed"))
    return candidate_id


def _delete_candidate_rows(db: Session, candidate_id: int) -> bool:
    """Compensating action for a half-written candidate. Returns True when nothing is left behind."""
    try:
        for model in (Education, WorkExperience, Resume):
            db.query(model).filter(model.candidate_id == candidate_id).delete(synchronize_session=False)
        db.query(Candidate).filter(Candidate.id == candidate_id).delete(synchronize_session=False)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Compensating delete failed, candidate %s is orphaned: %s", candidate_id, e)
        return False


def _insert_in_transaction(db: Session, candidate: "CandidateAggregate") -> WriteResult:
    candidate_id = _write_parent(db, candidate, commit=False)
    educations, work_experiences, resumes = _child_rows(candidate_id, candidate)
    try:
        db.add_all([*educations, *work_experiences, *resumes])
        db.flush()
        result = _result(candidate_id, educations, work_experiences, resumes)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Child rows for candidate %s failed, transaction rolled back: %s", candidate_id, e)
        raise ChildWriteError(parent_id=candidate_id, compensated=True) from e
    return result


def _insert_sequential(db: Session, candidate: "CandidateAggregate") -> WriteResult:
    candidate_id = _write_parent(db, candidate, commit=True)
    educations, work_experiences, resumes = _child_rows(candidate_id, candidate)
    try:
        db.add_all([*educations, *work_experiences, *resumes])
        db.flush()
        result = _result(candidate_id, educations, work_experiences, resumes)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Child rows for candidate %s failed, deleting the candidate row: %s", candidate_id, e)
        compensated = _delete_candidate_rows(db, candidate_id)
        raise ChildWriteError(parent_id=candidate_id, compensated=compensated) from e
    return result


def insert_candidate(db: Session, candidate: "CandidateAggregate", strategy: str | None = None) -> WriteResult:
    strategy = (strategy or CANDIDATE_WRITE_STRATEGY).strip().lower()
    if strategy == "transaction":
        return _insert_in_transaction(db, candidate)
    if strategy == "sequential":
        return _insert_sequential(db, candidate)
    raise ValueError(f"Unknown candidate write strategy: {strategy!r} (expected one of {WRITE_STRATEGIES})")


def _merge_children(db: Session, model, candidate_id: int, entries: list) -> list:
    """
    Entries with an id update their row, entries without one are inserted.
    Stored rows that are not in `entries` are left untouched.
    """
    rows = []
    for entry in entries:
        if entry.id is None:
            row = _child_row(model, candidate_id, entry)
            db.add(row)
        else:
            row = db.get(model, entry.id)
            if row is None or row.candidate_id != candidate_id:
                raise PersistenceError(
                    f"{model.__tablename__} row {entry.id} does not belong to candidate {candidate_id}"
                )
            _assign(row, entry.model_dump(exclude=_IDENTITY_FIELDS))
        rows.append(row)
    return rows


def update_candidate(db: Session, candidate: "CandidateAggregate") -> WriteResult:
    try:
        row = db.get(Candidate, candidate.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Loading candidate %s for update failed: %s", candidate.id, e)
        raise PersistenceError() from e
    if row is None:
        raise PersistenceError(f"Candidate {candidate.id} does not exist")

    try:
        _assign(row, candidate.model_dump(include=CANDIDATE_FIELDS))
        educations = _merge_children(db, Education, row.id, candidate.educations)
        work_experiences = _merge_children(db, WorkExperience, row.id, candidate.work_experiences)
        resumes = _merge_children(db, Resume, row.id, candidate.resumes)
        db.flush()
        result = _result(row.id, educations, work_experiences, resumes)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.warning("Rejected duplicate candidate email %s on update", candidate.email)
            raise DuplicateEmailError() from e
        logger.error("Candidate %s update violated a constraint: %s", candidate.id, e)
        raise PersistenceError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Candidate %s update failed: %s", candidate.id, e)
        raise PersistenceError() from e
    except PersistenceError:
        db.rollback()
        raise
    return result


def load_candidate(db: Session, candidate_id: int) -> Candidate | None:
    try:
        return (
            db.query(Candidate)
            .options(
                selectinload(Candidate.educations),
                selectinload(Candidate.work_experiences),
                selectinload(Candidate.resumes),
            )
            .filter(Candidate.id == candidate_id)
            .first()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Loading candidate %s failed: %s", candidate_id, e)
        raise PersistenceError() from e


def count_candidates(db: Session) -> int:
    return int(db.query(func.count(Candidate.id)).scalar() or 0)
