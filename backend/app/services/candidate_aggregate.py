"""
Candidate aggregate: a candidate together with its education, work experience and
resume collections, saved and loaded as one unit.

`id` is None until the first successful save. `save()` inserts while the aggregate is
new and updates once it is persisted; identities are only assigned after the storage
write succeeded.
"""
import logging
from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from ..models.candidate import Candidate
from .candidate_gateway import WriteResult, insert_candidate, load_candidate, update_candidate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    # Timestamps are normalized to UTC before storage; SQLite hands them back naive.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EducationEntry(_CamelModel):
    # Row id is internal; the API renders entries exactly as they were submitted.
    id: int | None = Field(default=None, exclude=True)
    institution: str
    title: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class WorkExperienceEntry(_CamelModel):
    id: int | None = Field(default=None, exclude=True)
    company: str
    position: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None


class ResumeEntry(_CamelModel):
    id: int | None = None
    candidate_id: int | None = None
    upload_date: datetime = Field(default_factory=_utcnow)
    file_path: str
    file_type: str | None = None


class CandidateAggregate(_CamelModel):
    id: int | None = None
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    address: str | None = None
    educations: list[EducationEntry] = Field(default_factory=list)
    work_experiences: list[WorkExperienceEntry] = Field(default_factory=list)
    resumes: list[ResumeEntry] = Field(default_factory=list)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @classmethod
    def from_payload(cls, data: dict) -> "CandidateAggregate":
        """Build a new, unsaved aggregate from the output of `validate_candidate_data`."""
        return cls(
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=data["email"],
            phone=data.get("phone"),
            address=data.get("address"),
            educations=[EducationEntry(**e) for e in data.get("educations") or []],
            work_experiences=[WorkExperienceEntry(**w) for w in data.get("work_experiences") or []],
            resumes=[
                ResumeEntry(**{k: v for k, v in r.items() if v is not None})
                for r in data.get("resumes") or []
            ],
        )

    @classmethod
    def from_row(cls, row: Candidate) -> "CandidateAggregate":
        return cls(
            id=row.id,
            first_name=row.first_name,
            last_name=row.last_name,
            email=row.email,
            phone=row.phone,
            address=row.address,
            educations=[
                EducationEntry(
                    id=e.id,
                    institution=e.institution,
                    title=e.title,
                    start_date=e.start_date,
                    end_date=e.end_date,
                )
                for e in row.educations
            ],
            work_experiences=[
                WorkExperienceEntry(
                    id=w.id,
                    company=w.company,
                    position=w.position,
                    start_date=w.start_date,
                    end_date=w.end_date,
                    description=w.description,
                )
                for w in row.work_experiences
            ],
            resumes=[
                ResumeEntry(
                    id=r.id,
                    candidate_id=r.candidate_id,
                    upload_date=_as_utc(r.upload_date) or _utcnow(),
                    file_path=r.file_path,
                    file_type=r.file_type,
                )
                for r in row.resumes
            ],
        )

    @classmethod
    def find_one(cls, db: Session, candidate_id: int) -> "CandidateAggregate | None":
        """Fully reconstructed aggregate, or None when no candidate has this id."""
        row = load_candidate(db, candidate_id)
        if row is None:
            return None
        return cls.from_row(row)

    def save(self, db: Session, strategy: str | None = None) -> "CandidateAggregate":
        if self.is_persisted:
            result = update_candidate(db, self)
        else:
            result = insert_candidate(db, self, strategy=strategy)
        self._assign_identities(result)
        logger.info(
            "Saved candidate %s (%d educations, %d work experiences, %d resumes)",
            self.id,
            len(self.educations),
            len(self.work_experiences),
            len(self.resumes),
        )
        return self

    def _assign_identities(self, result: WriteResult) -> None:
        self.id = result.candidate_id
        for entry, entry_id in zip(self.educations, result.education_ids):
            entry.id = entry_id
        for entry, entry_id in zip(self.work_experiences, result.work_experience_ids):
            entry.id = entry_id
        for entry, entry_id in zip(self.resumes, result.resume_ids):
            entry.id = entry_id
            entry.candidate_id = result.candidate_id

    def to_public(self) -> dict:
        """API representation: camelCase keys, collections always lists."""
        return self.model_dump(mode="json", by_alias=True)
