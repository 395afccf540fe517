"""
Persistence collaborator for the upload queue.

The queue only needs four operations, described by CandidateStore. The
database implementation writes CV files and portraits to blob storage and
keeps their paths on the candidate row.
"""

import logging
from typing import Callable, List, Optional, Protocol

from sqlalchemy.orm import Session

from talentflow.core.database import SessionLocal
from talentflow.core.storage import StorageBackend, get_storage
from talentflow.crud import application as application_crud
from talentflow.crud import candidate as candidate_crud
from talentflow.crud import job as job_crud
from talentflow.schemas.application import ApplicationRecord
from talentflow.schemas.candidate import CandidateRecord
from talentflow.schemas.job import JobPosition
from talentflow.services.image_transform import JPEG_MIME_TYPE

logger = logging.getLogger(__name__)


class CandidateStore(Protocol):
    """Operations the upload queue needs from the hosting application."""

    def create_candidate(self, record: CandidateRecord) -> None:
        """Store a candidate. Retrying with the same id must not duplicate it."""
        ...

    def create_application(self, record: ApplicationRecord) -> None:
        """Store an application. No-op when the (candidate, job) pair exists."""
        ...

    def find_job(self, job_id: str) -> Optional[JobPosition]:
        ...

    def list_candidates(self) -> List[CandidateRecord]:
        """Current known candidates, used for duplicate detection."""
        ...


class DatabaseCandidateStore:
    """CandidateStore backed by SQLAlchemy and the blob storage backend."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        storage: Optional[StorageBackend] = None
    ):
        self._session_factory = session_factory
        self._storage = storage

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    def create_candidate(self, record: CandidateRecord) -> None:
        db = self._session_factory()
        uploaded: List[str] = []
        try:
            if candidate_crud.get_by_id(db, record.id):
                logger.info(f"Candidate {record.id} already stored, skipping")
                return

            cv_path = None
            if record.cv_content:
                cv_path = self.storage.upload_bytes(
                    record.cv_content, "cvs", record.cv_mime_type or "application/octet-stream"
                )
                uploaded.append(cv_path)
            photo_path = None
            if record.photo:
                photo_path = self.storage.upload_bytes(record.photo, "portraits", JPEG_MIME_TYPE)
                uploaded.append(photo_path)

            candidate_crud.create(db, record, photo_path=photo_path, cv_path=cv_path)
            logger.info(f"Stored candidate {record.id} ({record.full_name})")
        except Exception:
            db.rollback()
            # No row points at these blobs
            for path in uploaded:
                self.storage.delete_file(path)
            raise
        finally:
            db.close()

    def create_application(self, record: ApplicationRecord) -> None:
        db = self._session_factory()
        try:
            application_crud.create(db, record)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def find_job(self, job_id: str) -> Optional[JobPosition]:
        db = self._session_factory()
        try:
            job = job_crud.get_by_id(db, job_id)
            return JobPosition.model_validate(job) if job else None
        finally:
            db.close()

    def list_candidates(self) -> List[CandidateRecord]:
        db = self._session_factory()
        try:
            return [
                CandidateRecord(
                    id=row.id,
                    full_name=row.full_name,
                    email=row.email,
                    phone=row.phone,
                    age=row.age,
                    skills=row.skills or [],
                    summary=row.summary or "",
                    current_company=row.current_company,
                    current_role=row.current_role,
                    current_salary=row.current_salary,
                    benefits=row.benefits or [],
                    cv_mime_type=row.cv_mime_type,
                    status=row.status,
                )
                for row in candidate_crud.get_active(db)
            ]
        finally:
            db.close()
