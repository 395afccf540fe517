"""
CRUD operations for Candidate model.
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from talentflow.models.candidate import Candidate
from talentflow.schemas.candidate import CandidateRecord


def get_by_id(db: Session, candidate_id: str) -> Optional[Candidate]:
    return db.query(Candidate).filter(Candidate.id == candidate_id).first()


def create(
    db: Session,
    record: CandidateRecord,
    photo_path: Optional[str] = None,
    cv_path: Optional[str] = None
) -> Candidate:
    """
    Insert a candidate row unless one with the same id already exists.

    Args:
        db: Database session
        record: Candidate built by the ingestion pipeline
        photo_path: Storage path of the portrait, if any
        cv_path: Storage path of the original CV, if any

    Returns:
        The new (or already existing) Candidate instance
    """
    existing = get_by_id(db, record.id)
    if existing:
        return existing

    db_candidate = Candidate(
        id=record.id,
        full_name=record.full_name,
        email=record.email,
        phone=record.phone,
        age=record.age,
        skills=list(record.skills),
        summary=record.summary,
        current_company=record.current_company,
        current_role=record.current_role,
        current_salary=record.current_salary,
        benefits=list(record.benefits),
        photo_path=photo_path,
        cv_path=cv_path,
        cv_mime_type=record.cv_mime_type,
        status=record.status,
        comments=list(record.comments),
        created_at=record.created_at
    )

    db.add(db_candidate)
    db.commit()
    db.refresh(db_candidate)

    return db_candidate


def get_active(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[Candidate]:
    """
    Retrieve all candidates that are not soft-deleted, oldest first.

    Args:
        db: Database session
        skip: Number of records to skip (offset)
        limit: Maximum number of records to return (None for all)
    """
    query = (
        db.query(Candidate)
        .filter(Candidate.is_deleted.is_(False))
        .order_by(Candidate.created_at.asc())
        .offset(skip)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()
