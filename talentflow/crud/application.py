"""
CRUD operations for Application model.
"""

import logging
from typing import Optional
from sqlalchemy.orm import Session
from talentflow.models.application import Application
from talentflow.schemas.application import ApplicationRecord

logger = logging.getLogger(__name__)


def get_by_pair(db: Session, candidate_id: str, job_id: str) -> Optional[Application]:
    return (
        db.query(Application)
        .filter(Application.candidate_id == candidate_id, Application.job_id == job_id)
        .first()
    )


def create(db: Session, record: ApplicationRecord) -> Application:
    """
    Insert an application unless the (candidate, job) pair already has one.

    Args:
        db: Database session
        record: Application built by the ingestion pipeline

    Returns:
        The new Application, or the existing one for the same pair
    """
    existing = get_by_pair(db, record.candidate_id, record.job_id)
    if existing:
        logger.info(
            f"Application for candidate {record.candidate_id} on job {record.job_id} "
            f"already exists ({existing.id}), skipping"
        )
        return existing

    db_application = Application(
        id=record.id,
        candidate_id=record.candidate_id,
        job_id=record.job_id,
        status=record.status,
        ai_score=record.ai_score,
        ai_reasoning=record.ai_reasoning,
        updated_at=record.updated_at
    )

    db.add(db_application)
    db.commit()
    db.refresh(db_application)

    return db_application
