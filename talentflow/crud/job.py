"""
CRUD operations for Job model.

Implements the Repository pattern to encapsulate all database operations
for jobs, providing a clean interface for the API layer.
"""

import uuid
from typing import List, Optional
from sqlalchemy.orm import Session
from talentflow.models.job import Job, JobStatus
from talentflow.schemas.job import JobCreateRequest


def create(db: Session, job_data: JobCreateRequest) -> Job:
    """
    Create a new job position in the database.

    Args:
        db: Database session
        job_data: Validated job creation data

    Returns:
        Created Job instance with id
    """
    db_job = Job(
        id=uuid.uuid4().hex,
        title=job_data.title,
        department=job_data.department,
        description=job_data.description,
        requirements=job_data.requirements,
        status=JobStatus.OPEN
    )

    db.add(db_job)
    db.commit()
    db.refresh(db_job)

    return db_job


def get_by_id(db: Session, job_id: str) -> Optional[Job]:
    """
    Retrieve a job by its ID, ignoring soft-deleted jobs.

    Args:
        db: Database session
        job_id: Job ID to retrieve

    Returns:
        Job instance if found, None otherwise
    """
    return db.query(Job).filter(Job.id == job_id, Job.is_deleted.is_(False)).first()


def get_multi(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    status: Optional[JobStatus] = None
) -> List[Job]:
    """
    Retrieve multiple jobs with pagination and optional filtering.

    Args:
        db: Database session
        skip: Number of records to skip (offset)
        limit: Maximum number of records to return
        status: Optional status filter

    Returns:
        List of Job instances
    """
    query = db.query(Job).filter(Job.is_deleted.is_(False))

    if status:
        query = query.filter(Job.status == status)

    return query.order_by(Job.created_at.desc()).offset(skip).limit(limit).all()


def update_status(db: Session, job_id: str, status: JobStatus) -> Optional[Job]:
    """
    Move a job to a new lifecycle status.

    Returns:
        Updated Job instance if found, None otherwise
    """
    job = get_by_id(db, job_id)
    if not job:
        return None

    job.status = status
    db.commit()
    db.refresh(job)

    return job
