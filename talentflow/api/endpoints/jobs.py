import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from talentflow.core.database import get_db
from talentflow.crud import job as job_crud
from talentflow.models.job import JobStatus
from talentflow.schemas.job import JobCreateRequest, JobResponse, JobStatusUpdate

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = logging.getLogger(__name__)


@router.post("/", status_code=201, response_model=JobResponse)
def create_job(
    request: JobCreateRequest,
    db: Session = Depends(get_db)
):
    """
    Create a new job position.

    The returned id can be passed as ``job_id`` when uploading CVs, so the
    candidates get an application on this job with an AI fit score.
    """
    try:
        new_job = job_crud.create(db, request)
        logger.info(f"Created job {new_job.id}: {new_job.title}")
        return new_job

    except Exception as e:
        db.rollback()
        logger.error(f"Error creating job: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create job: {str(e)}")


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: str, db: Session = Depends(get_db)):
    """Retrieve a job by ID."""
    job = job_crud.get_by_id(db, job_id)

    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    return job


@router.get("/", response_model=list[JobResponse])
def list_jobs(
    skip: int = 0,
    limit: int = 100,
    status: Optional[JobStatus] = None,
    db: Session = Depends(get_db)
):
    """
    List jobs with pagination and optional status filtering.

    Args:
        skip: Number of records to skip (default: 0)
        limit: Maximum number of records to return (default: 100, max: 100)
        status: Optional filter by job status (OPEN, CLOSED, SUSPENDED, COMPLETED)
    """
    if limit > 100:
        limit = 100

    return job_crud.get_multi(db, skip=skip, limit=limit, status=status)


@router.patch("/{job_id}/status", response_model=JobResponse)
def update_job_status(job_id: str, request: JobStatusUpdate, db: Session = Depends(get_db)):
    """
    Open, suspend, close or complete a job.

    Uploads can still target a job in any status; only deleted jobs are
    rejected.
    """
    job = job_crud.update_status(db, job_id, request.status)

    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    logger.info(f"Job {job_id} status set to {request.status.value}")
    return job
