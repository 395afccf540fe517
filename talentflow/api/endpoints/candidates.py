"""
API endpoints for the candidate database.

Candidates are only created by the upload queue; this router is read-only.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from talentflow.core.database import get_db
from talentflow.core.storage import StorageBackend, StorageError, get_storage
from talentflow.crud import candidate as candidate_crud
from talentflow.models.candidate import Candidate
from talentflow.schemas.candidate import CandidateResponse
from talentflow.services.image_transform import JPEG_MIME_TYPE

router = APIRouter(prefix="/candidates", tags=["Candidates"])
logger = logging.getLogger(__name__)


def _get_active_candidate(db: Session, candidate_id: str) -> Candidate:
    candidate = candidate_crud.get_by_id(db, candidate_id)
    if not candidate or candidate.is_deleted:
        raise HTTPException(status_code=404, detail=f"Candidate {candidate_id} not found")
    return candidate


def _stream_blob(storage: StorageBackend, path: str, media_type: str, filename: str) -> StreamingResponse:
    try:
        file_data = storage.download_file(path)
    except (StorageError, OSError) as e:
        logger.error(f"Failed to read {path} from storage: {e}")
        raise HTTPException(status_code=404, detail="File not found in storage")

    file_data.seek(0)
    return StreamingResponse(
        file_data,
        media_type=media_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'}
    )


@router.get("/", response_model=list[CandidateResponse])
def list_candidates(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    """List candidates that are not soft-deleted, oldest first."""
    if limit > 100:
        limit = 100
    return candidate_crud.get_active(db, skip=skip, limit=limit)


@router.get("/{candidate_id}", response_model=CandidateResponse)
def get_candidate(candidate_id: str, db: Session = Depends(get_db)):
    return _get_active_candidate(db, candidate_id)


@router.get("/{candidate_id}/cv")
def get_candidate_cv(
    candidate_id: str,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage)
):
    """
    Download the CV file exactly as it was uploaded.

    Raises:
        HTTPException 404: If the candidate or its file does not exist
    """
    candidate = _get_active_candidate(db, candidate_id)
    if not candidate.cv_path:
        raise HTTPException(status_code=404, detail=f"No CV stored for candidate {candidate_id}")

    media_type = candidate.cv_mime_type or "application/octet-stream"
    extension = "pdf" if media_type == "application/pdf" else media_type.rsplit("/", 1)[-1]
    return _stream_blob(storage, candidate.cv_path, media_type, f"{candidate.id}.{extension}")


@router.get("/{candidate_id}/photo")
def get_candidate_photo(
    candidate_id: str,
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage)
):
    """Portrait cropped from the CV, as JPEG."""
    candidate = _get_active_candidate(db, candidate_id)
    if not candidate.photo_path:
        raise HTTPException(status_code=404, detail=f"No portrait for candidate {candidate_id}")

    return _stream_blob(storage, candidate.photo_path, JPEG_MIME_TYPE, f"{candidate.id}.jpg")
