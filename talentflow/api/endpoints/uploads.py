"""
API endpoints for the CV upload queue.

Files are enqueued immediately and processed one at a time in the
background; clients poll GET /uploads to follow each file to its final
state and resolve duplicates with force-save or discard.
"""

import logging
import os
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from talentflow.core.database import get_db
from talentflow.core.deps import get_upload_queue
from talentflow.crud import job as job_crud
from talentflow.schemas.upload import SourceFile, UploadItemResponse, UploadQueueResponse
from talentflow.services.image_transform import PDF_MIME_TYPE, is_raster_image
from talentflow.services.upload_queue import (
    InvalidUploadTransitionError,
    UploadItemNotFoundError,
    UploadQueue,
)

router = APIRouter(prefix="/uploads", tags=["Uploads"])
logger = logging.getLogger(__name__)

EXTENSION_CONTENT_TYPES = {
    ".pdf": PDF_MIME_TYPE,
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


def _resolve_content_type(file: UploadFile) -> str:
    """
    Declared content type, or one guessed from the extension.

    Raises:
        HTTPException 400: If the file is neither a PDF nor an image
    """
    content_type = (file.content_type or "").lower()
    if content_type == PDF_MIME_TYPE or is_raster_image(content_type):
        return content_type

    file_ext = os.path.splitext(file.filename or "")[1].lower()
    if file_ext in EXTENSION_CONTENT_TYPES:
        return EXTENSION_CONTENT_TYPES[file_ext]

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Only PDF and image CVs are supported. Received: {file.filename} ({file.content_type})"
    )


def _queue_response(queue: UploadQueue) -> UploadQueueResponse:
    return UploadQueueResponse(
        items=[UploadItemResponse.from_item(item) for item in queue.items],
        pending_count=queue.pending_count,
        duplicate_count=queue.duplicate_count,
    )


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=List[UploadItemResponse])
async def upload_cvs(
    files: List[UploadFile] = File(...),
    job_id: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    queue: UploadQueue = Depends(get_upload_queue)
):
    """
    Queue one or more CVs (PDF or image) for ingestion.

    Flow:
    1. Validate the target job (if any) and every file type
    2. Read the files and append one IDLE item per file
    3. The queue processes the items one by one in the background

    Raises:
        HTTPException 400: If a file is not a PDF or an image
        HTTPException 404: If job_id does not match an existing job
    """
    if job_id and not job_crud.get_by_id(db, job_id):
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    sources = []
    for file in files:
        content_type = _resolve_content_type(file)
        content = await file.read()
        if not content:
            raise HTTPException(status_code=400, detail=f"File {file.filename} is empty")
        sources.append(SourceFile(filename=file.filename or "cv", content=content, mime_type=content_type))

    items = queue.enqueue(sources, target_job_id=job_id or None)
    logger.info(f"Accepted {len(items)} upload(s)")
    return [UploadItemResponse.from_item(item) for item in items]


@router.get("", response_model=UploadQueueResponse)
async def list_uploads(queue: UploadQueue = Depends(get_upload_queue)):
    """List every item in the queue with its current status."""
    return _queue_response(queue)


@router.get("/{item_id}", response_model=UploadItemResponse)
async def get_upload(item_id: str, queue: UploadQueue = Depends(get_upload_queue)):
    try:
        return UploadItemResponse.from_item(queue.get(item_id))
    except UploadItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{item_id}/force-save", response_model=UploadItemResponse)
async def force_save_upload(item_id: str, queue: UploadQueue = Depends(get_upload_queue)):
    """
    Save a flagged duplicate anyway.

    Raises:
        HTTPException 404: Unknown upload
        HTTPException 409: Upload is not a pending duplicate
    """
    try:
        item = await queue.force_save(item_id)
    except UploadItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidUploadTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return UploadItemResponse.from_item(item)


@router.post("/{item_id}/discard", status_code=status.HTTP_204_NO_CONTENT)
async def discard_upload(item_id: str, queue: UploadQueue = Depends(get_upload_queue)):
    """Drop a flagged duplicate without saving it."""
    try:
        queue.discard(item_id)
    except UploadItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidUploadTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_upload(item_id: str, queue: UploadQueue = Depends(get_upload_queue)):
    """Remove an upload that has not started processing yet."""
    try:
        queue.cancel(item_id)
    except UploadItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidUploadTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/clear-completed", response_model=UploadQueueResponse)
async def clear_completed_uploads(queue: UploadQueue = Depends(get_upload_queue)):
    queue.clear_completed()
    return _queue_response(queue)


@router.delete("", response_model=UploadQueueResponse)
async def clear_uploads(queue: UploadQueue = Depends(get_upload_queue)):
    queue.clear()
    return _queue_response(queue)
