"""
Pydantic schemas for the upload ingestion queue.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from talentflow.schemas.application import FitEvaluation
from talentflow.schemas.candidate import ParsedCandidateData


class UploadStatus(str, enum.Enum):
    """
    Upload item lifecycle:

    IDLE -> PROCESSING -> SUCCESS
                 |    -> ERROR
                 |    -> DUPLICATE -> SUCCESS (force-save)
                                   -> removed (discard)
    """
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    DUPLICATE = "DUPLICATE"


TERMINAL_STATUSES = frozenset({UploadStatus.SUCCESS, UploadStatus.ERROR, UploadStatus.DUPLICATE})


class SourceFile(BaseModel):
    """A file as submitted by the user. Never modified after enqueue."""
    filename: str
    content: bytes
    mime_type: str

    model_config = ConfigDict(frozen=True)


class PendingCandidate(BaseModel):
    """Parsed result carried by an item until it is saved."""
    parsed: ParsedCandidateData
    degraded: bool = False
    photo: Optional[bytes] = None
    cv_content: bytes
    cv_mime_type: str
    fit_evaluation: Optional[FitEvaluation] = None


class UploadItem(BaseModel):
    """One file moving through the ingestion pipeline."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source: SourceFile
    target_job_id: Optional[str] = None
    status: UploadStatus = UploadStatus.IDLE
    pending: Optional[PendingCandidate] = None
    duplicate_reason: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UploadItemResponse(BaseModel):
    """Upload item as shown to the user (binaries left out)."""
    id: str
    filename: str
    mime_type: str
    target_job_id: Optional[str] = None
    status: UploadStatus
    full_name: Optional[str] = None
    email: Optional[str] = None
    duplicate_reason: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_item(cls, item: UploadItem) -> "UploadItemResponse":
        parsed = item.pending.parsed if item.pending else None
        return cls(
            id=item.id,
            filename=item.source.filename,
            mime_type=item.source.mime_type,
            target_job_id=item.target_job_id,
            status=item.status,
            full_name=parsed.full_name if parsed else None,
            email=parsed.email if parsed else None,
            duplicate_reason=item.duplicate_reason,
            error_message=item.error_message,
            created_at=item.created_at,
        )


class UploadQueueResponse(BaseModel):
    """Whole queue view with the counters shown in the upload widget."""
    items: List[UploadItemResponse]
    pending_count: int
    duplicate_count: int
