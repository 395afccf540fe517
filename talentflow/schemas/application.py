"""
Pydantic schemas for applications and AI fit evaluations.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field
from talentflow.models.application import SelectionStatus


class FitEvaluation(BaseModel):
    """AI compatibility rating between a candidate and a job."""
    score: int = Field(..., ge=0, le=100)
    reasoning: str
    degraded: bool = Field(False, description="True when this is a placeholder, not a model answer")


class ApplicationRecord(BaseModel):
    """A new application, as constructed by the ingestion pipeline."""
    id: str
    candidate_id: str
    job_id: str
    status: SelectionStatus = SelectionStatus.TO_ANALYZE
    ai_score: Optional[int] = None
    ai_reasoning: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
