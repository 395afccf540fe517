"""
Pydantic schemas for candidate data.

- ParsedCandidateData: structured fields returned by the CV extraction adapter
- ExtractionResult: parsed data plus a flag marking a degraded placeholder
- CandidateRecord: the domain record handed to the persistence collaborator
- CandidateResponse: API view of a stored candidate
"""

import math
from datetime import datetime, timezone
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from talentflow.models.candidate import CandidateStatus


class ParsedCandidateData(BaseModel):
    """Candidate fields extracted from a CV by the AI model."""
    # Models answer "phone": 3331234567 or "current_salary": 45000
    model_config = ConfigDict(coerce_numbers_to_str=True)

    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    skills: List[str] = Field(default_factory=list)
    summary: str = ""

    current_company: Optional[str] = None
    current_role: Optional[str] = None
    current_salary: Optional[str] = Field(None, description="Salary band as written in the CV")
    benefits: List[str] = Field(default_factory=list)

    face_coordinates: Optional[List[float]] = Field(
        None,
        description="[yMin, xMin, yMax, xMax] on a 0-1000 scale relative to the source image"
    )

    @field_validator("skills", "benefits", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("summary", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("age", mode="before")
    @classmethod
    def _lenient_age(cls, v: Any) -> Optional[int]:
        try:
            return int(v) if v is not None else None
        except (TypeError, ValueError):
            return None

    @field_validator("face_coordinates", mode="before")
    @classmethod
    def _coordinates_list(cls, v: Any) -> Any:
        # Anything but four finite numbers only costs the portrait
        if not isinstance(v, (list, tuple)) or len(v) != 4:
            return None
        if not all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in v):
            return None
        if not all(math.isfinite(c) for c in v):
            return None
        return [float(c) for c in v]


class ExtractionResult(BaseModel):
    """
    Outcome of a CV extraction call.

    ``degraded`` is True when the adapter could not get a real answer from the
    model and returned placeholder values instead.
    """
    data: ParsedCandidateData
    degraded: bool = False


class CandidateRecord(BaseModel):
    """A new candidate, as constructed by the ingestion pipeline."""
    id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    skills: List[str] = Field(default_factory=list)
    summary: str = ""

    current_company: Optional[str] = None
    current_role: Optional[str] = None
    current_salary: Optional[str] = None
    benefits: List[str] = Field(default_factory=list)

    photo: Optional[bytes] = Field(None, description="JPEG portrait")
    cv_content: Optional[bytes] = None
    cv_mime_type: Optional[str] = None

    status: CandidateStatus = CandidateStatus.CANDIDATE
    comments: List[dict] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CandidateResponse(BaseModel):
    """Stored candidate, as returned by the API."""
    id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    skills: List[str]
    summary: str
    current_company: Optional[str] = None
    current_role: Optional[str] = None
    current_salary: Optional[str] = None
    benefits: List[str]
    photo_path: Optional[str] = None
    cv_path: Optional[str] = None
    cv_mime_type: Optional[str] = None
    status: CandidateStatus
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
