from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from talentflow.models.job import JobStatus


class JobPosition(BaseModel):
    """Job snapshot used by the fit scoring adapter"""
    id: str
    title: str
    department: str = ""
    description: str = ""
    requirements: str = ""
    status: JobStatus = JobStatus.OPEN

    model_config = ConfigDict(from_attributes=True)


class JobCreateRequest(BaseModel):
    """Schema for creating a new job"""
    title: str = Field(..., min_length=1, max_length=200)
    department: str = ""
    description: str = ""
    requirements: str = ""


class JobResponse(JobPosition):
    """Schema for job response"""
    created_at: Optional[datetime] = None


class JobStatusUpdate(BaseModel):
    status: JobStatus
