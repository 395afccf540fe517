"""
Application model linking a candidate to a job position.

One row per (candidate, job) pair. The AI fit evaluation computed at upload
time is stored on the row, not as a separate entity.
"""

import enum
from sqlalchemy import Column, String, Integer, ForeignKey, Text, DateTime, Enum, UniqueConstraint, func
from sqlalchemy.orm import relationship
from talentflow.core.database import Base


class SelectionStatus(str, enum.Enum):
    """Kanban column of an application in the selection pipeline"""
    TO_ANALYZE = "TO_ANALYZE"
    SCREENING = "SCREENING"
    FIRST_INTERVIEW = "FIRST_INTERVIEW"
    SECOND_INTERVIEW = "SECOND_INTERVIEW"
    OFFER = "OFFER"
    HIRED = "HIRED"
    REJECTED = "REJECTED"


class Application(Base):
    """
    A candidate's application to a job position.
    """
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("candidate_id", "job_id", name="uq_application_candidate_job"),
    )

    id = Column(String(64), primary_key=True, index=True)
    candidate_id = Column(String(64), ForeignKey("candidates.id"), nullable=False, index=True)
    job_id = Column(String(64), ForeignKey("jobs.id"), nullable=False, index=True)

    status = Column(Enum(SelectionStatus), default=SelectionStatus.TO_ANALYZE, nullable=False, index=True)

    # Fit evaluation (0-100) computed when the CV was uploaded against this job
    ai_score = Column(Integer, nullable=True)
    ai_reasoning = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    candidate = relationship("Candidate", back_populates="applications")
    job = relationship("Job", back_populates="applications")

    def __repr__(self):
        return f"<Application(candidate_id={self.candidate_id}, job_id={self.job_id}, ai_score={self.ai_score})>"
