"""
Candidate database model.

A person in the candidate database. Rows are created by the upload
ingestion pipeline (or a force-save of a flagged duplicate); the CV file and
the derived portrait live in blob storage and only their paths are kept here.
"""

from sqlalchemy import Column, Integer, String, Enum, Text, DateTime, Boolean, JSON, func
from sqlalchemy.orm import relationship
import enum
from talentflow.core.database import Base


class CandidateStatus(str, enum.Enum):
    """
    Relationship of the person with the company:

    CANDIDATE -> HIRED -> FORMER_EMPLOYEE
    """
    CANDIDATE = "CANDIDATE"
    HIRED = "HIRED"
    FORMER = "FORMER_EMPLOYEE"


class Candidate(Base):
    """
    A candidate profile extracted from an uploaded CV.
    """
    __tablename__ = "candidates"

    id = Column(String(64), primary_key=True, index=True)

    full_name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    age = Column(Integer, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=False, default="")

    # Current occupation
    current_company = Column(String, nullable=True)
    current_role = Column(String, nullable=True)
    current_salary = Column(String, nullable=True)
    benefits = Column(JSON, nullable=False, default=list)

    # Blob storage paths (S3 URI or local path)
    photo_path = Column(String, nullable=True)
    cv_path = Column(String, nullable=True)
    cv_mime_type = Column(String, nullable=True)

    status = Column(
        Enum(CandidateStatus),
        default=CandidateStatus.CANDIDATE,
        nullable=False,
        index=True
    )
    comments = Column(JSON, nullable=False, default=list)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    applications = relationship("Application", back_populates="candidate", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Candidate(id={self.id}, full_name='{self.full_name}')>"
