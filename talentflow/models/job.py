import enum
from sqlalchemy import Column, String, Text, Boolean, DateTime, Enum, func
from sqlalchemy.orm import relationship
from talentflow.core.database import Base


class JobStatus(str, enum.Enum):
    """
    Job position lifecycle.

    - OPEN: accepting candidates
    - SUSPENDED: temporarily on hold
    - CLOSED: no longer accepting candidates
    - COMPLETED: position filled
    """
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    SUSPENDED = "SUSPENDED"
    COMPLETED = "COMPLETED"


class Job(Base):
    """
    Job position that uploaded candidates can be attached to.
    """
    __tablename__ = "jobs"

    id = Column(String(64), primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    department = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    requirements = Column(Text, nullable=False, default="")

    status = Column(Enum(JobStatus), default=JobStatus.OPEN, nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    applications = relationship("Application", back_populates="job", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Job(id={self.id}, title='{self.title}', status={self.status.value})>"
