"""
Database models package.
"""

from talentflow.models.job import Job, JobStatus
from talentflow.models.candidate import Candidate, CandidateStatus
from talentflow.models.application import Application, SelectionStatus

__all__ = ["Job", "JobStatus", "Candidate", "CandidateStatus", "Application", "SelectionStatus"]
