"""
CRUD operations (Create, Read, Update, Delete) for database models.

This layer provides a clean separation between API routes and database operations,
following the Repository pattern.
"""

from talentflow.crud import application, candidate, job

__all__ = ["application", "candidate", "job"]
