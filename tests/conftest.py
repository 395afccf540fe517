"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown (in-memory SQLite)
- FastAPI test client wired to a fake upload queue
- Fake AI adapters and an in-memory candidate store
- Generated test images
"""

import io
import os

# Settings are read at import time: keep tests off Postgres and OpenAI
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("JSON_LOGS", "false")

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talentflow.core.database import Base, get_db
from talentflow.core.storage import LocalStorage, get_storage
from talentflow.schemas.application import FitEvaluation
from talentflow.schemas.candidate import CandidateRecord, ExtractionResult, ParsedCandidateData
from talentflow.schemas.job import JobPosition
from talentflow.schemas.upload import SourceFile
from talentflow.services.upload_queue import UploadQueue


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ----------------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------------

class FakeExtractor:
    """
    Returns canned results keyed by the CV bytes.

    A value that is an exception instance is raised instead of returned.
    Unknown payloads parse to "Candidate <call number>".
    """

    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    async def extract(self, content, mime_type):
        self.calls.append((content, mime_type))
        result = self.results.get(content)
        if isinstance(result, Exception):
            raise result
        if result is None:
            result = ParsedCandidateData(full_name=f"Candidate {len(self.calls)}")
        if isinstance(result, ParsedCandidateData):
            result = ExtractionResult(data=result)
        return result


class FakeScorer:
    def __init__(self, score=80, error=None):
        self.score_value = score
        self.error = error
        self.calls = []

    async def score(self, candidate, job):
        self.calls.append((candidate, job))
        if self.error:
            raise self.error
        return FitEvaluation(score=self.score_value, reasoning=f"Good fit for {job.title}")


class FakeStore:
    """In-memory CandidateStore that records every call."""

    def __init__(self, candidates=None, jobs=None):
        self.candidates = list(candidates or [])
        self.applications = []
        self.jobs = {job.id: job for job in (jobs or [])}
        self.candidate_calls = 0
        self.application_calls = 0
        self.fail_candidate = None
        self.fail_application = None

    def create_candidate(self, record):
        self.candidate_calls += 1
        if self.fail_candidate:
            raise self.fail_candidate
        if all(c.id != record.id for c in self.candidates):
            self.candidates.append(record)

    def create_application(self, record):
        self.application_calls += 1
        if self.fail_application:
            raise self.fail_application
        if not any(a.candidate_id == record.candidate_id and a.job_id == record.job_id for a in self.applications):
            self.applications.append(record)

    def find_job(self, job_id):
        return self.jobs.get(job_id)

    def list_candidates(self):
        return list(self.candidates)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def make_image_bytes(width=400, height=600, fmt="PNG", color=(200, 120, 80), mode="RGB"):
    """Solid-colour test image encoded in ``fmt``"""
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_pdf_bytes(width=300, height=400):
    """Single-page PDF containing a raster image"""
    image = Image.new("RGB", (width, height), (30, 90, 160))
    buffer = io.BytesIO()
    image.save(buffer, format="PDF")
    return buffer.getvalue()


def source(content=b"%PDF-1.4 fake", mime_type="application/pdf", filename="cv.pdf"):
    return SourceFile(filename=filename, content=content, mime_type=mime_type)


def known_candidate(full_name="John Smith", email="a@x.com"):
    return CandidateRecord(id=f"known-{full_name}", full_name=full_name, email=email)


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped after the test completes.
    """
    from talentflow import models  # noqa: F401 - register tables

    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_extractor():
    return FakeExtractor()


@pytest.fixture
def fake_scorer():
    return FakeScorer()


@pytest.fixture
def fake_store():
    return FakeStore(jobs=[JobPosition(id="job-1", title="Backend Engineer", requirements="Python, SQL")])


@pytest.fixture
def upload_queue(fake_extractor, fake_scorer, fake_store):
    return UploadQueue(extractor=fake_extractor, scorer=fake_scorer, store=fake_store)


@pytest.fixture
def client(db_session, upload_queue, tmp_path):
    """
    FastAPI test client with overridden database dependency and a queue
    backed by fakes.
    """
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: LocalStorage(str(tmp_path / "uploads"))
    app.state.upload_queue = upload_queue

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.upload_queue = None


@pytest.fixture
def sample_job_data():
    """Sample job data for testing"""
    return {
        "title": "Senior Python Developer",
        "department": "Engineering",
        "description": "Backend team working on the hiring platform.",
        "requirements": "- Python and FastAPI\n- PostgreSQL\n- Docker",
    }
