"""
Tests for the OpenAI fit scoring adapter.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from talentflow.schemas.candidate import ParsedCandidateData
from talentflow.schemas.job import JobPosition
from talentflow.services.fit_scoring import NEUTRAL_SCORE, FitScorer, build_fit_prompt


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def mock_client(result=None, error=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=result, side_effect=error)
    return client


CANDIDATE = ParsedCandidateData(
    full_name="Sara Galli",
    current_role="Data Analyst",
    skills=[f"skill-{i}" for i in range(15)],
    summary="x" * 1000,
)
JOB = JobPosition(id="job-1", title="Analytics Engineer", requirements="y" * 2000)


def score(scorer):
    return asyncio.run(scorer.score(CANDIDATE, JOB))


def test_returns_model_score():
    client = mock_client(completion(json.dumps({"score": 78, "reasoning": "Strong SQL background."})))
    evaluation = score(FitScorer(client=client))

    assert evaluation.score == 78
    assert evaluation.reasoning == "Strong SQL background."
    assert evaluation.degraded is False


def test_score_clamped_and_rounded():
    client = mock_client(completion(json.dumps({"score": 140.4, "reasoning": "?"})))
    assert score(FitScorer(client=client)).score == 100

    client = mock_client(completion(json.dumps({"score": -3, "reasoning": "?"})))
    assert score(FitScorer(client=client)).score == 0


def test_api_error_returns_neutral():
    evaluation = score(FitScorer(client=mock_client(error=RuntimeError("quota"))))
    assert evaluation.score == NEUTRAL_SCORE
    assert evaluation.degraded is True


def test_malformed_answer_returns_neutral():
    evaluation = score(FitScorer(client=mock_client(completion('{"reasoning": "no score"}'))))
    assert evaluation.degraded is True


def test_no_api_key_returns_neutral():
    assert score(FitScorer()).degraded is True


def test_prompt_truncates_large_fields():
    prompt = build_fit_prompt(CANDIDATE, JOB)

    assert "skill-9" in prompt
    assert "skill-10" not in prompt
    assert "x" * 600 in prompt and "x" * 601 not in prompt
    assert "y" * 800 in prompt and "y" * 801 not in prompt
    assert "Analytics Engineer" in prompt
