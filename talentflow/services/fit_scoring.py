"""
Candidate-to-job fit scoring.

Asks the model for a single 0-100 compatibility score and a short rationale.
A missing score is a normal outcome for the upload pipeline, so this adapter
returns a flagged neutral evaluation instead of raising whenever it can.
"""

import json
import logging
from typing import Optional

from openai import AsyncOpenAI

from talentflow.core.config import settings
from talentflow.schemas.application import FitEvaluation
from talentflow.schemas.candidate import ParsedCandidateData
from talentflow.schemas.job import JobPosition

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50
FALLBACK_REASONING = "[AI FALLBACK] Simulated evaluation (AI error or quota exceeded)."

# Prompt size limits
MAX_SKILLS = 10
MAX_SUMMARY_CHARS = 600
MAX_REQUIREMENTS_CHARS = 800


def fallback_evaluation() -> FitEvaluation:
    return FitEvaluation(score=NEUTRAL_SCORE, reasoning=FALLBACK_REASONING, degraded=True)


def build_fit_prompt(candidate: ParsedCandidateData, job: JobPosition) -> str:
    """Compact candidate/job prompt, truncating the large free-text fields"""
    return f"""
CANDIDATE: {candidate.full_name or 'Candidate'}
ROLE: {candidate.current_role or ''}
SKILLS: {', '.join(candidate.skills[:MAX_SKILLS])}
SUMMARY: {(candidate.summary or '')[:MAX_SUMMARY_CHARS]}

JOB: {job.title}
REQUIREMENTS: {(job.requirements or '')[:MAX_REQUIREMENTS_CHARS]}
"""


class FitScorer:
    """Fit scoring adapter backed by the OpenAI chat completions API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT)
        self._client = client
        self.model = model or settings.OPENAI_MODEL

    async def score(self, candidate: ParsedCandidateData, job: JobPosition) -> FitEvaluation:
        """
        Rate how well a candidate fits a job.

        Returns:
            FitEvaluation with an integer score in 0-100. On any failure a
            neutral evaluation with ``degraded=True`` is returned.
        """
        if self._client is None:
            logger.warning("OPENAI_API_KEY not configured, returning placeholder fit evaluation")
            return fallback_evaluation()

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "Rate the candidate/job match from 0 to 100. Be strict but fair. "
                            "Reasoning max 2 sentences. "
                            'Output strictly valid JSON: {"score": integer, "reasoning": "string"}'
                        ),
                    },
                    {"role": "user", "content": build_fit_prompt(candidate, job)},
                ],
                response_format={"type": "json_object"},
                temperature=settings.OPENAI_TEMPERATURE,
            )

            content = response.choices[0].message.content
            if not content:
                raise ValueError("Empty response from OpenAI")

            result = json.loads(content)
            score = int(round(float(result["score"])))
            evaluation = FitEvaluation(
                score=min(max(score, 0), 100),
                reasoning=str(result.get("reasoning") or ""),
            )

        except Exception as e:
            logger.warning(f"Fit scoring failed for job {job.id}, using neutral score: {e}")
            return fallback_evaluation()

        logger.info(f"Fit score for '{candidate.full_name}' on job {job.id}: {evaluation.score}/100")
        return evaluation
