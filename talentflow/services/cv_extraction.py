import asyncio
import base64
import json
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from talentflow.core.config import settings
from talentflow.schemas.candidate import ExtractionResult, ParsedCandidateData
from talentflow.services.image_transform import is_raster_image

logger = logging.getLogger(__name__)

FALLBACK_MARKER = "[AI FALLBACK]"

# Errors worth another attempt: the request may succeed on retry
TRANSPORT_ERRORS = (openai.APIConnectionError, openai.InternalServerError)

# The model or account refused; a placeholder keeps the queue moving
DEGRADED_ERRORS = (
    openai.RateLimitError,
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
)


class CVExtractionError(Exception):
    """Transport-level failure: the CV could not be sent or the answer read"""
    pass


def fallback_candidate_data() -> ParsedCandidateData:
    """Readable placeholder used when the model gave no usable answer"""
    return ParsedCandidateData(
        full_name="Candidate (AI fallback)",
        email="fallback@example.invalid",
        phone="+00 000 0000000",
        age=30,
        skills=["Placeholder skill 1", "Placeholder skill 2", "Fallback mode"],
        summary=(
            f"{FALLBACK_MARKER} The AI service is over quota, refused the document "
            "or is not configured. These values are placeholders."
        ),
        current_company="Unknown company",
        current_role="Unknown role",
        current_salary="0k",
        benefits=["Placeholder benefit"],
    )


SYSTEM_PROMPT = """You are an expert CV parser.
Extract the candidate's data into strict JSON. Keep the summary short (max 2 sentences).
Ignore generic soft skills.
If the document contains a photo of the candidate's face, return face_coordinates as
[ymin, xmin, ymax, xmax] on a 0-1000 scale relative to the image (or first page).

Return ONLY valid JSON with this structure:
{
  "full_name": "string",
  "email": "string",
  "phone": "string or null",
  "age": integer or null,
  "skills": ["string"],
  "summary": "string",
  "current_company": "string or null",
  "current_role": "string or null",
  "current_salary": "string or null",
  "benefits": ["string"],
  "face_coordinates": [ymin, xmin, ymax, xmax] or null
}"""


def _document_part(content: bytes, mime_type: str) -> dict:
    encoded = base64.b64encode(content).decode("ascii")
    data_url = f"data:{mime_type};base64,{encoded}"
    if is_raster_image(mime_type):
        return {"type": "image_url", "image_url": {"url": data_url, "detail": "high"}}
    return {"type": "file", "file": {"filename": "cv.pdf", "file_data": data_url}}


class CVExtractor:
    """
    CV extraction adapter backed by the OpenAI chat completions API.

    Never raises for a refused request, exhausted quota or missing API key:
    those return a placeholder result with ``degraded=True``. Raises
    CVExtractionError only when the service cannot be reached after
    ``max_retries`` attempts or the answer is not valid JSON.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: float = 1.0,
    ):
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT,
                max_retries=0,
            )
        self._client = client
        self.model = model or settings.OPENAI_MODEL
        # At least one attempt, even with AI_MAX_RETRIES=0
        self.max_retries = max(1, settings.AI_MAX_RETRIES if max_retries is None else max_retries)
        self.retry_base_delay = retry_base_delay

    async def extract(self, content: bytes, mime_type: str) -> ExtractionResult:
        """
        Extract structured candidate data from a CV.

        Args:
            content: CV bytes (already resized when it is an image)
            mime_type: Mime type of ``content``

        Returns:
            ExtractionResult with the parsed fields and the degraded flag

        Raises:
            CVExtractionError: On transport failure or an unreadable answer
        """
        if self._client is None:
            logger.warning("OPENAI_API_KEY not configured, returning placeholder CV data")
            return ExtractionResult(data=fallback_candidate_data(), degraded=True)

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    _document_part(content, mime_type),
                    {"type": "text", "text": "Extract the CV data as JSON. Photo: face coordinates 0-1000."},
                ],
            },
        ]

        for attempt in range(self.max_retries):
            try:
                response = await self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    response_format={"type": "json_object"},
                    temperature=0.0,
                )
                break

            except DEGRADED_ERRORS as e:
                logger.warning(f"CV extraction degraded to placeholder: {e}")
                return ExtractionResult(data=fallback_candidate_data(), degraded=True)

            except TRANSPORT_ERRORS as e:
                logger.warning(f"Attempt {attempt + 1}/{self.max_retries}: CV extraction transport error: {e}")
                if attempt == self.max_retries - 1:
                    raise CVExtractionError(f"CV extraction failed after {self.max_retries} attempts: {e}") from e

            # Exponential backoff: wait 1s, 2s, 4s between retries
            wait_time = self.retry_base_delay * (2 ** attempt)
            logger.info(f"Retrying CV extraction in {wait_time} seconds...")
            await asyncio.sleep(wait_time)

        message = response.choices[0].message
        if getattr(message, "refusal", None) or not message.content:
            logger.warning("CV extraction returned no content (refusal or token limit), using placeholder")
            return ExtractionResult(data=fallback_candidate_data(), degraded=True)

        try:
            payload = json.loads(message.content)
            data = ParsedCandidateData.model_validate(payload)
        except (json.JSONDecodeError, ValidationError) as e:
            raise CVExtractionError(f"Unreadable CV extraction response: {e}") from e

        logger.info(f"Extracted CV data for: {data.full_name}")
        return ExtractionResult(data=data, degraded=False)
