"""
TalentFlow upload ingestion queue.

Turns uploaded CV files into candidate records, one file at a time:

1. Normalise: shrink raster images before they are sent to the model
2. Extract: structured candidate data from the CV extraction adapter
3. Portrait: crop a headshot from the original file using the face box
4. Fit: score the candidate against the target job (failures ignored)
5. Duplicate check against the known candidates
6. Persist the candidate (and the application when a job was given),
   or park the item as DUPLICATE until the user decides

Processing is serialised: at most one item is PROCESSING, items are taken
in enqueue order, and only two events start a drain attempt: an enqueue
and the completion of the previous item. When the queue has nothing IDLE,
no task is running.

All public methods must be called from inside the running event loop.
"""

import asyncio
import logging
import uuid
from typing import Callable, Iterable, List, Optional, Protocol

from talentflow.schemas.application import ApplicationRecord, FitEvaluation
from talentflow.schemas.candidate import CandidateRecord, ExtractionResult, ParsedCandidateData
from talentflow.schemas.job import JobPosition
from talentflow.schemas.upload import (
    TERMINAL_STATUSES,
    PendingCandidate,
    SourceFile,
    UploadItem,
    UploadStatus,
)
from talentflow.services.duplicate_detector import find_duplicate
from talentflow.services.image_transform import crop_portrait, resize
from talentflow.services.persistence import CandidateStore

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

QueueListener = Callable[[List[UploadItem]], None]


class UploadQueueError(Exception):
    """Base class for invalid queue operations"""
    pass


class UploadItemNotFoundError(UploadQueueError):
    pass


class InvalidUploadTransitionError(UploadQueueError):
    pass


class CVExtractionAdapter(Protocol):
    async def extract(self, content: bytes, mime_type: str) -> ExtractionResult:
        ...


class FitScoringAdapter(Protocol):
    async def score(self, candidate: ParsedCandidateData, job: JobPosition) -> FitEvaluation:
        ...


def build_candidate_record(pending: PendingCandidate) -> CandidateRecord:
    """New candidate with a fresh id, default status, no comments, created now"""
    parsed = pending.parsed
    return CandidateRecord(
        id=uuid.uuid4().hex,
        full_name=(parsed.full_name or "").strip() or UNKNOWN_NAME,
        email=(parsed.email or "").strip() or None,
        phone=parsed.phone,
        age=parsed.age,
        skills=list(parsed.skills),
        summary=parsed.summary,
        current_company=parsed.current_company,
        current_role=parsed.current_role,
        current_salary=parsed.current_salary,
        benefits=list(parsed.benefits),
        photo=pending.photo,
        cv_content=pending.cv_content,
        cv_mime_type=pending.cv_mime_type,
    )


class UploadQueue:
    """
    Single-worker queue of upload items.

    The only writers of item state are the drain worker and the user
    actions force_save, discard, cancel, clear and clear_completed.
    Subscribers receive a snapshot of all items after every change.
    """

    def __init__(
        self,
        extractor: CVExtractionAdapter,
        scorer: FitScoringAdapter,
        store: CandidateStore,
    ):
        self._extractor = extractor
        self._scorer = scorer
        self._store = store

        self._items: List[UploadItem] = []
        self._worker: Optional[asyncio.Task] = None
        # Held by a pipeline body or a force-save; they never interleave
        self._pipeline_lock = asyncio.Lock()
        self._resolving: set = set()
        self._listeners: List[QueueListener] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def items(self) -> List[UploadItem]:
        return [item.model_copy(deep=True) for item in self._items]

    def get(self, item_id: str) -> UploadItem:
        return self._find(item_id).model_copy(deep=True)

    @property
    def pending_count(self) -> int:
        return sum(1 for i in self._items if i.status in (UploadStatus.IDLE, UploadStatus.PROCESSING))

    @property
    def duplicate_count(self) -> int:
        return sum(1 for i in self._items if i.status == UploadStatus.DUPLICATE)

    @property
    def is_processing(self) -> bool:
        return self._worker is not None

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        """Register a state-change callback. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def join(self) -> None:
        """Wait until no item is IDLE or PROCESSING."""
        while self._worker is not None:
            await asyncio.shield(self._worker)

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    def enqueue(self, files: Iterable[SourceFile], target_job_id: Optional[str] = None) -> List[UploadItem]:
        """
        Append one IDLE item per file and start draining if idle.

        The same file submitted twice produces two independent items.

        Args:
            files: Files as submitted by the user
            target_job_id: Job the uploads apply to (None for the general pool)

        Returns:
            Snapshots of the new items, in order
        """
        new_items = [UploadItem(source=f, target_job_id=target_job_id) for f in files]
        if not new_items:
            return []

        self._items.extend(new_items)
        logger.info(
            f"Enqueued {len(new_items)} file(s)"
            + (f" for job {target_job_id}" if target_job_id else " for the general pool")
        )
        self._notify()
        self._kick()
        return [item.model_copy(deep=True) for item in new_items]

    async def force_save(self, item_id: str) -> UploadItem:
        """
        Save a DUPLICATE item's candidate despite the duplicate warning.

        Fit scoring is run again when the item targets a known job; if that
        fails the score computed during processing is kept.

        Raises:
            UploadItemNotFoundError: Unknown item id
            InvalidUploadTransitionError: Item is not DUPLICATE
        """
        item = self._find(item_id)
        if item.status != UploadStatus.DUPLICATE or item.id in self._resolving:
            raise InvalidUploadTransitionError(
                f"Upload {item_id} is {item.status.value}, only DUPLICATE items can be force-saved"
            )

        self._resolving.add(item.id)
        try:
            async with self._pipeline_lock:
                pending = item.pending
                fit = await self._evaluate_fit(item.id, item.target_job_id, pending.parsed)
                if fit is not None:
                    pending = pending.model_copy(update={"fit_evaluation": fit})

                await self._persist(item.id, item.target_job_id, pending)

                item.pending = pending
                item.duplicate_reason = None
                item.status = UploadStatus.SUCCESS
                logger.info(f"[Upload {item.id}] Duplicate force-saved")
                self._notify()
        finally:
            self._resolving.discard(item.id)

        return item.model_copy(deep=True)

    def discard(self, item_id: str) -> None:
        """Drop a DUPLICATE item without saving anything."""
        item = self._find(item_id)
        if item.status != UploadStatus.DUPLICATE or item.id in self._resolving:
            raise InvalidUploadTransitionError(
                f"Upload {item_id} is {item.status.value}, only DUPLICATE items can be discarded"
            )
        self._items.remove(item)
        logger.info(f"[Upload {item.id}] Duplicate discarded")
        self._notify()

    def cancel(self, item_id: str) -> None:
        """Remove an IDLE item before it is picked up."""
        item = self._find(item_id)
        if item.status != UploadStatus.IDLE:
            raise InvalidUploadTransitionError(
                f"Upload {item_id} is {item.status.value}, only IDLE items can be cancelled"
            )
        self._items.remove(item)
        logger.info(f"[Upload {item.id}] Cancelled before processing")
        self._notify()

    def clear(self) -> None:
        """
        Remove every item.

        An item already PROCESSING still runs to completion (its candidate is
        saved as usual) but is no longer listed.
        """
        self._items = []
        self._notify()

    def clear_completed(self) -> None:
        """Remove SUCCESS, ERROR and DUPLICATE items; IDLE and PROCESSING stay."""
        self._items = [
            i for i in self._items
            if i.status not in TERMINAL_STATUSES or i.id in self._resolving
        ]
        self._notify()

    # ------------------------------------------------------------------
    # Drain
    # ------------------------------------------------------------------

    def _kick(self) -> None:
        """Start the next IDLE item if nothing is being processed."""
        if self._worker is not None:
            return

        item = next((i for i in self._items if i.status == UploadStatus.IDLE), None)
        if item is None:
            return

        item.status = UploadStatus.PROCESSING
        self._notify()
        self._worker = asyncio.get_running_loop().create_task(
            self._drain_next(item), name=f"upload-{item.id}"
        )

    async def _drain_next(self, item: UploadItem) -> None:
        try:
            async with self._pipeline_lock:
                await self._run_pipeline(item)

        except Exception as e:
            logger.error(f"[Upload {item.id}] ✗ Failed to process {item.source.filename}: {e}", exc_info=True)
            item.status = UploadStatus.ERROR
            item.error_message = str(e) or e.__class__.__name__
            self._notify()

        finally:
            self._worker = None
            self._kick()

    async def _run_pipeline(self, item: UploadItem) -> None:
        source = item.source
        logger.info(f"[Upload {item.id}] Processing {source.filename} ({source.mime_type})")

        payload, payload_mime_type = await asyncio.to_thread(resize, source.content, source.mime_type)

        extraction = await self._extractor.extract(payload, payload_mime_type)
        parsed = extraction.data
        if extraction.degraded:
            logger.warning(f"[Upload {item.id}] Extraction degraded, placeholder data will be used")

        photo = None
        if parsed.face_coordinates is not None:
            # Crop from the original file, not the resized payload
            photo = await asyncio.to_thread(
                crop_portrait, source.content, source.mime_type, parsed.face_coordinates
            )

        fit = await self._evaluate_fit(item.id, item.target_job_id, parsed)

        pending = PendingCandidate(
            parsed=parsed,
            degraded=extraction.degraded,
            photo=photo,
            cv_content=source.content,
            cv_mime_type=source.mime_type,
            fit_evaluation=fit,
        )

        known_candidates = await asyncio.to_thread(self._store.list_candidates)
        reason = find_duplicate(parsed, known_candidates)
        if reason:
            item.pending = pending
            item.duplicate_reason = reason
            item.status = UploadStatus.DUPLICATE
            logger.info(f"[Upload {item.id}] Possible duplicate of an existing candidate: {reason}")
            self._notify()
            return

        await self._persist(item.id, item.target_job_id, pending)

        item.pending = pending
        item.status = UploadStatus.SUCCESS
        logger.info(f"[Upload {item.id}] ✓ Candidate '{parsed.full_name}' saved")
        self._notify()

    async def _evaluate_fit(
        self,
        item_id: str,
        target_job_id: Optional[str],
        parsed: ParsedCandidateData,
    ) -> Optional[FitEvaluation]:
        """Score against the target job. Never raises; None means no score."""
        if not target_job_id:
            return None

        try:
            job = await asyncio.to_thread(self._store.find_job, target_job_id)
            if job is None:
                logger.info(f"[Upload {item_id}] Job {target_job_id} not found, skipping fit scoring")
                return None
            return await self._scorer.score(parsed, job)

        except Exception as e:
            logger.warning(f"[Upload {item_id}] Fit scoring failed, continuing without score: {e}")
            return None

    async def _persist(self, item_id: str, target_job_id: Optional[str], pending: PendingCandidate) -> None:
        """Create the candidate, then the application that references it."""
        candidate = build_candidate_record(pending)
        await asyncio.to_thread(self._store.create_candidate, candidate)

        if target_job_id:
            fit = pending.fit_evaluation
            application = ApplicationRecord(
                id=uuid.uuid4().hex,
                candidate_id=candidate.id,
                job_id=target_job_id,
                ai_score=fit.score if fit else None,
                ai_reasoning=fit.reasoning if fit else None,
            )
            await asyncio.to_thread(self._store.create_application, application)
            logger.info(f"[Upload {item_id}] Application created for job {target_job_id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find(self, item_id: str) -> UploadItem:
        for item in self._items:
            if item.id == item_id:
                return item
        raise UploadItemNotFoundError(f"Upload {item_id} not found")

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.items
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Upload queue listener failed")
