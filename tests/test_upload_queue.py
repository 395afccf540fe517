"""
Test suite for the upload ingestion queue.

Tests cover:
- FIFO ordering and the single PROCESSING item
- End-to-end success, duplicate and error isolation scenarios
- Fit scoring and application creation
- Force-save, discard, cancel and clear operations
"""

import asyncio

import pytest

from conftest import FakeExtractor, FakeScorer, FakeStore, known_candidate, make_image_bytes, source
from talentflow.schemas.candidate import ExtractionResult, ParsedCandidateData
from talentflow.schemas.job import JobPosition
from talentflow.schemas.upload import UploadStatus
from talentflow.services.cv_extraction import CVExtractionError
from talentflow.services.upload_queue import (
    InvalidUploadTransitionError,
    UploadItemNotFoundError,
    UploadQueue,
)


def run(coro):
    return asyncio.run(coro)


def make_queue(extractor=None, scorer=None, store=None):
    return UploadQueue(
        extractor=extractor or FakeExtractor(),
        scorer=scorer or FakeScorer(),
        store=store or FakeStore(),
    )


class TestDrainOrder:
    """Tests for sequential FIFO processing"""

    def test_items_processed_in_enqueue_order_one_at_a_time(self):
        """Items reach PROCESSING in enqueue order, never two at once"""
        queue = make_queue()
        started = []
        max_processing = []

        def listener(items):
            processing = [i for i in items if i.status == UploadStatus.PROCESSING]
            max_processing.append(len(processing))
            for item in processing:
                if item.id not in started:
                    started.append(item.id)

        queue.subscribe(listener)

        async def scenario():
            first = queue.enqueue([source(b"a"), source(b"b")])
            second = queue.enqueue([source(b"c")])
            await queue.join()
            return [i.id for i in first + second]

        enqueued_ids = run(scenario())

        assert started == enqueued_ids
        assert max(max_processing) == 1
        assert all(i.status == UploadStatus.SUCCESS for i in queue.items)

    def test_enqueue_starts_processing_immediately(self):
        """Enqueue marks the first item PROCESSING before returning"""
        queue = make_queue()

        async def scenario():
            queue.enqueue([source(b"a"), source(b"b")])
            statuses = [i.status for i in queue.items]
            await queue.join()
            return statuses

        assert run(scenario()) == [UploadStatus.PROCESSING, UploadStatus.IDLE]

    def test_same_file_twice_gives_two_items(self):
        """The same file enqueued twice yields two independent items"""
        store = FakeStore()
        queue = make_queue(store=store)
        cv = source(b"same")

        async def scenario():
            items = queue.enqueue([cv, cv])
            await queue.join()
            return items

        items = run(scenario())
        assert items[0].id != items[1].id
        assert len(queue.items) == 2

    def test_enqueue_nothing_is_a_noop(self):
        queue = make_queue()

        async def scenario():
            result = queue.enqueue([])
            await queue.join()
            return result

        assert run(scenario()) == []
        assert queue.items == []
        assert not queue.is_processing


class TestPipelineScenarios:
    """End-to-end scenarios through the pipeline"""

    def test_image_with_face_saved_with_portrait(self):
        """Image CV with a face box, no job: SUCCESS, portrait stored, no application"""
        image = make_image_bytes(800, 1000, fmt="PNG")
        extractor = FakeExtractor()
        store = FakeStore()

        async def fake_extract(content, mime_type):
            return ExtractionResult(data=ParsedCandidateData(
                full_name="Maria Rossi",
                email="maria@example.com",
                face_coordinates=[100, 400, 300, 600],
            ))

        extractor.extract = fake_extract
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(image, "image/png", "maria.png")])
            await queue.join()

        run(scenario())

        item = queue.items[0]
        assert item.status == UploadStatus.SUCCESS
        assert store.candidate_calls == 1
        saved = store.candidates[0]
        assert saved.full_name == "Maria Rossi"
        assert saved.photo
        assert saved.photo[:2] == b"\xff\xd8"  # JPEG
        assert saved.cv_content == image
        assert saved.cv_mime_type == "image/png"
        assert store.application_calls == 0

    def test_image_is_resized_before_extraction(self):
        """Large images reach the extractor as JPEG"""
        extractor = FakeExtractor()
        queue = make_queue(extractor=extractor)

        async def scenario():
            queue.enqueue([source(make_image_bytes(2048, 1024), "image/png", "big.png")])
            await queue.join()

        run(scenario())

        content, mime_type = extractor.calls[0]
        assert mime_type == "image/jpeg"
        assert content[:2] == b"\xff\xd8"

    def test_pdf_sent_unchanged(self):
        extractor = FakeExtractor()
        queue = make_queue(extractor=extractor)

        async def scenario():
            queue.enqueue([source(b"%PDF-1.4 body")])
            await queue.join()

        run(scenario())
        assert extractor.calls == [(b"%PDF-1.4 body", "application/pdf")]

    def test_duplicate_email_not_persisted(self):
        """Known email: DUPLICATE with 'email exists', zero persistence calls"""
        store = FakeStore(candidates=[known_candidate(full_name="Someone Else", email="x@y.com")])
        extractor = FakeExtractor({b"cv": ParsedCandidateData(full_name="New Person", email="x@y.com")})
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"cv")])
            await queue.join()

        run(scenario())

        item = queue.items[0]
        assert item.status == UploadStatus.DUPLICATE
        assert item.duplicate_reason == "email exists"
        assert item.pending is not None
        assert store.candidate_calls == 0
        assert store.application_calls == 0

    def test_duplicate_name_case_insensitive(self):
        store = FakeStore(candidates=[known_candidate(full_name="Jane Doe", email="jane@old.com")])
        extractor = FakeExtractor({b"cv": ParsedCandidateData(full_name="JANE DOE", email="jane@new.com")})
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"cv")])
            await queue.join()

        run(scenario())
        assert queue.items[0].duplicate_reason == "name exists"

    def test_error_isolated_to_failing_item(self):
        """Middle item's extraction throws: items 1 and 3 succeed, item 2 errors"""
        extractor = FakeExtractor({
            b"one": ParsedCandidateData(full_name="One", email="one@x.com"),
            b"two": CVExtractionError("network unreachable"),
            b"three": ParsedCandidateData(full_name="Three", email="three@x.com"),
        })
        store = FakeStore()
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"one"), source(b"two"), source(b"three")])
            await queue.join()

        run(scenario())

        statuses = [i.status for i in queue.items]
        assert statuses == [UploadStatus.SUCCESS, UploadStatus.ERROR, UploadStatus.SUCCESS]
        assert queue.items[1].error_message == "network unreachable"
        assert [c.full_name for c in store.candidates] == ["One", "Three"]

    def test_bad_face_coordinates_only_lose_the_portrait(self):
        """Malformed face box: candidate saved without a photo"""
        parsed = ParsedCandidateData.model_validate({
            "full_name": "Paolo",
            "email": "p@x.com",
            "face_coordinates": [None, 1, 2, 3],
        })
        extractor = FakeExtractor({b"cv": parsed})
        store = FakeStore()
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"cv")])
            await queue.join()

        run(scenario())

        assert queue.items[0].status == UploadStatus.SUCCESS
        assert store.candidates[0].full_name == "Paolo"
        assert store.candidates[0].photo is None

    def test_undecodable_image_is_an_error(self):
        queue = make_queue()

        async def scenario():
            queue.enqueue([source(b"not an image", "image/png", "broken.png")])
            await queue.join()

        run(scenario())
        item = queue.items[0]
        assert item.status == UploadStatus.ERROR
        assert item.error_message

    def test_persistence_failure_is_an_error(self):
        store = FakeStore()
        store.fail_candidate = RuntimeError("database unavailable")
        queue = make_queue(store=store)

        async def scenario():
            queue.enqueue([source(b"a"), source(b"b")])
            await queue.join()

        run(scenario())
        assert [i.error_message for i in queue.items] == ["database unavailable"] * 2

    def test_batch_duplicates_see_earlier_items(self):
        """Second upload of the same person is flagged against the first"""
        person = ParsedCandidateData(full_name="Luca Bianchi", email="luca@x.com")
        extractor = FakeExtractor({b"first": person, b"second": person})
        store = FakeStore()
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"first"), source(b"second")])
            await queue.join()

        run(scenario())
        assert [i.status for i in queue.items] == [UploadStatus.SUCCESS, UploadStatus.DUPLICATE]
        assert store.candidate_calls == 1

    def test_blank_emails_are_not_duplicates(self):
        extractor = FakeExtractor({
            b"a": ParsedCandidateData(full_name="Anna Verdi"),
            b"b": ParsedCandidateData(full_name="Marco Neri"),
        })
        queue = make_queue(extractor=extractor)

        async def scenario():
            queue.enqueue([source(b"a"), source(b"b")])
            await queue.join()

        run(scenario())
        assert all(i.status == UploadStatus.SUCCESS for i in queue.items)

    def test_degraded_extraction_treated_as_normal_result(self):
        extractor = FakeExtractor({
            b"cv": ExtractionResult(data=ParsedCandidateData(full_name="Placeholder"), degraded=True)
        })
        store = FakeStore()
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"cv")])
            await queue.join()

        run(scenario())
        item = queue.items[0]
        assert item.status == UploadStatus.SUCCESS
        assert item.pending.degraded is True
        assert store.candidates[0].full_name == "Placeholder"


class TestFitScoring:
    """Tests for the conditional fit scoring step"""

    def test_target_job_creates_scored_application(self, fake_store):
        scorer = FakeScorer(score=87)
        queue = make_queue(scorer=scorer, store=fake_store)

        async def scenario():
            queue.enqueue([source(b"cv")], target_job_id="job-1")
            await queue.join()

        run(scenario())

        assert len(scorer.calls) == 1
        assert fake_store.candidate_calls == 1
        application = fake_store.applications[0]
        assert application.job_id == "job-1"
        assert application.candidate_id == fake_store.candidates[0].id
        assert application.ai_score == 87
        assert application.status.value == "TO_ANALYZE"

    def test_scoring_failure_is_swallowed(self, fake_store):
        scorer = FakeScorer(error=RuntimeError("quota exceeded"))
        queue = make_queue(scorer=scorer, store=fake_store)

        async def scenario():
            queue.enqueue([source(b"cv")], target_job_id="job-1")
            await queue.join()

        run(scenario())

        assert queue.items[0].status == UploadStatus.SUCCESS
        application = fake_store.applications[0]
        assert application.ai_score is None
        assert application.ai_reasoning is None

    def test_unknown_job_skips_scoring(self, fake_store):
        scorer = FakeScorer()
        queue = make_queue(scorer=scorer, store=fake_store)

        async def scenario():
            queue.enqueue([source(b"cv")], target_job_id="missing-job")
            await queue.join()

        run(scenario())

        assert scorer.calls == []
        assert queue.items[0].status == UploadStatus.SUCCESS
        assert fake_store.applications[0].ai_score is None

    def test_no_job_no_scoring(self, fake_store):
        scorer = FakeScorer()
        queue = make_queue(scorer=scorer, store=fake_store)

        async def scenario():
            queue.enqueue([source(b"cv")])
            await queue.join()

        run(scenario())
        assert scorer.calls == []
        assert fake_store.applications == []


class TestDuplicateResolution:
    """Tests for force-save and discard of flagged duplicates"""

    def _duplicate_queue(self, target_job_id=None, scorer=None):
        store = FakeStore(
            candidates=[known_candidate(full_name="John Smith", email="a@x.com")],
            jobs=[JobPosition(id="job-1", title="Backend Engineer")],
        )
        extractor = FakeExtractor({b"cv": ParsedCandidateData(full_name="John Smith", email="a@x.com")})
        queue = make_queue(extractor=extractor, scorer=scorer, store=store)
        return queue, store

    def test_force_save_persists_once(self):
        queue, store = self._duplicate_queue()

        async def scenario():
            item = queue.enqueue([source(b"cv")])[0]
            await queue.join()
            return await queue.force_save(item.id)

        saved = run(scenario())

        assert saved.status == UploadStatus.SUCCESS
        assert saved.duplicate_reason is None
        assert store.candidate_calls == 1
        assert queue.items[0].status == UploadStatus.SUCCESS

    def test_force_save_rescores_for_job(self):
        scorer = FakeScorer(score=64)
        queue, store = self._duplicate_queue(scorer=scorer)

        async def scenario():
            item = queue.enqueue([source(b"cv")], target_job_id="job-1")[0]
            await queue.join()
            await queue.force_save(item.id)

        run(scenario())

        assert len(scorer.calls) == 2
        assert store.application_calls == 1
        assert store.applications[0].ai_score == 64

    def test_force_save_rejected_for_non_duplicate(self):
        queue = make_queue()

        async def scenario():
            item = queue.enqueue([source(b"cv")])[0]
            await queue.join()
            await queue.force_save(item.id)

        with pytest.raises(InvalidUploadTransitionError):
            run(scenario())

    def test_force_save_unknown_item(self):
        queue = make_queue()
        with pytest.raises(UploadItemNotFoundError):
            run(queue.force_save("nope"))

    def test_force_save_failure_leaves_duplicate(self):
        queue, store = self._duplicate_queue()

        async def scenario():
            item = queue.enqueue([source(b"cv")])[0]
            await queue.join()
            store.fail_candidate = RuntimeError("write failed")
            with pytest.raises(RuntimeError):
                await queue.force_save(item.id)

        run(scenario())
        assert queue.items[0].status == UploadStatus.DUPLICATE

    def test_discard_removes_without_persisting(self):
        queue, store = self._duplicate_queue()

        async def scenario():
            item = queue.enqueue([source(b"cv")])[0]
            await queue.join()
            queue.discard(item.id)

        run(scenario())
        assert queue.items == []
        assert store.candidate_calls == 0

    def test_discard_rejected_for_success(self):
        queue = make_queue()

        async def scenario():
            item = queue.enqueue([source(b"cv")])[0]
            await queue.join()
            queue.discard(item.id)

        with pytest.raises(InvalidUploadTransitionError):
            run(scenario())


class TestQueueMaintenance:
    """Tests for cancel, clear and subscriptions"""

    def test_cancel_idle_item(self):
        store = FakeStore()
        queue = make_queue(store=store)

        async def scenario():
            items = queue.enqueue([source(b"a"), source(b"b")])
            queue.cancel(items[1].id)
            await queue.join()

        run(scenario())
        assert len(queue.items) == 1
        assert store.candidate_calls == 1

    def test_cancel_processing_item_rejected(self):
        queue = make_queue()

        async def scenario():
            item = queue.enqueue([source(b"a")])[0]
            try:
                queue.cancel(item.id)
            finally:
                await queue.join()

        with pytest.raises(InvalidUploadTransitionError):
            run(scenario())

    def test_clear_completed_keeps_pending(self):
        store = FakeStore(candidates=[known_candidate(full_name="Dup", email="dup@x.com")])
        extractor = FakeExtractor({
            b"ok": ParsedCandidateData(full_name="Ok"),
            b"dup": ParsedCandidateData(full_name="Dup"),
            b"err": CVExtractionError("boom"),
        })
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"ok"), source(b"dup"), source(b"err")])
            await queue.join()
            queue.enqueue([source(b"late1"), source(b"late2")])
            queue.clear_completed()
            remaining = [i.status for i in queue.items]
            await queue.join()
            return remaining

        remaining = run(scenario())
        assert remaining == [UploadStatus.PROCESSING, UploadStatus.IDLE]
        assert len(queue.items) == 2

    def test_clear_removes_everything(self):
        queue = make_queue()

        async def scenario():
            queue.enqueue([source(b"a"), source(b"b")])
            queue.clear()
            await queue.join()

        run(scenario())
        assert queue.items == []
        assert queue.pending_count == 0

    def test_unsubscribe_stops_notifications(self):
        queue = make_queue()
        calls = []
        unsubscribe = queue.subscribe(calls.append)

        async def scenario():
            queue.enqueue([source(b"a")])
            await queue.join()
            unsubscribe()
            queue.enqueue([source(b"b")])
            await queue.join()

        run(scenario())
        seen = len(calls)
        assert seen > 0
        assert all(len(snapshot) == 1 for snapshot in calls)

    def test_failing_listener_does_not_break_queue(self):
        queue = make_queue()

        def broken(items):
            raise ValueError("listener bug")

        queue.subscribe(broken)

        async def scenario():
            queue.enqueue([source(b"a")])
            await queue.join()

        run(scenario())
        assert queue.items[0].status == UploadStatus.SUCCESS

    def test_counters(self):
        store = FakeStore(candidates=[known_candidate(full_name="Dup", email="dup@x.com")])
        extractor = FakeExtractor({b"dup": ParsedCandidateData(full_name="Dup")})
        queue = make_queue(extractor=extractor, store=store)

        async def scenario():
            queue.enqueue([source(b"dup"), source(b"other")])
            pending = queue.pending_count
            await queue.join()
            return pending

        assert run(scenario()) == 2
        assert queue.pending_count == 0
        assert queue.duplicate_count == 1
