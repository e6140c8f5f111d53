"""
Offline submission queue tests: replacement per exam, ordered drain,
duplicate handling and corrupt entries.
"""
import json

import pytest

from entrance_cbt.errors import BackendUnavailableError, SubmissionRejectedError
from fakes import make_queued as entry
from entrance_cbt.models.submission_model import SubmissionOutcome
from entrance_cbt.services.local_store import OFFLINE_QUEUE_KEY


class Recorder:
    """submit_fn that answers from a per-exam script."""

    def __init__(self, script=None):
        self.script = script or {}
        self.seen = []

    async def __call__(self, item):
        self.seen.append(item.exam_id)
        outcome = self.script.get(item.exam_id, SubmissionOutcome(success=True, result={"exam": item.exam_id}))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestEnqueue:

    def test_same_exam_replaces_prior_entry(self, queue):
        queue.enqueue(entry("exam-1", at=1000, score=10))
        queue.enqueue(entry("exam-1", at=2000, score=20))

        pending = queue.pending()
        assert len(pending) == 1
        assert pending[0].enqueued_at_millis == 2000
        assert pending[0].score == 20

    def test_replacement_keeps_position(self, queue):
        queue.enqueue(entry("a", at=1))
        queue.enqueue(entry("b", at=2))
        queue.enqueue(entry("a", at=3))
        assert [e.exam_id for e in queue.pending()] == ["a", "b"]

    def test_enqueue_is_idempotent(self, queue):
        queue.enqueue(entry())
        queue.enqueue(entry())
        assert len(queue) == 1

    def test_entries_round_trip(self, queue):
        item = entry()
        queue.enqueue(item)
        assert queue.pending() == [item]

    def test_remove_exam(self, queue, store):
        queue.enqueue(entry("a"))
        queue.enqueue(entry("b"))
        assert queue.remove_exam("a", "s-1") == 1
        assert queue.remove_exam("a", "s-1") == 0
        assert [e.exam_id for e in queue.pending()] == ["b"]
        queue.remove_exam("b", "s-1")
        assert store.get(OFFLINE_QUEUE_KEY) is None

    def test_students_sharing_a_device_keep_their_own_entries(self, queue):
        queue.enqueue(entry("exam-1", at=1, student_id="student-a"))
        queue.enqueue(entry("exam-1", at=2, student_id="student-b"))
        queue.enqueue(entry("exam-1", at=3, student_id="student-b"))

        assert [(e.student_id, e.enqueued_at_millis) for e in queue.pending()] == [
            ("student-a", 1),
            ("student-b", 3),
        ]
        assert queue.remove_exam("exam-1", "student-b") == 1
        assert [e.student_id for e in queue.pending()] == ["student-a"]
        assert [e.student_id for e in queue.pending_for("student-a")] == ["student-a"]
        assert queue.pending_for("student-b") == []


class TestDrain:

    @pytest.mark.asyncio
    async def test_drains_in_insertion_order(self, queue):
        for exam_id in ("c", "a", "b"):
            queue.enqueue(entry(exam_id))
        submit = Recorder()

        report = await queue.drain_and_sync(submit)

        assert submit.seen == ["c", "a", "b"]
        assert len(report.synced) == 3
        assert report.failed == []
        assert report.result_for("a", "s-1") == {"exam": "a"}
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_duplicate_is_success(self, queue):
        queue.enqueue(entry("a"))
        queue.enqueue(entry("b"))
        submit = Recorder({
            "a": SubmissionOutcome(success=False, message="Exam already submitted"),
            "b": SubmissionOutcome(success=True, duplicate=True),
        })

        report = await queue.drain_and_sync(submit)

        assert [e.exam_id for e in report.synced] == ["a", "b"]
        assert report.failed == []
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_failures_stay_queued(self, queue):
        queue.enqueue(entry("a"))
        queue.enqueue(entry("b"))
        queue.enqueue(entry("c"))
        submit = Recorder({
            "a": BackendUnavailableError(),
            "c": SubmissionOutcome(success=False, message="validation failed"),
        })

        report = await queue.drain_and_sync(submit)

        assert [e.exam_id for e in report.synced] == ["b"]
        assert [e.exam_id for e in report.failed] == ["a", "c"]
        assert [e.exam_id for e in queue.pending()] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_rejected_entries_stay_queued(self, queue):
        queue.enqueue(entry("a"))
        report = await queue.drain_and_sync(Recorder({"a": SubmissionRejectedError("nope")}))
        assert len(report.failed) == 1
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_entry_replaced_during_drain_is_kept(self, queue):
        queue.enqueue(entry("a", at=1))

        async def submit(item):
            queue.enqueue(entry("a", at=2))
            return SubmissionOutcome(success=True)

        await queue.drain_and_sync(submit)
        assert [e.enqueued_at_millis for e in queue.pending()] == [2]

    @pytest.mark.asyncio
    async def test_drain_for_one_student(self, queue):
        queue.enqueue(entry("exam-1", student_id="student-a"))
        queue.enqueue(entry("exam-1", student_id="student-b"))
        submit = Recorder()

        report = await queue.drain_and_sync(submit, student_id="student-b")

        assert [e.student_id for e in report.synced] == ["student-b"]
        assert report.result_for("exam-1", "student-b") == {"exam": "exam-1"}
        assert report.result_for("exam-1", "student-a") is None
        assert [e.student_id for e in queue.pending()] == ["student-a"]

    @pytest.mark.asyncio
    async def test_empty_queue(self, queue):
        report = await queue.drain_and_sync(Recorder())
        assert report.synced == [] and report.failed == []


class TestCorruptState:

    def test_unparseable_queue_is_discarded(self, queue, store, caplog):
        store.set(OFFLINE_QUEUE_KEY, "{not json")
        with caplog.at_level("WARNING"):
            assert queue.pending() == []
        assert store.get(OFFLINE_QUEUE_KEY) is None
        assert "unreadable" in caplog.text

    def test_non_list_queue_is_discarded(self, queue, store):
        store.set(OFFLINE_QUEUE_KEY, json.dumps({"exam_id": "a"}))
        assert queue.pending() == []

    def test_corrupt_entry_is_dropped(self, queue, store):
        good = entry("a").model_dump(mode="json")
        store.set(OFFLINE_QUEUE_KEY, json.dumps([{"exam_id": "broken"}, good]))
        assert [e.exam_id for e in queue.pending()] == ["a"]


def test_duplicate_wording_counts_as_applied():
    assert SubmissionOutcome(success=False, duplicate=True).applied
    assert SubmissionOutcome(success=False, message="You have ALREADY SUBMITTED this exam").is_duplicate
    assert not SubmissionOutcome(success=False, message="server error").applied
