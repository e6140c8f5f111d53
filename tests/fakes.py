"""
Test doubles for the exam engine: a settable clock, a scheduler driven by
that clock, and an in-memory exam backend.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from entrance_cbt.errors import BackendUnavailableError
from entrance_cbt.models.exam_model import ExamDefinition
from entrance_cbt.models.submission_model import (
    AttemptSummary,
    EligibilityResult,
    QueuedSubmission,
    SubmissionOutcome,
    SubmissionRequest,
)
from entrance_cbt.services.backend_client import ExamBackend
from entrance_cbt.services.scheduler import Clock, ScheduledHandle, TickScheduler, run_callback

T0 = 1_767_225_600_000  # 2026-01-01T00:00:00Z
MINUTE = 60_000
SECOND = 1_000


def at(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def make_exam(**overrides) -> ExamDefinition:
    data: Dict[str, Any] = {
        "id": "exam-1",
        "stream": "NEET",
        "examAvailability": "practice",
        "examSubject": ["Physics", "Chemistry", "Biology"],
        "totalMarks": 720,
        "reattempt": 1,
    }
    data.update(overrides)
    return ExamDefinition.model_validate(data)


def make_scheduled_exam(start_ms: int, end_ms: int, **overrides) -> ExamDefinition:
    return make_exam(
        examAvailability="scheduled",
        startTime=at(start_ms).isoformat(),
        endTime=at(end_ms).isoformat(),
        **overrides,
    )


class FakeClock(Clock):
    def __init__(self, now_ms: int = T0):
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now

    def set(self, now_ms: int) -> None:
        self.now = now_ms

    def advance(self, ms: int) -> None:
        self.now += ms


@dataclass
class _Job:
    handle: ScheduledHandle
    due_ms: int
    interval_ms: Optional[int]
    callback: Any


class ManualScheduler(TickScheduler):
    """Runs callbacks only when the test advances time."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.jobs: List[_Job] = []

    def every(self, interval_seconds, callback, name=""):
        handle = ScheduledHandle(name)
        interval_ms = int(interval_seconds * 1000)
        self.jobs.append(_Job(handle, self.clock.now_ms() + interval_ms, interval_ms, callback))
        return handle

    def call_later(self, delay_seconds, callback, name=""):
        handle = ScheduledHandle(name)
        self.jobs.append(_Job(handle, self.clock.now_ms() + int(delay_seconds * 1000), None, callback))
        return handle

    def active(self) -> List[_Job]:
        self.jobs = [j for j in self.jobs if not j.handle.cancelled and not j.handle.fired]
        return self.jobs

    async def advance(self, seconds: float) -> None:
        target = self.clock.now_ms() + int(seconds * 1000)
        while True:
            due = [j for j in self.active() if j.due_ms <= target]
            if not due:
                break
            job = min(due, key=lambda j: j.due_ms)
            self.clock.set(job.due_ms)
            if job.interval_ms is None:
                job.handle.fired = True
            else:
                job.due_ms += job.interval_ms
            await run_callback(job.callback, job.handle.name)
        self.clock.set(target)


class FakeBackend(ExamBackend):
    """
    In-memory exam backend.

    submit_outcomes is consumed first (an Exception entry is raised);
    once empty, submissions succeed and are recorded as attempts.
    """

    def __init__(self, exam: ExamDefinition):
        self.exam = exam
        self.eligible = True
        self.eligibility_message = ""
        self.attempts: List[AttemptSummary] = []
        self.previous_result: Optional[Dict[str, Any]] = None
        self.submit_outcomes: List[Any] = []
        self.submissions: List[SubmissionRequest] = []
        self.unavailable = False
        self.calls = Counter()

    def _check(self, name: str) -> None:
        self.calls[name] += 1
        if self.unavailable:
            raise BackendUnavailableError()

    def record_attempt(self, score: float = 0.0) -> None:
        n = len(self.attempts) + 1
        self.attempts.append(AttemptSummary(id=f"attempt-{n}", exam_id=self.exam.id, score=score))

    async def check_eligibility(self, exam_id, student_id):
        self._check("check_eligibility")
        return EligibilityResult(
            eligible=self.eligible,
            exam=self.exam if self.eligible else None,
            message=self.eligibility_message,
        )

    async def submit_result(self, request):
        self._check("submit_result")
        self.submissions.append(request)
        if self.submit_outcomes:
            outcome = self.submit_outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        result = {"score": request.score, "attempt": len(self.attempts) + 1}
        self.record_attempt(request.score)
        self.previous_result = result
        return SubmissionOutcome(success=True, result=result)

    async def get_attempts(self, student_id, exam_id):
        self._check("get_attempts")
        return list(self.attempts)

    async def get_previous_result(self, student_id, exam_id):
        self._check("get_previous_result")
        return self.previous_result


def make_queued(
    exam_id: str = "exam-1",
    at: int = 1000,
    score: float = 0.0,
    student_id: str = "s-1",
) -> QueuedSubmission:
    return QueuedSubmission(
        exam_id=exam_id,
        student_id=student_id,
        answers={"q1": "A"},
        score=score,
        time_taken_seconds=60,
        completed_at="2026-01-01T00:01:00+00:00",
        enqueued_at_millis=at,
    )
