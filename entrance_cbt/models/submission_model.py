"""
models/submission_model.py

Payloads exchanged with the exam backend, and the offline queue entry.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from entrance_cbt.models.exam_model import ExamDefinition

DUPLICATE_MARKERS = ("already submitted", "already exists", "duplicate")


def looks_like_duplicate(message: str) -> bool:
    """Server wording for "this submission was applied earlier"."""
    lowered = (message or "").lower()
    return any(marker in lowered for marker in DUPLICATE_MARKERS)


def result_key(exam_id: str, student_id: str) -> str:
    return f"{student_id}/{exam_id}"


class QueuedSubmission(BaseModel):
    """
    A finished attempt that has not reached the server yet.

    Identity is (exam_id, student_id, enqueued_at_millis). A device keeps at
    most one pending entry per (exam_id, student_id).
    """

    exam_id: str
    student_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    score: float = 0.0
    time_taken_seconds: int = Field(default=0, ge=0)
    completed_at: str
    enqueued_at_millis: int

    @property
    def owner(self) -> Tuple[str, str]:
        return (self.exam_id, self.student_id)

    @property
    def identity(self) -> tuple:
        return (self.exam_id, self.student_id, self.enqueued_at_millis)


class SubmissionRequest(BaseModel):
    exam_id: str
    student_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    score: float = 0.0
    time_taken_seconds: int = 0
    completed_at: str
    is_offline_replay: bool = False

    @classmethod
    def from_queued(cls, entry: QueuedSubmission) -> "SubmissionRequest":
        return cls(
            exam_id=entry.exam_id,
            student_id=entry.student_id,
            answers=entry.answers,
            score=entry.score,
            time_taken_seconds=entry.time_taken_seconds,
            completed_at=entry.completed_at,
            is_offline_replay=True,
        )


class SubmissionOutcome(BaseModel):
    success: bool
    result: Optional[Dict[str, Any]] = None
    message: str = ""
    duplicate: bool = False

    @property
    def is_duplicate(self) -> bool:
        """Server reports the submission as applied by an earlier call."""
        return self.duplicate or looks_like_duplicate(self.message)

    @property
    def applied(self) -> bool:
        """Server holds this submission, whether from this call or an earlier one."""
        return self.success or self.is_duplicate


class EligibilityResult(BaseModel):
    eligible: bool
    exam: Optional[ExamDefinition] = None
    message: str = ""


class AttemptSummary(BaseModel):
    id: str
    exam_id: str
    score: float = 0.0
    completed_at: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class SyncReport(BaseModel):
    synced: List[QueuedSubmission] = Field(default_factory=list)
    failed: List[QueuedSubmission] = Field(default_factory=list)
    results: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="result_key(exam_id, student_id) → result returned by the server for synced entries",
    )

    def result_for(self, exam_id: str, student_id: str) -> Optional[Dict[str, Any]]:
        return self.results.get(result_key(exam_id, student_id))

    def synced_for(self, exam_id: str, student_id: str) -> bool:
        return any(e.owner == (exam_id, student_id) for e in self.synced)
