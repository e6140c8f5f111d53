"""
models/session_state.py

State carried by one student's exam session.
Pydantic BaseModel based, so snapshots round-trip through JSON unchanged.
No UI code.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from entrance_cbt.models.timing_profile import StreamProfile


class ExamView(str, Enum):
    """Screens of the exam client. Only one is active at a time."""
    HOME = "home"
    INSTRUCTIONS = "instructions"
    IN_PROGRESS = "in_progress"
    RESULT = "result"
    ATTEMPT_DETAIL = "attempt_detail"


class SubjectAccessRecord(BaseModel):
    subject_name: str
    is_locked: bool = False
    remaining_unlock_millis: int = Field(default=0, ge=0)


class UnlockSchedule(BaseModel):
    """
    Subject access at one instant.

    subjects holds one entry per known spelling, so the record for
    "Mathematics" is also found under "Maths" and "Math".
    """

    all_unlocked: bool = True
    stream: StreamProfile = StreamProfile.UNKNOWN
    subjects: Dict[str, SubjectAccessRecord] = Field(default_factory=dict)

    def record_for(self, subject: str) -> Optional[SubjectAccessRecord]:
        if subject in self.subjects:
            return self.subjects[subject]
        lowered = subject.strip().lower()
        for name, record in self.subjects.items():
            if name.lower() == lowered:
                return record
        return None

    def is_locked(self, subject: str) -> bool:
        record = self.record_for(subject)
        return bool(record and record.is_locked)


class ProgressSnapshot(BaseModel):
    """
    The student's answer sheet, persisted while the exam is in progress.

    Attributes:
        exam_id / student_id:   Owner of the snapshot.
        effective_start_ms:     When the student began (epoch ms). Never reset on resume.
        answers:                {question_id: selected answer}
        current_question_index: Question on screen (0-based).
        marked_questions:       Questions flagged for review.
        saved_at_ms:            Last write.
    """

    exam_id: str
    student_id: str
    effective_start_ms: int
    answers: Dict[str, Any] = Field(default_factory=dict)
    current_question_index: int = Field(default=0, ge=0)
    marked_questions: List[str] = Field(default_factory=list)
    saved_at_ms: int = 0


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class SessionNotice(BaseModel):
    """A toast-style message for the student."""
    code: str
    message: str
    level: NoticeLevel = NoticeLevel.INFO
    at_ms: int = 0


class SessionView(BaseModel):
    """Read-only picture of a session for the HTTP layer."""
    exam_id: str
    student_id: str
    view: ExamView
    online: bool
    pending_resume: bool = False
    seconds_remaining: Optional[int] = None
    unlock_schedule: Optional[UnlockSchedule] = None
    progress: Optional[ProgressSnapshot] = None
    attempts_so_far: Optional[int] = None
    max_attempts: Optional[int] = None
    result: Optional[Dict[str, Any]] = None
    result_pending_until_ms: Optional[int] = None
    selected_attempt_id: Optional[str] = None
    queued_submissions: int = 0
    notices: List[SessionNotice] = Field(default_factory=list)
