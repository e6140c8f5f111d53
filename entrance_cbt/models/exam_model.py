"""
models/exam_model.py

Exam definition as handed over by the exam backend.
Pydantic BaseModel; accepts the backend's camelCase keys as well as snake_case.
No timing logic here (see services/exam_timing.py).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ExamAvailability(str, Enum):
    PRACTICE = "practice"
    SCHEDULED = "scheduled"


def to_millis(value: datetime) -> int:
    """datetime → epoch milliseconds. Naive datetimes are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class ExamDefinition(BaseModel):
    """
    One exam, immutable for the duration of an attempt.

    Attributes:
        id:                    Exam identifier.
        stream:                Free-text stream name ("NEET", "JEE Main", "MHT-CET", ...).
        exam_availability:     practice (own countdown) or scheduled (shared window).
        exam_duration_minutes: Explicit duration override. None or 0 means "derive it".
        start_time / end_time: Absolute window of a scheduled exam.
        exam_subject:          Subject names shown in the paper.
        total_marks:           Maximum marks.
        reattempt:             Maximum allowed attempts. 1 means no retake.
        marking_rule_preview:  Resolved positive/negative marks. Opaque to the engine.
    """

    id: str
    stream: str = ""
    exam_availability: ExamAvailability = Field(
        default=ExamAvailability.PRACTICE,
        alias="examAvailability",
    )
    exam_duration_minutes: Optional[int] = Field(default=None, alias="examDurationMinutes")
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    exam_subject: List[str] = Field(default_factory=list, alias="examSubject")
    total_marks: float = Field(default=0, alias="totalMarks")
    reattempt: int = Field(default=1, description="Max allowed attempts")
    marking_rule_preview: Optional[Dict[str, Any]] = Field(default=None, alias="markingRulePreview")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def id_to_str(cls, v: Any) -> str:
        return str(v)

    @field_validator("reattempt", mode="before")
    @classmethod
    def reattempt_at_least_one(cls, v: Any) -> int:
        # missing / 0 / null all mean "a single attempt"
        try:
            n = int(v)
        except (TypeError, ValueError):
            return 1
        return n if n >= 1 else 1

    @property
    def is_scheduled(self) -> bool:
        return self.exam_availability == ExamAvailability.SCHEDULED

    @property
    def start_ms(self) -> Optional[int]:
        return to_millis(self.start_time) if self.start_time else None

    @property
    def end_ms(self) -> Optional[int]:
        return to_millis(self.end_time) if self.end_time else None

    @property
    def runs_on_wall_clock(self) -> bool:
        """Scheduled exam whose countdown is anchored on end_time."""
        return self.is_scheduled and self.end_time is not None

    @property
    def max_attempts(self) -> int:
        return self.reattempt or 1
