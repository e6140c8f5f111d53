"""
services/exam_timing.py

Exam duration, countdown and access-window rules.
Pure Python functions. The caller always passes `now_ms`; nothing here reads the clock.
"""

import logging
from enum import Enum
from typing import Optional

import config
from entrance_cbt.models.exam_model import ExamDefinition
from entrance_cbt.models.timing_profile import DurationCheck, StreamProfile, SubjectAccessRules
from entrance_cbt.services.stream_catalog import aliases_of, canonical_stream_of, profile_for

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000


class AccessWindow(str, Enum):
    OPEN = "open"
    TOO_EARLY = "too_early"
    ENDED = "ended"


def resolve_duration_minutes(exam: ExamDefinition) -> int:
    """
    Total allowed minutes for an exam.

    Priority (first match wins):
    1. scheduled exam with start_time and end_time → whole minutes between them
    2. exam_duration_minutes > 0 → as configured
    3. stream profile duration (NEET 200, JEE 180, MHT-CET 180)
    4. DEFAULT_EXAM_DURATION_MINUTES

    Args:
        exam: The exam definition.

    Returns:
        Duration in minutes. Never raises.
    """
    if exam.is_scheduled and exam.start_time and exam.end_time:
        return (exam.end_ms - exam.start_ms) // MINUTE_MS

    if exam.exam_duration_minutes and exam.exam_duration_minutes > 0:
        return exam.exam_duration_minutes

    stream = canonical_stream_of(exam.stream)
    profile = profile_for(stream)
    if profile is not None:
        return profile.total_duration_minutes

    if stream == StreamProfile.UNKNOWN:
        logger.warning(
            f"Exam {exam.id}: unknown stream '{exam.stream}', "
            f"using default duration {config.DEFAULT_EXAM_DURATION_MINUTES} min"
        )
    return config.DEFAULT_EXAM_DURATION_MINUTES


def seconds_remaining(exam: ExamDefinition, effective_start_ms: int, now_ms: int) -> int:
    """
    Whole seconds left on the countdown, floored at 0.

    Scheduled exams count down to end_time. Practice exams count the resolved
    duration from the student's own start.
    """
    if exam.runs_on_wall_clock:
        left_ms = exam.end_ms - now_ms
    else:
        left_ms = resolve_duration_minutes(exam) * MINUTE_MS - (now_ms - effective_start_ms)
    return max(0, left_ms // 1000)


def time_taken_seconds(exam: ExamDefinition, effective_start_ms: int, now_ms: int) -> int:
    """
    Seconds the student spent on the attempt.

    Scheduled: wall-clock time since the student's start.
    Practice: full duration minus what is left on the countdown.
    """
    if exam.runs_on_wall_clock:
        return max(0, (now_ms - effective_start_ms) // 1000)
    total = resolve_duration_minutes(exam) * 60
    return max(0, total - seconds_remaining(exam, effective_start_ms, now_ms))


def check_access_window(exam: ExamDefinition, now_ms: int) -> AccessWindow:
    """
    Can a new attempt be opened now?

    Scheduled exams open EARLY_ENTRY_GRACE_MINUTES before start_time and close
    at end_time. Practice exams are always open.
    """
    if not exam.is_scheduled:
        return AccessWindow.OPEN
    if exam.start_time and now_ms < exam.start_ms - config.EARLY_ENTRY_GRACE_MINUTES * MINUTE_MS:
        return AccessWindow.TOO_EARLY
    if exam.end_time and now_ms > exam.end_ms:
        return AccessWindow.ENDED
    return AccessWindow.OPEN


def can_continue(exam: ExamDefinition, now_ms: int) -> bool:
    """A saved scheduled attempt may be resumed until SCHEDULED_GRACE_MINUTES after end_time."""
    if not exam.runs_on_wall_clock:
        return True
    return now_ms <= exam.end_ms + config.SCHEDULED_GRACE_MINUTES * MINUTE_MS


def results_hidden_until(exam: ExamDefinition, now_ms: int) -> Optional[int]:
    """end_time (ms) while a scheduled exam is still running, else None."""
    if exam.runs_on_wall_clock and now_ms < exam.end_ms:
        return exam.end_ms
    return None


def format_duration(minutes: int) -> str:
    """200 → '3h 20m', 45 → '45m', 120 → '2h'."""
    if minutes <= 0:
        return "0m"
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


# ── authoring and review helpers ─────────────────────────────────────────────

def subject_access_rules(exam: ExamDefinition) -> SubjectAccessRules:
    """Subjects held back by the exam's stream, with every accepted spelling."""
    stream = canonical_stream_of(exam.stream)
    profile = profile_for(stream)
    if profile is None or not profile.has_restrictions:
        return SubjectAccessRules(stream=stream)

    restricted = []
    delay = 0
    for subject, timing in profile.subject_timings.items():
        if timing.unlock_delay_minutes > 0:
            restricted.append(subject)
            restricted.extend(aliases_of(subject))
            delay = max(delay, timing.unlock_delay_minutes)
    return SubjectAccessRules(stream=stream, restricted_subjects=restricted, unlock_after_minutes=delay)


def validate_exam_duration(stream: str, minutes: Optional[int]) -> DurationCheck:
    """
    Sanity-check a duration an author typed in.

    Warns when it differs from the stream's usual length, or falls outside
    MIN_PLAUSIBLE_MINUTES..MAX_PLAUSIBLE_MINUTES. An empty stream or duration
    is not checked.
    """
    if not stream or not minutes:
        return DurationCheck()

    warnings = []
    canonical = canonical_stream_of(stream)
    profile = profile_for(canonical)
    if profile is not None and minutes != profile.total_duration_minutes:
        usual = profile.total_duration_minutes
        warnings.append(
            f"{canonical.value} exams typically have {usual} minutes ({format_duration(usual)}) duration"
        )
    if minutes < config.MIN_PLAUSIBLE_MINUTES:
        warnings.append("Duration seems too short for a competitive exam")
    if minutes > config.MAX_PLAUSIBLE_MINUTES:
        warnings.append("Duration seems too long for a single exam session")

    return DurationCheck(
        is_valid=not warnings,
        warnings=warnings,
        recommended_minutes=profile.total_duration_minutes if profile else config.DEFAULT_EXAM_DURATION_MINUTES,
    )


def time_efficiency(time_taken: int, exam: ExamDefinition) -> float:
    """Share of the allowed time left unused, in percent (0-100, two decimals)."""
    if not time_taken or time_taken <= 0:
        return 0.0
    total = resolve_duration_minutes(exam) * 60
    if total <= 0:
        return 0.0
    efficiency = (total - time_taken) / total * 100
    return max(0.0, min(100.0, round(efficiency, 2)))
