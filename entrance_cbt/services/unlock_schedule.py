"""
services/unlock_schedule.py

When do restricted subjects (MHT-CET Biology / Mathematics) open?

compute_unlock_schedule() is pure: same exam, start and now give the same answer.
Each restricted subject has one absolute unlock instant per attempt, so the work
splits in two: an UnlockPlan (stream match, alias expansion, delay arithmetic)
built once, and a cheap comparison against `now` on every tick.
UnlockScheduleCache is a small per-owner memo of plans; there is no
module-level cache.
"""

import math
from collections import OrderedDict
from typing import Dict, NamedTuple, Optional, Tuple

import config
from entrance_cbt.models.exam_model import ExamDefinition
from entrance_cbt.models.session_state import SubjectAccessRecord, UnlockSchedule
from entrance_cbt.models.timing_profile import StreamProfile
from entrance_cbt.services.stream_catalog import aliases_of, canonical_stream_of, profile_for


MINUTE_MS = 60_000


class SubjectUnlock(NamedTuple):
    subject: str
    aliases: Tuple[str, ...]
    unlock_at_ms: Optional[int]  # None = never locked
    max_wait_ms: Optional[int]   # practice: a clock behind the start still waits only the delay


class UnlockPlan(NamedTuple):
    stream: StreamProfile
    rules: Tuple[SubjectUnlock, ...]


# ── helpers ──────────────────────────────────────────────────────────────────

def build_unlock_plan(exam: ExamDefinition, effective_start_ms: int) -> UnlockPlan:
    """Unlock instants of every subject in the exam's stream profile."""
    stream = canonical_stream_of(exam.stream)
    profile = profile_for(stream)
    if profile is None:
        return UnlockPlan(stream, ())

    rules = []
    for subject, timing in profile.subject_timings.items():
        unlock_at: Optional[int] = None
        max_wait: Optional[int] = None
        if timing.unlock_delay_minutes > 0:
            delay_ms = timing.unlock_delay_minutes * MINUTE_MS
            if exam.runs_on_wall_clock:
                # anchored on the shared end time, not on when this student joined
                unlock_at = exam.end_ms - delay_ms
            else:
                unlock_at = effective_start_ms + delay_ms
                max_wait = delay_ms
        rules.append(SubjectUnlock(subject, aliases_of(subject), unlock_at, max_wait))
    return UnlockPlan(stream, tuple(rules))


def schedule_at(plan: UnlockPlan, now_ms: int) -> UnlockSchedule:
    """Lock state of a plan at one instant."""
    if not plan.rules:
        return UnlockSchedule(all_unlocked=True, stream=plan.stream)

    subjects: Dict[str, SubjectAccessRecord] = {}
    for rule in plan.rules:
        locked = rule.unlock_at_ms is not None and now_ms < rule.unlock_at_ms
        remaining = 0
        if locked:
            remaining = rule.unlock_at_ms - now_ms
            if rule.max_wait_ms is not None:
                remaining = min(remaining, rule.max_wait_ms)
        record = SubjectAccessRecord(
            subject_name=rule.subject,
            is_locked=locked,
            remaining_unlock_millis=remaining,
        )
        subjects[rule.subject] = record
        for alias in rule.aliases:
            subjects[alias] = record

    return UnlockSchedule(
        all_unlocked=not any(r.is_locked for r in subjects.values()),
        stream=plan.stream,
        subjects=subjects,
    )


# ── public API ───────────────────────────────────────────────────────────────

def compute_unlock_schedule(
    exam: ExamDefinition,
    effective_start_ms: int,
    now_ms: int,
) -> UnlockSchedule:
    """
    Per-subject lock state at `now_ms`.

    Scheduled exams: restricted subjects open once end_time - now <= unlock delay
    (also after the exam has ended). Practice exams: they open once the student
    has been writing for the unlock delay, regardless of the exam's total length.

    Args:
        exam:               The exam definition.
        effective_start_ms: When this student started (epoch ms).
        now_ms:             Current instant (epoch ms).

    Returns:
        UnlockSchedule. Streams without restrictions come back all_unlocked.
    """
    return schedule_at(build_unlock_plan(exam, effective_start_ms), now_ms)


def minutes_until_unlock(record: SubjectAccessRecord) -> int:
    """Remaining lock time rounded up to whole minutes (0 when open)."""
    if not record.is_locked:
        return 0
    return math.ceil(record.remaining_unlock_millis / MINUTE_MS)


PlanKey = Tuple[str, str, Optional[int], int]


class UnlockScheduleCache:
    """
    LRU memo of unlock plans, keyed by the exam's timing fields and the
    student's effective start.

    A tick inside one attempt is a hit: only the comparison with `now_ms` runs,
    so a hit returns the same schedule compute_unlock_schedule() would.
    """

    def __init__(self, maxsize: int = config.UNLOCK_CACHE_SIZE):
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        self._plans: "OrderedDict[PlanKey, UnlockPlan]" = OrderedDict()

    @staticmethod
    def _key(exam: ExamDefinition, effective_start_ms: int) -> PlanKey:
        end = exam.end_ms if exam.runs_on_wall_clock else None
        return (exam.id, exam.stream, end, effective_start_ms)

    def schedule_for(
        self,
        exam: ExamDefinition,
        effective_start_ms: int,
        now_ms: int,
    ) -> UnlockSchedule:
        key = self._key(exam, effective_start_ms)
        plan = self._plans.get(key)
        if plan is None:
            self.misses += 1
            plan = build_unlock_plan(exam, effective_start_ms)
            self._plans[key] = plan
            if len(self._plans) > self.maxsize:
                self._plans.popitem(last=False)
        else:
            self.hits += 1
            self._plans.move_to_end(key)
        return schedule_at(plan, now_ms)

    def clear(self) -> None:
        self._plans.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._plans)
