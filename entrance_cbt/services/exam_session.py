"""
services/exam_session.py

One student's exam session: home → instructions → in_progress → result.

The session owns
- transition guards (TRANSITIONS),
- the 1-second countdown tick (via a TickScheduler handle),
- submission, online first and through the offline queue otherwise,
- the persisted progress snapshot that lets an attempt survive a reload.

Tick updates only touch the timer fields (seconds_remaining, unlock_schedule,
warnings); network responses only touch the result/attempt fields. Neither
replaces the other's data.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

import config
from entrance_cbt.errors import (
    BackendUnavailableError,
    ExamAccessWindowError,
    ExamEngineError,
    ExamIneligibleError,
    InvalidTransitionError,
    MaxAttemptsReachedError,
    SessionNotFoundError,
    SubmissionRejectedError,
)
from entrance_cbt.models.exam_model import ExamDefinition
from entrance_cbt.models.session_state import (
    ExamView,
    NoticeLevel,
    ProgressSnapshot,
    SessionNotice,
    SessionView,
    UnlockSchedule,
)
from entrance_cbt.models.submission_model import (
    AttemptSummary,
    QueuedSubmission,
    SubmissionOutcome,
    SubmissionRequest,
    SyncReport,
)
from entrance_cbt.services.backend_client import ExamBackend
from entrance_cbt.services.exam_timing import (
    AccessWindow,
    can_continue,
    check_access_window,
    results_hidden_until,
    seconds_remaining,
    time_taken_seconds,
)
from entrance_cbt.services.local_store import KeyValueStore, progress_key
from entrance_cbt.services.scheduler import (
    AsyncioScheduler,
    Clock,
    ScheduledHandle,
    SystemClock,
    TickScheduler,
)
from entrance_cbt.services.submission_queue import OfflineSubmissionQueue
from entrance_cbt.services.unlock_schedule import UnlockScheduleCache

logger = logging.getLogger(__name__)

Scorer = Callable[[ExamDefinition, Dict[str, Any]], float]

TRANSITIONS: Dict[ExamView, Set[ExamView]] = {
    ExamView.HOME: {
        ExamView.INSTRUCTIONS,
        ExamView.IN_PROGRESS,
        ExamView.RESULT,
        ExamView.ATTEMPT_DETAIL,
    },
    ExamView.INSTRUCTIONS: {ExamView.IN_PROGRESS, ExamView.HOME},
    ExamView.IN_PROGRESS: {ExamView.RESULT, ExamView.HOME},
    ExamView.RESULT: {ExamView.HOME},
    ExamView.ATTEMPT_DETAIL: {ExamView.HOME},
}

WARNING_MESSAGES: Dict[int, str] = {
    300: "5 minutes remaining! Please review your answers.",
    60: "1 minute remaining! Exam will auto-submit soon.",
    30: "30 seconds remaining! Auto-submit imminent.",
    10: "10 seconds remaining! Submitting now...",
}

SUBMIT_MESSAGES: Dict[str, str] = {
    "auto_submit": "Time's up! Your exam was submitted automatically.",
    "manual_submit": "Your exam has been submitted successfully!",
    "queued_submit": (
        "You are offline. Your exam has been saved and will be submitted "
        "when you are back online."
    ),
}

RESULTS_AFTER_END = (
    "This is a scheduled exam that is currently in progress. "
    "Results will be available after the exam ends."
)


def _no_score(exam: ExamDefinition, answers: Dict[str, Any]) -> float:
    """Scoring is done by the server."""
    return 0.0


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def can_transition(current: ExamView, target: ExamView) -> bool:
    return target in TRANSITIONS.get(current, set())


class ExamSessionStateMachine:
    """
    Drives one (exam_id, student_id) session.

    All collaborators are injected so tests can run the session against a
    fake clock, a manual scheduler and an in-memory store.
    """

    def __init__(
        self,
        exam_id: str,
        student_id: str,
        backend: ExamBackend,
        store: KeyValueStore,
        queue: Optional[OfflineSubmissionQueue] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[TickScheduler] = None,
        unlock_cache: Optional[UnlockScheduleCache] = None,
        scorer: Scorer = _no_score,
        exam: Optional[ExamDefinition] = None,
        online: bool = True,
        on_notice: Optional[Callable[[SessionNotice], None]] = None,
    ):
        self.exam_id = str(exam_id)
        self.student_id = str(student_id)
        self.backend = backend
        self.store = store
        self.queue = queue or OfflineSubmissionQueue(store)
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncioScheduler()
        self.unlock_cache = unlock_cache or UnlockScheduleCache()
        self.scorer = scorer
        self.on_notice = on_notice

        self.view = ExamView.HOME
        self.exam: Optional[ExamDefinition] = exam
        self.online = online
        self.pending_resume = False
        self.progress: Optional[ProgressSnapshot] = None

        # written by tick()
        self.seconds_remaining: Optional[int] = None
        self.unlock_schedule: Optional[UnlockSchedule] = None
        self._warnings_seen: Set[int] = set()
        self._auto_submitted = False
        self._tick_handle: Optional[ScheduledHandle] = None

        # written by network responses
        self.attempts: Optional[List[AttemptSummary]] = None
        self.result: Optional[Dict[str, Any]] = None
        self.result_pending_until_ms: Optional[int] = None
        self.selected_attempt_id: Optional[str] = None
        self._submitting = False

        self._drain_handle: Optional[ScheduledHandle] = None
        self._draining = False
        self.notices: List[SessionNotice] = []

    # ── helpers ──────────────────────────────────────────────────────────────

    @property
    def attempts_so_far(self) -> Optional[int]:
        return None if self.attempts is None else len(self.attempts)

    @property
    def max_attempts(self) -> Optional[int]:
        return self.exam.max_attempts if self.exam else None

    @property
    def _progress_key(self) -> str:
        return progress_key(self.exam_id, self.student_id)

    def _notify(self, code: str, message: str, level: NoticeLevel = NoticeLevel.INFO) -> None:
        notice = SessionNotice(code=code, message=message, level=level, at_ms=self.clock.now_ms())
        self.notices.append(notice)
        if self.on_notice is not None:
            self.on_notice(notice)

    def drain_notices(self) -> List[SessionNotice]:
        notices, self.notices = self.notices, []
        return notices

    def _move(self, target: ExamView) -> None:
        if not can_transition(self.view, target):
            raise InvalidTransitionError(self.view.value, target.value)
        if self.view == ExamView.IN_PROGRESS:
            self._stop_timer()
        logger.info(f"[{self.exam_id}/{self.student_id}] {self.view.value} → {target.value}")
        self.view = target

    def _require(self, *views: ExamView, target: str) -> None:
        if self.view not in views:
            raise InvalidTransitionError(self.view.value, target)

    def _stop_timer(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _restart_timer(self) -> None:
        self._stop_timer()
        self._tick_handle = self.scheduler.every(
            config.TICK_INTERVAL_SECONDS, self.tick, name=f"tick:{self.exam_id}"
        )

    # ── progress snapshot ────────────────────────────────────────────────────

    def _load_snapshot(self) -> Optional[ProgressSnapshot]:
        raw = self.store.get(self._progress_key)
        if raw is None:
            return None
        try:
            snapshot = ProgressSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt progress snapshot {self._progress_key}: {e.error_count()} error(s)")
            self.store.remove(self._progress_key)
            return None
        if snapshot.exam_id != self.exam_id or snapshot.student_id != self.student_id:
            logger.warning(f"Discarding progress snapshot {self._progress_key} owned by another session")
            self.store.remove(self._progress_key)
            return None
        return snapshot

    def _save_progress(self) -> None:
        if self.progress is None:
            return
        self.progress.saved_at_ms = self.clock.now_ms()
        self.store.set(self._progress_key, self.progress.model_dump_json())

    def _discard_snapshot(self) -> None:
        self.store.remove(self._progress_key)
        self.progress = None

    # ── server reads ─────────────────────────────────────────────────────────

    async def _refresh_attempts(self) -> None:
        self.attempts = None
        try:
            self.attempts = await self.backend.get_attempts(self.student_id, self.exam_id)
        except BackendUnavailableError as e:
            self._notify("attempts_unavailable", e.message, NoticeLevel.ERROR)

    async def _load_exam(self) -> Optional[ExamDefinition]:
        """Exam definition behind the timing and result rules. None while it cannot be read."""
        if self.exam is not None:
            return self.exam
        try:
            eligibility = await self.backend.check_eligibility(self.exam_id, self.student_id)
        except BackendUnavailableError as e:
            self._notify("exam_unavailable", e.message, NoticeLevel.ERROR)
            return None
        if eligibility.exam is not None:
            self.exam = eligibility.exam
        return self.exam

    async def _refresh_previous_result(self) -> None:
        """Re-read the last result unless the exam is unknown or still hides it."""
        self.result = None
        self.result_pending_until_ms = None
        if self.exam is None:
            return
        hidden_until = results_hidden_until(self.exam, self.clock.now_ms())
        if hidden_until is not None:
            self.result_pending_until_ms = hidden_until
            return
        try:
            self.result = await self.backend.get_previous_result(self.student_id, self.exam_id)
        except BackendUnavailableError as e:
            self._notify("result_unavailable", e.message, NoticeLevel.ERROR)

    async def _ensure_attempts_available(self) -> None:
        """Fresh attempt count from the server; refuses once the limit is reached."""
        try:
            self.attempts = await self.backend.get_attempts(self.student_id, self.exam_id)
        except BackendUnavailableError as e:
            self.attempts = None
            self._notify("attempts_unavailable", e.message, NoticeLevel.ERROR)
            raise
        limit = self.exam.max_attempts if self.exam else 1
        if len(self.attempts) >= limit:
            error = MaxAttemptsReachedError()
            self._notify("max_attempts", error.message, NoticeLevel.ERROR)
            raise error

    async def _check_entry(self) -> ExamDefinition:
        """Eligibility (never cached) plus the scheduled access window."""
        try:
            eligibility = await self.backend.check_eligibility(self.exam_id, self.student_id)
        except BackendUnavailableError as e:
            self._notify("eligibility_unavailable", e.message, NoticeLevel.ERROR)
            raise

        if not eligibility.eligible:
            error = ExamIneligibleError(eligibility.message) if eligibility.message else ExamIneligibleError()
            self._notify("ineligible", error.message, NoticeLevel.ERROR)
            raise error
        if eligibility.exam is not None:
            self.exam = eligibility.exam
        if self.exam is None:
            raise ExamIneligibleError("Exam details could not be loaded.")

        now = self.clock.now_ms()
        window = check_access_window(self.exam, now)
        if window == AccessWindow.TOO_EARLY:
            error = ExamAccessWindowError("This exam has not started yet.")
        elif window == AccessWindow.ENDED and not (
            can_continue(self.exam, now) and self._load_snapshot() is not None
        ):
            error = ExamAccessWindowError("This exam has ended.")
        else:
            return self.exam
        self._notify(window.value, error.message, NoticeLevel.ERROR)
        raise error

    # ── transitions ──────────────────────────────────────────────────────────

    async def open(self) -> ExamView:
        """Land on home with the exam, attempts and previous result read fresh."""
        self._require(ExamView.HOME, target=ExamView.HOME.value)
        await self._load_exam()
        await self._refresh_attempts()
        await self._refresh_previous_result()
        return self.view

    async def request_instructions(self) -> ExamView:
        self._require(ExamView.HOME, target=ExamView.INSTRUCTIONS.value)
        await self._check_entry()
        await self._ensure_attempts_available()
        self._move(ExamView.INSTRUCTIONS)
        return self.view

    async def start_exam(self) -> ExamView:
        """
        Enter in_progress, or pause for the resume decision when a saved
        attempt exists (pending_resume becomes True; answer with resume()).
        """
        self._require(ExamView.HOME, ExamView.INSTRUCTIONS, target=ExamView.IN_PROGRESS.value)
        if self.view == ExamView.HOME or self.exam is None:
            await self._check_entry()
        await self._ensure_attempts_available()

        if self._load_snapshot() is not None:
            self.pending_resume = True
            self._notify("resume_available", "You have an unfinished attempt. Continue or start over?")
            return self.view

        await self._enter_in_progress(None)
        return self.view

    async def resume(self, continue_exam: bool) -> ExamView:
        """Answer the resume prompt: continue the saved attempt or discard it and restart."""
        if not self.pending_resume:
            raise InvalidTransitionError(self.view.value, "resume")
        self.pending_resume = False
        snapshot = self._load_snapshot()

        if continue_exam and snapshot is not None:
            if not can_continue(self.exam, self.clock.now_ms()):
                self._discard_snapshot()
                error = ExamAccessWindowError("This exam has ended.")
                self._notify("ended", error.message, NoticeLevel.ERROR)
                raise error
            await self._enter_in_progress(snapshot)
        else:
            self._discard_snapshot()
            await self._enter_in_progress(None)
        return self.view

    async def _enter_in_progress(self, snapshot: Optional[ProgressSnapshot]) -> None:
        now = self.clock.now_ms()
        if snapshot is None:
            snapshot = ProgressSnapshot(
                exam_id=self.exam_id,
                student_id=self.student_id,
                effective_start_ms=now,
            )
        self.progress = snapshot
        self._save_progress()

        self._warnings_seen = set()
        self._auto_submitted = False
        self._submitting = False
        self.seconds_remaining = None
        self.unlock_schedule = None
        self.result = None
        self.result_pending_until_ms = None

        self._move(ExamView.IN_PROGRESS)
        self._restart_timer()
        await self.tick()

    async def tick(self) -> None:
        """One countdown step. A no-op once the session has left in_progress."""
        if self.view != ExamView.IN_PROGRESS or self.progress is None or self.exam is None:
            return

        now = self.clock.now_ms()
        start = self.progress.effective_start_ms
        secs = seconds_remaining(self.exam, start, now)
        if secs != self.seconds_remaining:
            self.seconds_remaining = secs
            self.unlock_schedule = self.unlock_cache.schedule_for(self.exam, start, now)
            self._check_warnings(secs)

        if secs == 0 and not self._auto_submitted:
            self._auto_submitted = True
            self._stop_timer()
            try:
                await self.submit(auto=True)
            except ExamEngineError as e:
                logger.warning(f"Auto-submit for exam {self.exam_id} failed: {e.message}")

    def _check_warnings(self, secs: int) -> None:
        crossed = [t for t in config.WARNING_THRESHOLDS if secs <= t and t not in self._warnings_seen]
        if not crossed:
            return
        # several thresholds crossed at once (resume, slow tick): announce the closest one
        self._warnings_seen.update(crossed)
        threshold = min(crossed)
        level = NoticeLevel.WARNING if threshold >= 300 else NoticeLevel.ERROR
        message = WARNING_MESSAGES.get(threshold, f"{threshold} seconds remaining!")
        self._notify(f"time_warning_{threshold}", message, level)

    # ── answers ──────────────────────────────────────────────────────────────

    def _require_writable(self, target: str) -> ProgressSnapshot:
        if self.view != ExamView.IN_PROGRESS or self.progress is None or self._submitting:
            raise InvalidTransitionError(self.view.value, target)
        return self.progress

    def record_answer(self, question_id: str, answer: Any) -> int:
        progress = self._require_writable("answer")
        if answer is None or answer == "":
            progress.answers.pop(str(question_id), None)
        else:
            progress.answers[str(question_id)] = answer
        self._save_progress()
        return len(progress.answers)

    def clear_answer(self, question_id: str) -> int:
        return self.record_answer(question_id, None)

    def navigate(self, index: int) -> int:
        progress = self._require_writable("navigate")
        progress.current_question_index = max(0, index)
        self._save_progress()
        return progress.current_question_index

    def toggle_mark(self, question_id: str) -> bool:
        progress = self._require_writable("mark")
        qid = str(question_id)
        if qid in progress.marked_questions:
            progress.marked_questions.remove(qid)
            marked = False
        else:
            progress.marked_questions.append(qid)
            marked = True
        self._save_progress()
        return marked

    # ── submission ───────────────────────────────────────────────────────────

    async def submit(self, auto: bool = False) -> ExamView:
        """
        Submit the running attempt.

        Online first. A transient failure (or a known offline state) queues the
        attempt and returns home. A scheduled exam submitted before end_time
        keeps its result hidden and returns home too.

        Raises:
            MaxAttemptsReachedError: server-confirmed attempts already at the limit.
                Raised before any network call.
            SubmissionRejectedError: the server refused the attempt.
        """
        if self.view != ExamView.IN_PROGRESS or self.progress is None:
            raise InvalidTransitionError(self.view.value, ExamView.RESULT.value)
        if self._submitting:
            return self.view
        if self.attempts_so_far is not None and self.attempts_so_far >= self.exam.max_attempts:
            # the attempt can no longer be recorded
            error = MaxAttemptsReachedError()
            self._stop_timer()
            self._discard_snapshot()
            self._move(ExamView.HOME)
            self._notify("max_attempts", error.message, NoticeLevel.ERROR)
            raise error

        self._submitting = True
        self._stop_timer()
        now = self.clock.now_ms()
        answers = dict(self.progress.answers)
        entry = QueuedSubmission(
            exam_id=self.exam_id,
            student_id=self.student_id,
            answers=answers,
            score=self.scorer(self.exam, answers),
            time_taken_seconds=time_taken_seconds(self.exam, self.progress.effective_start_ms, now),
            completed_at=_iso(now),
            enqueued_at_millis=now,
        )
        kind = "auto_submit" if auto else "manual_submit"

        try:
            if not self.online:
                self._queue_submission(entry)
                return self.view
            try:
                outcome = await self.backend.submit_result(
                    SubmissionRequest(
                        exam_id=entry.exam_id,
                        student_id=entry.student_id,
                        answers=entry.answers,
                        score=entry.score,
                        time_taken_seconds=entry.time_taken_seconds,
                        completed_at=entry.completed_at,
                    )
                )
            except BackendUnavailableError:
                self._queue_submission(entry)
                return self.view
            except SubmissionRejectedError as e:
                self._reject_submission(e.message)
                raise

            if not outcome.applied:
                message = outcome.message or SubmissionRejectedError().message
                self._reject_submission(message)
                raise SubmissionRejectedError(message)

            await self._on_submission_applied(outcome, kind)
            return self.view
        finally:
            self._submitting = False

    def _queue_submission(self, entry: QueuedSubmission) -> None:
        self.queue.enqueue(entry)
        self._discard_snapshot()
        self._move(ExamView.HOME)
        self._notify("queued_submit", SUBMIT_MESSAGES["queued_submit"], NoticeLevel.WARNING)

    def _reject_submission(self, message: str) -> None:
        logger.warning(f"Submission for exam {self.exam_id} rejected: {message}")
        self._discard_snapshot()
        self._move(ExamView.HOME)
        self._notify("submit_rejected", message, NoticeLevel.ERROR)

    async def _on_submission_applied(self, outcome: SubmissionOutcome, kind: str) -> None:
        self._discard_snapshot()
        self.queue.remove_exam(self.exam_id, self.student_id)

        result = outcome.result
        if result is None and outcome.is_duplicate:
            try:
                result = await self.backend.get_previous_result(self.student_id, self.exam_id)
            except BackendUnavailableError as e:
                logger.warning(f"Result fetch after duplicate submit failed: {e.message}")
        self._show_result(result)
        self._notify(kind, SUBMIT_MESSAGES[kind], NoticeLevel.SUCCESS)
        await self._refresh_attempts()

    def _show_result(self, result: Optional[Dict[str, Any]]) -> None:
        """Store a fresh result; open it unless a running scheduled exam still hides it."""
        self.result = result
        hidden_until = results_hidden_until(self.exam, self.clock.now_ms()) if self.exam else None
        self.result_pending_until_ms = hidden_until
        if hidden_until is not None:
            if self.view != ExamView.HOME:
                self._move(ExamView.HOME)
            self._notify("results_after_end", RESULTS_AFTER_END)
        elif self.view == ExamView.IN_PROGRESS or (result is not None and self.view == ExamView.HOME):
            self._move(ExamView.RESULT)

    # ── navigation after the attempt ─────────────────────────────────────────

    async def back_to_home(self) -> ExamView:
        """Leave result / attempt detail / instructions; attempts and previous result are re-read."""
        self._require(
            ExamView.RESULT, ExamView.ATTEMPT_DETAIL, ExamView.INSTRUCTIONS,
            target=ExamView.HOME.value,
        )
        self._move(ExamView.HOME)
        self.selected_attempt_id = None
        await self._refresh_attempts()
        await self._refresh_previous_result()
        return self.view

    async def view_previous_result(self) -> ExamView:
        self._require(ExamView.HOME, target=ExamView.RESULT.value)
        exam = await self._load_exam()
        if exam is None:
            raise BackendUnavailableError("Exam details could not be loaded. Please try again.")
        hidden_until = results_hidden_until(exam, self.clock.now_ms())
        if hidden_until is not None:
            self.result_pending_until_ms = hidden_until
            raise ExamAccessWindowError(RESULTS_AFTER_END)

        try:
            result = await self.backend.get_previous_result(self.student_id, self.exam_id)
        except BackendUnavailableError as e:
            self._notify("result_unavailable", e.message, NoticeLevel.ERROR)
            raise
        if result is None:
            raise SessionNotFoundError("No previous result for this exam.")
        self.result = result
        self._move(ExamView.RESULT)
        return self.view

    async def view_attempt(self, attempt_id: str) -> ExamView:
        self._require(ExamView.HOME, target=ExamView.ATTEMPT_DETAIL.value)
        await self._refresh_attempts()
        if self.attempts is None:
            raise BackendUnavailableError()
        attempt = next((a for a in self.attempts if a.id == str(attempt_id)), None)
        if attempt is None:
            raise SessionNotFoundError("Attempt not found.")
        self.selected_attempt_id = attempt.id
        self.result = attempt.details
        self._move(ExamView.ATTEMPT_DETAIL)
        return self.view

    async def retake(self) -> ExamView:
        """Back home, fresh attempt count, then the normal instructions entry."""
        if self.view in (ExamView.RESULT, ExamView.ATTEMPT_DETAIL):
            await self.back_to_home()
        self._require(ExamView.HOME, target=ExamView.INSTRUCTIONS.value)
        return await self.request_instructions()

    # ── connectivity and offline sync ────────────────────────────────────────

    def set_online(self, online: bool) -> None:
        """
        Connectivity edge from the environment.

        An online edge schedules one debounced drain. Flickers inside the
        debounce window and edges during a running drain add nothing.
        """
        was_online, self.online = self.online, online
        if online and not was_online:
            if self._draining or (self._drain_handle is not None and self._drain_handle.pending):
                return
            self._drain_handle = self.scheduler.call_later(
                config.RECONNECT_DEBOUNCE_SECONDS, self.sync_offline, name=f"sync:{self.student_id}"
            )
        elif not online and was_online:
            if self._drain_handle is not None and self._drain_handle.pending:
                self._drain_handle.cancel()
            self._drain_handle = None

    async def _replay(self, entry: QueuedSubmission) -> SubmissionOutcome:
        return await self.backend.submit_result(SubmissionRequest.from_queued(entry))

    async def sync_offline(self) -> Optional[SyncReport]:
        """Drain the offline queue. Returns None when a drain is already running."""
        if self._draining:
            return None
        self._draining = True
        try:
            report = await self.queue.drain_and_sync(self._replay, student_id=self.student_id)
        finally:
            self._draining = False

        if report.synced:
            self._notify(
                "sync_success",
                f"{len(report.synced)} exam(s) synced successfully!",
                NoticeLevel.SUCCESS,
            )
        if report.failed:
            self._notify(
                "sync_pending",
                f"{len(report.failed)} exam(s) could not be synced yet. They will be retried when you are back online.",
                NoticeLevel.WARNING,
            )

        if report.synced_for(self.exam_id, self.student_id):
            result = report.result_for(self.exam_id, self.student_id)
            if result is None:
                try:
                    result = await self.backend.get_previous_result(self.student_id, self.exam_id)
                except BackendUnavailableError as e:
                    logger.warning(f"Result fetch after sync failed: {e.message}")
            if result is not None and self.view == ExamView.HOME:
                self._show_result(result)
            await self._refresh_attempts()
        return report

    # ── lifecycle ────────────────────────────────────────────────────────────

    def close(self) -> None:
        self._stop_timer()
        if self._drain_handle is not None:
            self._drain_handle.cancel()
            self._drain_handle = None

    def snapshot(self) -> SessionView:
        return SessionView(
            exam_id=self.exam_id,
            student_id=self.student_id,
            view=self.view,
            online=self.online,
            pending_resume=self.pending_resume,
            seconds_remaining=self.seconds_remaining,
            unlock_schedule=self.unlock_schedule,
            progress=self.progress if self.view == ExamView.IN_PROGRESS else None,
            attempts_so_far=self.attempts_so_far,
            max_attempts=self.max_attempts,
            result=self.result if self.result_pending_until_ms is None else None,
            result_pending_until_ms=self.result_pending_until_ms,
            selected_attempt_id=self.selected_attempt_id,
            queued_submissions=len(self.queue.pending_for(self.student_id)),
            notices=list(self.notices),
        )
