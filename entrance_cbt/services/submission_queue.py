"""
services/submission_queue.py

Durable queue of finished-but-unsynced exam submissions.

One pending entry per (exam, student): enqueueing the same exam again for the
same student replaces the old entry in place. Several students may share one
device store. Draining replays entries in insertion order; an entry leaves
the queue only when the server confirms it (or says it already has it).
"""

import json
import logging
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from entrance_cbt.errors import BackendUnavailableError, SubmissionRejectedError
from entrance_cbt.models.submission_model import (
    QueuedSubmission,
    SubmissionOutcome,
    SyncReport,
    result_key,
)
from entrance_cbt.services.local_store import OFFLINE_QUEUE_KEY, KeyValueStore

logger = logging.getLogger(__name__)

SubmitFn = Callable[[QueuedSubmission], Awaitable[SubmissionOutcome]]


class OfflineSubmissionQueue:
    def __init__(self, store: KeyValueStore, key: str = OFFLINE_QUEUE_KEY):
        self.store = store
        self.key = key

    # ── storage ──────────────────────────────────────────────────────────────

    def _load(self) -> List[QueuedSubmission]:
        raw = self.store.get(self.key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Offline queue is unreadable, discarding it: {e}")
            self.store.remove(self.key)
            return []
        if not isinstance(items, list):
            logger.warning("Offline queue is not a list, discarding it")
            self.store.remove(self.key)
            return []

        entries: List[QueuedSubmission] = []
        for item in items:
            try:
                entries.append(QueuedSubmission.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping corrupt offline queue entry: {e.error_count()} error(s)")
        return entries

    def _save(self, entries: List[QueuedSubmission]) -> None:
        if not entries:
            self.store.remove(self.key)
            return
        self.store.set(self.key, json.dumps([e.model_dump(mode="json") for e in entries]))

    # ── public API ───────────────────────────────────────────────────────────

    def pending(self) -> List[QueuedSubmission]:
        return self._load()

    def pending_for(self, student_id: str) -> List[QueuedSubmission]:
        return [e for e in self._load() if e.student_id == student_id]

    def __len__(self) -> int:
        return len(self._load())

    def enqueue(self, submission: QueuedSubmission) -> None:
        """Add a submission, replacing the entry this student already queued for the exam."""
        entries = self._load()
        for i, entry in enumerate(entries):
            if entry.owner == submission.owner:
                entries[i] = submission
                break
        else:
            entries.append(submission)
        self._save(entries)
        logger.info(
            f"Queued offline submission for exam {submission.exam_id} "
            f"({len(entries)} pending)"
        )

    def remove_exam(self, exam_id: str, student_id: str) -> int:
        """Drop one student's queued entries of an exam. Returns how many were removed."""
        entries = self._load()
        kept = [e for e in entries if e.owner != (exam_id, student_id)]
        if len(kept) != len(entries):
            self._save(kept)
        return len(entries) - len(kept)

    async def drain_and_sync(self, submit: SubmitFn, student_id: Optional[str] = None) -> SyncReport:
        """
        Replay queued submissions through `submit`, oldest first.

        Args:
            submit:     Coroutine function sending one entry to the server.
            student_id: Only replay this student's entries. None replays all.

        Returns:
            SyncReport. synced entries (including duplicates) are gone from the
            queue; failed entries stay for the next connectivity event.
        """
        report = SyncReport()
        for entry in self._load():
            if student_id is not None and entry.student_id != student_id:
                continue
            try:
                outcome = await submit(entry)
            except (BackendUnavailableError, SubmissionRejectedError) as e:
                logger.warning(f"Sync failed for exam {entry.exam_id}: {e.message}")
                report.failed.append(entry)
                continue

            if outcome.applied:
                report.synced.append(entry)
                if outcome.result is not None:
                    report.results[result_key(entry.exam_id, entry.student_id)] = outcome.result
            else:
                logger.warning(f"Sync rejected for exam {entry.exam_id}: {outcome.message}")
                report.failed.append(entry)

        # re-read so entries enqueued while the drain was awaiting are kept
        synced_ids = {e.identity for e in report.synced}
        self._save([e for e in self._load() if e.identity not in synced_ids])

        if report.synced:
            logger.info(f"{len(report.synced)} exam(s) synced successfully")
        return report
