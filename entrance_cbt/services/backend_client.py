"""
services/backend_client.py

The exam backend as seen by the session: eligibility, submission, attempts
and previous results. ExamBackend is the interface; HttpExamBackend talks to
the REST API with httpx.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

import config
from entrance_cbt.errors import BackendUnavailableError, SubmissionRejectedError
from entrance_cbt.models.exam_model import ExamDefinition
from entrance_cbt.models.submission_model import (
    AttemptSummary,
    EligibilityResult,
    SubmissionOutcome,
    SubmissionRequest,
    looks_like_duplicate,
)

logger = logging.getLogger(__name__)


class ExamBackend(ABC):
    @abstractmethod
    async def check_eligibility(self, exam_id: str, student_id: str) -> EligibilityResult:
        ...

    @abstractmethod
    async def submit_result(self, request: SubmissionRequest) -> SubmissionOutcome:
        """Must be safe to retry; the server de-duplicates on the submission identity."""

    @abstractmethod
    async def get_attempts(self, student_id: str, exam_id: str) -> List[AttemptSummary]:
        ...

    @abstractmethod
    async def get_previous_result(self, student_id: str, exam_id: str) -> Optional[Dict[str, Any]]:
        ...


# ── helpers ──────────────────────────────────────────────────────────────────

def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body.get("error") or "")
    return str(body)


def _check_status(response: httpx.Response) -> None:
    if response.status_code >= 400:
        logger.warning(f"Unexpected HTTP {response.status_code} from {response.request.url}")
        raise BackendUnavailableError(f"Exam service answered HTTP {response.status_code}.")


def _attempt_from_json(item: Dict[str, Any], exam_id: str) -> AttemptSummary:
    return AttemptSummary(
        id=str(item.get("id") or item.get("_id") or ""),
        exam_id=str(item.get("examId") or exam_id),
        score=item.get("score") or 0,
        completed_at=item.get("completedAt"),
        details=item,
    )


class HttpExamBackend(ExamBackend):
    """
    REST client for the exam backend.

    Endpoints (relative to base_url):
        GET  /exams/{exam_id}/eligibility?studentId=
        POST /exams/{exam_id}/submissions
        GET  /students/{student_id}/exams/{exam_id}/attempts
        GET  /students/{student_id}/exams/{exam_id}/result

    Transport errors and 5xx raise BackendUnavailableError.
    """

    def __init__(
        self,
        base_url: str = config.BACKEND_URL,
        timeout: float = config.BACKEND_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        async with self._client() as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                logger.warning(f"{method} {url} failed: {e}")
                raise BackendUnavailableError() from e
        if response.status_code >= 500:
            logger.warning(f"{method} {url} → {response.status_code}")
            raise BackendUnavailableError()
        return response

    async def check_eligibility(self, exam_id: str, student_id: str) -> EligibilityResult:
        response = await self._request(
            "GET", f"/exams/{exam_id}/eligibility", params={"studentId": student_id}
        )
        if response.status_code in (403, 404):
            return EligibilityResult(eligible=False, message=_error_detail(response))
        _check_status(response)

        body = response.json()
        exam_data = body.get("examDefinition") or body.get("exam")
        try:
            exam = ExamDefinition.model_validate(exam_data) if exam_data else None
        except ValidationError as e:
            logger.error(f"Eligibility for exam {exam_id} returned a malformed exam: {e}")
            raise BackendUnavailableError("Exam data could not be read. Please try again.") from e
        return EligibilityResult(
            eligible=bool(body.get("eligible")),
            exam=exam,
            message=str(body.get("message") or ""),
        )

    async def submit_result(self, request: SubmissionRequest) -> SubmissionOutcome:
        payload = {
            "studentId": request.student_id,
            "answers": request.answers,
            "score": request.score,
            "timeTaken": request.time_taken_seconds,
            "completedAt": request.completed_at,
            "isOfflineSync": request.is_offline_replay,
        }
        response = await self._request("POST", f"/exams/{request.exam_id}/submissions", json=payload)

        if response.status_code == 409:
            return SubmissionOutcome(success=True, duplicate=True, message=_error_detail(response))
        if response.status_code >= 400:
            message = _error_detail(response) or f"HTTP {response.status_code}"
            if looks_like_duplicate(message):
                return SubmissionOutcome(success=True, duplicate=True, message=message)
            raise SubmissionRejectedError(message)

        body = response.json()
        return SubmissionOutcome(
            success=bool(body.get("success", True)),
            result=body.get("result"),
            message=str(body.get("message") or ""),
            duplicate=bool(body.get("duplicate", False)),
        )

    async def get_attempts(self, student_id: str, exam_id: str) -> List[AttemptSummary]:
        response = await self._request("GET", f"/students/{student_id}/exams/{exam_id}/attempts")
        _check_status(response)
        body = response.json()
        items = body.get("attempts", []) if isinstance(body, dict) else body
        return [_attempt_from_json(item, exam_id) for item in items or []]

    async def get_previous_result(self, student_id: str, exam_id: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", f"/students/{student_id}/exams/{exam_id}/result")
        if response.status_code == 404:
            return None
        _check_status(response)
        body = response.json()
        if isinstance(body, dict) and "result" in body:
            return body["result"]
        return body or None
