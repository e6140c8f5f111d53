"""
api/routes.py — FastAPI endpoints driving the exam session state machine
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

import api.session as session
from entrance_cbt.models.exam_model import ExamDefinition
from entrance_cbt.services.exam_session import ExamSessionStateMachine
from entrance_cbt.services.exam_timing import (
    check_access_window,
    format_duration,
    resolve_duration_minutes,
    seconds_remaining,
    subject_access_rules,
    time_efficiency,
    validate_exam_duration,
)
from entrance_cbt.services.submission_queue import OfflineSubmissionQueue
from entrance_cbt.services.unlock_schedule import compute_unlock_schedule

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class OpenExamBody(BaseModel):
    exam_id: str
    student_id: str


class ResumeBody(BaseModel):
    continue_exam: bool


class SaveAnswerBody(BaseModel):
    question_id: str
    answer: Any = None


class NavigateBody(BaseModel):
    index: int = 0


class MarkBody(BaseModel):
    question_id: str


class ConnectivityBody(BaseModel):
    online: bool


class TimingPreviewBody(BaseModel):
    exam: ExamDefinition
    effective_start_ms: int | None = None
    time_taken_seconds: int | None = None


# ── helpers ──────────────────────────────────────────────────────────────────

def _machine(request: Request) -> ExamSessionStateMachine:
    machine = session.get(request.state.session_id, "exam_session")
    if machine is None:
        raise HTTPException(status_code=404, detail="No exam session is open.")
    return machine


def _view(machine: ExamSessionStateMachine) -> dict:
    view = machine.snapshot()
    machine.drain_notices()
    return view.model_dump(mode="json")


# ── endpoints ────────────────────────────────────────────────────────────────

@router.get("/api/health")
async def health():
    return {"ok": True}


@router.post("/api/exam/open")
async def open_exam(body: OpenExamBody, request: Request):
    sid = request.state.session_id
    state = request.app.state
    session.reset(sid)

    machine = ExamSessionStateMachine(
        exam_id=body.exam_id,
        student_id=body.student_id,
        backend=state.backend,
        store=state.store,
        queue=OfflineSubmissionQueue(state.store),
        clock=state.clock,
        scheduler=state.scheduler,
    )
    session.put(sid, "student_id", body.student_id)
    session.put(sid, "exam_session", machine)
    await machine.open()
    return _view(machine)


@router.get("/api/exam/state")
async def exam_state(request: Request):
    return _view(_machine(request))


@router.post("/api/exam/instructions")
async def show_instructions(request: Request):
    machine = _machine(request)
    await machine.request_instructions()
    return _view(machine)


@router.post("/api/exam/start")
async def start_exam(request: Request):
    machine = _machine(request)
    await machine.start_exam()
    return _view(machine)


@router.post("/api/exam/resume")
async def resume_exam(body: ResumeBody, request: Request):
    machine = _machine(request)
    await machine.resume(body.continue_exam)
    return _view(machine)


@router.post("/api/exam/answer")
async def save_answer(body: SaveAnswerBody, request: Request):
    machine = _machine(request)
    answered = machine.record_answer(body.question_id, body.answer)
    return {"ok": True, "answered_count": answered}


@router.post("/api/exam/navigate")
async def navigate(body: NavigateBody, request: Request):
    machine = _machine(request)
    return {"ok": True, "index": machine.navigate(body.index)}


@router.post("/api/exam/mark")
async def toggle_mark(body: MarkBody, request: Request):
    machine = _machine(request)
    return {"ok": True, "marked": machine.toggle_mark(body.question_id)}


@router.post("/api/exam/submit")
async def submit_exam(request: Request):
    machine = _machine(request)
    await machine.submit()
    return _view(machine)


@router.post("/api/exam/back")
async def back_to_home(request: Request):
    machine = _machine(request)
    await machine.back_to_home()
    return _view(machine)


@router.post("/api/exam/retake")
async def retake_exam(request: Request):
    machine = _machine(request)
    await machine.retake()
    return _view(machine)


@router.post("/api/exam/previous-result")
async def previous_result(request: Request):
    machine = _machine(request)
    await machine.view_previous_result()
    return _view(machine)


@router.post("/api/exam/attempts/{attempt_id}")
async def attempt_detail(attempt_id: str, request: Request):
    machine = _machine(request)
    await machine.view_attempt(attempt_id)
    return _view(machine)


@router.post("/api/exam/connectivity")
async def connectivity(body: ConnectivityBody, request: Request):
    machine = _machine(request)
    machine.set_online(body.online)
    return {"ok": True, "online": machine.online}


@router.post("/api/exam/sync")
async def sync_offline(request: Request):
    machine = _machine(request)
    report = await machine.sync_offline()
    if report is None:
        raise HTTPException(status_code=409, detail="A sync is already running.")
    return {
        "synced": len(report.synced),
        "failed": len(report.failed),
        "state": _view(machine),
    }


@router.post("/api/exam/timing")
async def timing_preview(body: TimingPreviewBody, request: Request):
    """Duration, countdown and subject locks of an exam definition at the current instant."""
    now = request.app.state.clock.now_ms()
    exam = body.exam
    start = body.effective_start_ms if body.effective_start_ms is not None else now
    minutes = resolve_duration_minutes(exam)
    return {
        "duration_minutes": minutes,
        "duration_label": format_duration(minutes),
        "access_window": check_access_window(exam, now).value,
        "seconds_remaining": seconds_remaining(exam, start, now),
        "unlock_schedule": compute_unlock_schedule(exam, start, now).model_dump(mode="json"),
        "access_rules": subject_access_rules(exam).model_dump(mode="json"),
        "duration_check": validate_exam_duration(exam.stream, exam.exam_duration_minutes).model_dump(),
        "time_efficiency": (
            time_efficiency(body.time_taken_seconds, exam) if body.time_taken_seconds is not None else None
        ),
    }


@router.post("/api/reset")
async def reset_session(request: Request):
    session.reset(request.state.session_id)
    return {"ok": True}
