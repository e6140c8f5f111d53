"""
Shared fixtures: fake clock at T0, manual scheduler, in-memory store, fake backend.
"""
import pytest

from fakes import FakeBackend, FakeClock, ManualScheduler, T0, make_exam
from entrance_cbt.services.exam_session import ExamSessionStateMachine
from entrance_cbt.services.local_store import InMemoryStore
from entrance_cbt.services.submission_queue import OfflineSubmissionQueue
from entrance_cbt.services.unlock_schedule import UnlockScheduleCache


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def queue(store):
    return OfflineSubmissionQueue(store)


@pytest.fixture
def exam():
    return make_exam()


@pytest.fixture
def backend(exam):
    return FakeBackend(exam)


@pytest.fixture
def make_machine(backend, store, queue, clock, scheduler):
    """Build a session for student s-1 against the shared fakes."""
    machines = []

    def _make(exam_id=None, student_id="s-1", **kwargs):
        machine = ExamSessionStateMachine(
            exam_id=exam_id or backend.exam.id,
            student_id=student_id,
            backend=backend,
            store=store,
            queue=queue,
            clock=clock,
            scheduler=scheduler,
            unlock_cache=UnlockScheduleCache(),
            **kwargs,
        )
        machines.append(machine)
        return machine

    yield _make
    for machine in machines:
        machine.close()
