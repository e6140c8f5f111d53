"""
entrance_cbt/errors.py

Typed exceptions raised by the exam engine.
Each carries the HTTP status the API layer maps it to.
"""

from typing import Optional


class ExamEngineError(Exception):
    """Base exception for the exam engine."""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class ExamIneligibleError(ExamEngineError):
    """The backend refused the student for this exam. Terminal for the attempt."""
    status_code = 403

    def __init__(self, message: str = "You are not eligible to take this exam."):
        super().__init__(message, self.status_code)


class ExamAccessWindowError(ExamEngineError):
    """
    A scheduled exam was opened outside its window.

    Examples:
    - entering more than the early-entry grace before start_time
    - entering after end_time
    - continuing a saved attempt after the post-end grace
    """
    status_code = 403

    def __init__(self, message: str = "This exam is not open right now."):
        super().__init__(message, self.status_code)


class MaxAttemptsReachedError(ExamEngineError):
    status_code = 409

    def __init__(self, message: str = "You have used all allowed attempts for this exam."):
        super().__init__(message, self.status_code)


class InvalidTransitionError(ExamEngineError):
    status_code = 409

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from '{current}' to '{target}'.", self.status_code)


class SubmissionRejectedError(ExamEngineError):
    """The backend answered the submission with a non-retryable failure."""
    status_code = 422

    def __init__(self, message: str = "The submission was rejected by the server."):
        super().__init__(message, self.status_code)


class BackendUnavailableError(ExamEngineError):
    """Transport failure or 5xx from the exam backend. Always retryable."""
    status_code = 503

    def __init__(self, message: str = "Exam service is unreachable. Please try again."):
        super().__init__(message, self.status_code)


class SessionNotFoundError(ExamEngineError):
    status_code = 404

    def __init__(self, message: str = "No exam session is open."):
        super().__init__(message, self.status_code)
