# errors.py
from typing import Optional


class WorkerError(Exception):
    pass


class TransportError(WorkerError):
    """Non-success answer (or no answer) from the job queue API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ExtractionError(WorkerError):
    """yt-dlp exited non-zero or could not be spawned."""

    def __init__(self, returncode: Optional[int], stderr: str):
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            message = f"yt-dlp could not be started: {stderr}"
        else:
            message = f"yt-dlp exited with code {returncode}: {stderr}"
        super().__init__(message)


class ValidationError(WorkerError):
    """Downloaded artifact is missing or empty."""
    pass
