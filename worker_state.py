# worker_state.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkerState:
    """
    Process-wide counters for the coordinator and processor.

    Everything runs on one event loop and none of these methods awaits,
    so each mutation completes without interleaving and needs no lock.
    """

    def __init__(self, max_concurrent: int):
        self.max_concurrent = max_concurrent
        self.active_downloads = 0
        self.is_processing = False
        self.processed = 0
        self.failed = 0
        self.uploaded = 0
        self.last_run: Optional[str] = None
        self.started_at = utc_now_iso()

    # poll cycles
    def begin_cycle(self) -> bool:
        """Enter a poll cycle; False if one is already running."""
        if self.is_processing:
            return False
        self.is_processing = True
        self.last_run = utc_now_iso()
        return True

    def end_cycle(self):
        self.is_processing = False

    # slots
    def free_slots(self) -> int:
        return self.max_concurrent - self.active_downloads

    def acquire_slot(self):
        """A job was claimed and is about to be dispatched."""
        self.active_downloads += 1
        self.processed += 1

    def release_slot(self):
        if self.active_downloads > 0:
            self.active_downloads -= 1

    # outcomes
    def record_uploaded(self):
        self.uploaded += 1

    def record_failed(self):
        self.failed += 1

    def snapshot(self) -> Dict[str, Any]:
        return {
            "activeDownloads": self.active_downloads,
            "isProcessing": self.is_processing,
            "stats": {
                "processed": self.processed,
                "failed": self.failed,
                "uploaded": self.uploaded,
                "lastRun": self.last_run,
                "startedAt": self.started_at,
            },
        }
