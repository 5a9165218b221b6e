"""
In-memory stand-ins for the queue API client and yt-dlp.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from errors import ExtractionError, TransportError
from models import Job


def make_job(job_id: str = "job-1", **overrides) -> Job:
    data = {
        "id": job_id,
        "user_id": "user-1",
        "clip_name": "My Clip! #1",
        "video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "quote_start_seconds": 65,
        "quote_end_seconds": 130,
        "buffer_start_seconds": 5,
        "buffer_end_seconds": 10,
        "accurate_cuts": False,
        "attempts": 0,
        "status": "pending",
    }
    data.update(overrides)
    return Job.model_validate(data)


class FakeQueueClient:
    def __init__(self, jobs: Optional[List[Job]] = None):
        self.jobs = list(jobs or [])
        self.fetch_limits: List[int] = []
        self.updates: List[Dict[str, Any]] = []
        self.uploads: List[Dict[str, Any]] = []
        self.fail_claims: Set[str] = set()
        self.fail_statuses: Set[str] = set()
        self.fail_fetch = False
        self.fail_upload = False

    async def fetch_pending_jobs(self, limit: int = 10) -> List[Job]:
        self.fetch_limits.append(limit)
        if self.fail_fetch:
            raise TransportError("Failed to fetch jobs: boom", status_code=500, body="boom")
        # deliberately ignores limit, like a misbehaving API would
        return list(self.jobs)

    async def update_job_status(self, job_id: str, fields: Dict[str, Any]) -> Any:
        if fields.get("status") == "claimed" and job_id in self.fail_claims:
            raise TransportError("Failed to update job status: taken", status_code=409, body="taken")
        if fields.get("status") in self.fail_statuses:
            raise TransportError("Failed to update job status: down", status_code=503, body="down")
        self.updates.append({"jobId": job_id, **fields})
        return {"success": True}

    async def upload_clip(self, file_path: Path, job_id: str, storage_path: str) -> Any:
        if self.fail_upload:
            raise TransportError("Failed to upload clip: bucket full", status_code=500, body="bucket full")
        self.uploads.append({
            "jobId": job_id,
            "storagePath": storage_path,
            "fileName": Path(file_path).name,
            "fileSize": Path(file_path).stat().st_size,
        })
        return {"success": True}

    def statuses_for(self, job_id: str) -> List[str]:
        return [u["status"] for u in self.updates if u["jobId"] == job_id]


class FakeExtractor:
    """Writes `content` to the output path, or fails like yt-dlp would."""

    def __init__(self, content: bytes = b"\x00\x00\x00\x18ftypmp42", returncode: int = 0, stderr: str = ""):
        self.content = content
        self.returncode = returncode
        self.stderr = stderr
        self.calls: List[Path] = []

    async def __call__(self, job: Job, output_path: Path, binary: str = "yt-dlp") -> Path:
        self.calls.append(Path(output_path))
        if self.returncode != 0:
            # partial file left behind, the processor must still remove it
            Path(output_path).write_bytes(b"partial")
            raise ExtractionError(self.returncode, self.stderr)
        if self.content is not None:
            Path(output_path).write_bytes(self.content)
        return Path(output_path)
