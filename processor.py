# processor.py
import logging
import os
import re
from pathlib import Path
from typing import Awaitable, Callable, Optional

from errors import ValidationError
from extractor import run_extraction
from models import Job, JobStatus
from queue_client import QueueClient
from worker_state import WorkerState, utc_now_iso

logger = logging.getLogger(__name__)

Extractor = Callable[..., Awaitable[Path]]


def sanitize_clip_name(name: str) -> str:
    """'My Clip! #1' -> 'My_Clip_1'"""
    safe = re.sub(r"[^a-zA-Z0-9\-_ ]", "", name or "")
    safe = re.sub(r"\s+", "_", safe)
    return safe or "clip"


class JobProcessor:
    """Runs one claimed job end-to-end: download, validate, upload, clean up."""

    def __init__(
        self,
        client: QueueClient,
        state: WorkerState,
        download_dir: str,
        ytdlp_bin: str = "yt-dlp",
        extract: Optional[Extractor] = None,
    ):
        self.client = client
        self.state = state
        self.download_dir = Path(download_dir)
        self.ytdlp_bin = ytdlp_bin
        self._extract = extract or run_extraction

    def output_path_for(self, job: Job) -> Path:
        return self.download_dir / f"{job.id}_{sanitize_clip_name(job.clip_name)}.mp4"

    def storage_path_for(self, job: Job) -> str:
        return f"{job.user_id}/{job.id}/{sanitize_clip_name(job.clip_name)}.mp4"

    async def process(self, job: Job) -> None:
        """
        Drive one job to a terminal status. Never raises: any error is
        reported to the queue API as `failed` and counted. The slot taken
        at claim time is always released.
        """
        output_path = self.output_path_for(job)
        storage_path = self.storage_path_for(job)

        try:
            # the only place attempts is bumped
            await self.client.update_job_status(job.id, {
                "status": JobStatus.DOWNLOADING.value,
                "downloadStartedAt": utc_now_iso(),
                "attempts": job.attempts + 1,
            })
            job.attempts += 1
            job.status = JobStatus.DOWNLOADING
            logger.info("Starting download for job %s: %s", job.id, job.clip_name)

            await self._extract(job, output_path, binary=self.ytdlp_bin)

            if not output_path.exists():
                raise ValidationError("Downloaded file not found")
            size = output_path.stat().st_size
            if size == 0:
                raise ValidationError("Downloaded file is empty")

            logger.info("Uploading to storage: %s (%.2f MB)", storage_path, size / 1024 / 1024)
            result = await self.client.upload_clip(output_path, job.id, storage_path)
            logger.info("Completed: %s %s", job.clip_name, result)

            job.status = JobStatus.UPLOADED
            self.state.record_uploaded()

        except Exception as e:
            logger.error("Failed: %s: %s", job.clip_name, e)
            try:
                await self.client.update_job_status(job.id, {
                    "status": JobStatus.FAILED.value,
                    "errorMessage": str(e),
                })
            except Exception as report_err:
                logger.error("Could not mark job %s as failed: %s", job.id, report_err)
            job.status = JobStatus.FAILED
            self.state.record_failed()

        finally:
            try:
                if output_path.exists():
                    os.remove(output_path)
                    logger.info("Cleaned up temp file: %s", output_path)
            except OSError as e:
                logger.warning("Failed to delete %s: %s", output_path, e)
            self.state.release_slot()
