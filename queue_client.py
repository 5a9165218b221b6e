# queue_client.py
import asyncio
import base64
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pydantic

from errors import TransportError
from models import Job

logger = logging.getLogger(__name__)


class QueueClient:
    """
    Thin wrapper over the three queue API endpoints the worker consumes.
    No retries, no caching: every call succeeds or raises TransportError.
    """

    def __init__(self, base_url: str, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "x-worker-key": self.api_key,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, endpoint: str, what: str, **kwargs) -> httpx.Response:
        # timeout=None: clip uploads are sent in one piece and may take a while
        async with httpx.AsyncClient(timeout=None, headers=self._headers(), transport=self._transport) as client:
            try:
                r = await client.request(method, f"{self.base_url}/{endpoint}", **kwargs)
            except httpx.HTTPError as e:
                raise TransportError(f"Failed to {what}: {e}") from e
        if r.status_code >= 300:
            raise TransportError(f"Failed to {what}: {r.text}", status_code=r.status_code, body=r.text)
        return r

    @staticmethod
    def _json(r: httpx.Response, what: str) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise TransportError(f"Failed to {what}: invalid JSON response: {r.text}", status_code=r.status_code, body=r.text) from e

    async def fetch_pending_jobs(self, limit: int = 10) -> List[Job]:
        """
        Return up to `limit` pending jobs, in the order the API lists them.
        Rows that do not parse are logged and skipped so they cannot hold
        up the rest of the queue.
        """
        r = await self._request("GET", "worker-get-jobs", "fetch jobs", params={"limit": limit})
        data = self._json(r, "fetch jobs")
        rows = data.get("jobs") if isinstance(data, dict) else None
        jobs = []
        for row in rows or []:
            try:
                jobs.append(Job.model_validate(row))
            except pydantic.ValidationError as e:
                job_id = row.get("id") if isinstance(row, dict) else None
                logger.warning("Skipping malformed job %s: %s", job_id, e)
        return jobs

    async def update_job_status(self, job_id: str, fields: Dict[str, Any]) -> Any:
        r = await self._request("POST", "worker-update-status", "update job status", json={"jobId": job_id, **fields})
        return self._json(r, "update job status")

    async def upload_clip(self, file_path: Path, job_id: str, storage_path: str) -> Any:
        """
        Send the finished clip as base64 inside a JSON body.
        The whole file is held in memory; clips are short segments.
        """
        file_path = Path(file_path)
        data = await asyncio.to_thread(file_path.read_bytes)
        file_size = len(data)
        logger.info("Uploading %s (%.2f MB) as base64", file_path.name, file_size / 1024 / 1024)

        payload = {
            "file": base64.b64encode(data).decode("ascii"),
            "jobId": job_id,
            "storagePath": storage_path,
            "fileName": file_path.name,
            "fileSize": file_size,
        }
        r = await self._request("POST", "worker-upload-clip", "upload clip", json=payload)
        return self._json(r, "upload clip")
