# coordinator.py
import asyncio
import logging
from typing import Optional, Set

from models import Job, JobStatus
from processor import JobProcessor
from queue_client import QueueClient
from worker_state import WorkerState, utc_now_iso

logger = logging.getLogger(__name__)


class Coordinator:
    """
    Polls the queue on a fixed interval, claims as many jobs as there are
    free slots and hands each one to the processor as its own task.
    """

    def __init__(self, client: QueueClient, state: WorkerState, processor: JobProcessor, poll_interval_ms: int = 10000):
        self.client = client
        self.state = state
        self.processor = processor
        self.poll_interval = poll_interval_ms / 1000
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    async def run_poll_cycle(self) -> None:
        if not self.state.begin_cycle():
            return
        await self._cycle()

    async def _cycle(self) -> None:
        """Fetch, claim and dispatch. The caller has already entered the cycle."""
        try:
            available_slots = self.state.free_slots()
            if available_slots <= 0:
                logger.info("No available slots for new downloads")
                return

            jobs = await self.client.fetch_pending_jobs(available_slots)
            if not jobs:
                return
            logger.info("Found %d pending job(s)", len(jobs))

            for job in jobs[:available_slots]:
                try:
                    await self.client.update_job_status(job.id, {
                        "status": JobStatus.CLAIMED.value,
                        "claimedAt": utc_now_iso(),
                    })
                except Exception as e:
                    logger.warning("Could not claim job %s: %s", job.id, e)
                    continue
                job.status = JobStatus.CLAIMED
                self.state.acquire_slot()
                self._dispatch(job)
        except Exception as e:
            logger.error("Process error: %s", e)
        finally:
            self.state.end_cycle()

    def _dispatch(self, job: Job) -> None:
        task = asyncio.create_task(self._supervise(job), name=f"job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _supervise(self, job: Job) -> None:
        try:
            await self.processor.process(job)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error processing job %s", job.id)

    def trigger(self) -> bool:
        """Start a poll cycle in the background. False if one is running."""
        # flag is taken here, not in the task, so a second trigger in the same tick sees it
        if not self.state.begin_cycle():
            return False
        task = asyncio.create_task(self._cycle(), name="poll-cycle")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _poll_loop(self) -> None:
        logger.info("Polling every %ss for new jobs...", self.poll_interval)
        self.trigger()
        while True:
            await asyncio.sleep(self.poll_interval)
            if self.state.free_slots() > 0:
                self.trigger()

    def start(self) -> None:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._poll_loop(), name="poll-timer")

    async def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            await asyncio.gather(self._timer, return_exceptions=True)
            self._timer = None
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def drain(self) -> None:
        """Wait until every dispatched job (and running cycle) has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
