# extractor.py
"""
Clip extraction via yt-dlp.

yt-dlp does all of the media work (format selection, section cutting,
merging); this module only builds its argument list and turns the exit
status into a return value or an ExtractionError.
"""
import asyncio
import logging
import math
from pathlib import Path
from typing import List, Tuple

from errors import ExtractionError
from models import Job

logger = logging.getLogger(__name__)

# Best video up to 1080p + best audio, else best muxed stream up to 1080p, else anything
FORMAT_SELECTOR = "bv*[height<=1080]+ba/b[height<=1080]/b"
MERGE_FORMAT = "mp4"


def format_timestamp(seconds: float) -> str:
    """65 -> '1:05'. Minutes are not wrapped into hours."""
    mins = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    return f"{mins}:{secs:02d}"


def extraction_window(job: Job) -> Tuple[float, float]:
    start = max(0, job.quote_start_seconds - job.buffer_start_seconds)
    end = job.quote_end_seconds + job.buffer_end_seconds
    return start, end


def build_ytdlp_args(job: Job, output_path: Path, binary: str = "yt-dlp") -> List[str]:
    start, end = extraction_window(job)
    args = [
        binary,
        job.video_url,
        "-f", FORMAT_SELECTOR,
        "--merge-output-format", MERGE_FORMAT,
        "--download-sections", f"*{format_timestamp(start)}-{format_timestamp(end)}",
        "-o", str(output_path),
        "--no-playlist",
        "--quiet",
        "--progress",
    ]
    if job.accurate_cuts:
        # re-encodes around the cut points, slower
        args.append("--force-keyframes-at-cuts")
    return args


# Read in chunks: progress output is \r-separated and can outgrow the line limit
_READ_SIZE = 4096


async def _pump_stdout(stream: asyncio.StreamReader) -> None:
    while True:
        chunk = await stream.read(_READ_SIZE)
        if not chunk:
            return
        text = chunk.decode("utf-8", errors="replace").strip()
        if text:
            logger.debug("yt-dlp: %s", text)


async def _collect(stream: asyncio.StreamReader) -> str:
    chunks = []
    while True:
        chunk = await stream.read(_READ_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


async def run_extraction(job: Job, output_path: Path, binary: str = "yt-dlp") -> Path:
    """
    Download the job's time range to `output_path`.
    Returns the path on exit code 0, raises ExtractionError otherwise.
    There is no deadline: a hung yt-dlp keeps the caller waiting.
    """
    args = build_ytdlp_args(job, output_path, binary=binary)
    start, end = extraction_window(job)
    logger.info("Running yt-dlp for: %s", job.clip_name)
    logger.info("   Video: %s", job.video_url)
    logger.info("   Time: %s - %s", format_timestamp(start), format_timestamp(end))

    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error("yt-dlp spawn error: %s", e)
        raise ExtractionError(None, str(e)) from e

    _, stderr = await asyncio.gather(_pump_stdout(proc.stdout), _collect(proc.stderr))
    returncode = await proc.wait()

    if returncode != 0:
        logger.error("yt-dlp failed (code %s): %s", returncode, stderr.strip())
        raise ExtractionError(returncode, stderr.strip())

    logger.info("Downloaded: %s", job.clip_name)
    return Path(output_path)
