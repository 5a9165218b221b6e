# models.py
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class JobStatus(str, Enum):
    """
    pending -> claimed -> downloading -> uploaded | failed

    `uploaded` is set by the queue API itself when the clip upload succeeds.
    """
    PENDING = "pending"
    CLAIMED = "claimed"
    DOWNLOADING = "downloading"
    UPLOADED = "uploaded"
    FAILED = "failed"


class Job(BaseModel):
    """Working copy of a clip job as returned by /worker-get-jobs."""
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    clip_name: str
    video_url: str
    quote_start_seconds: float
    quote_end_seconds: float
    buffer_start_seconds: float = 0
    buffer_end_seconds: float = 0
    accurate_cuts: bool = False
    attempts: int = 0
    status: JobStatus = JobStatus.PENDING

    @field_validator("buffer_start_seconds", "buffer_end_seconds", "attempts", mode="before")
    @classmethod
    def _null_is_zero(cls, v):
        # the API sends null for unset buffers and fresh jobs
        return 0 if v is None else v

    @field_validator("accurate_cuts", mode="before")
    @classmethod
    def _null_is_false(cls, v):
        return False if v is None else v
