# settings.py
import os
import tempfile
from typing import List

from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load variables from .env at import time
load_dotenv()

REQUIRED_ENV = {
    "queue_api_url": "QUEUE_API_URL",
    "worker_api_key": "WORKER_API_KEY",
}

class Settings(BaseModel):
    port: int = Field(default=int(os.getenv("PORT", "3000")))
    queue_api_url: str = Field(default=os.getenv("QUEUE_API_URL", ""))
    worker_api_key: str = Field(default=os.getenv("WORKER_API_KEY", ""))
    poll_interval_ms: int = Field(default=int(os.getenv("POLL_INTERVAL_MS", "10000")))
    max_concurrent_downloads: int = Field(default=int(os.getenv("MAX_CONCURRENT_DOWNLOADS", "2")))
    ytdlp_bin: str = Field(default=os.getenv("YTDLP_BIN", "yt-dlp"))
    download_dir: str = Field(default=os.getenv("DOWNLOAD_DIR", tempfile.gettempdir()))
    cors_origins: str = Field(default=os.getenv("CORS_ORIGINS", "*"))
    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    def missing_required(self) -> List[str]:
        """Names of required env vars that are unset or empty."""
        return [env for field, env in REQUIRED_ENV.items() if not getattr(self, field)]

settings = Settings()
