"""Config model for threadline"""

from pathlib import Path
from typing import Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ThreadlineConfig(BaseModel):
    """Configuration for threadline - stored in .threadline/config.yaml"""
    model_config = ConfigDict(extra="forbid")

    endpoint_url: str = "http://localhost:3000/api/review"
    storage_dir: str = ".threadline/sessions"
    max_sessions: int = Field(10, ge=1)
    autosave_delay: float = Field(1.0, ge=0)
    request_timeout: Optional[float] = None
    default_language: str = "typescript"
    theme: Literal["vs-dark", "vs-light"] = "vs-dark"
    log_level: str = "WARNING"

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """Ensure the endpoint is an http(s) URL"""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint_url must be an http(s) URL, got: {v}")
        try:
            httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"endpoint_url is malformed: {e}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def storage_path(self) -> Path:
        """Get storage_dir as Path object"""
        return Path(self.storage_dir)
