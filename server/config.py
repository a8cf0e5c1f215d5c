from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(slots=True)
class Settings:
    openai_api_key: str
    openai_model_vision: str
    openai_model_text: str
    openai_base_url: str | None
    s3_bucket: str | None
    s3_region: str | None
    s3_endpoint_url: str | None
    s3_public_base_url: str | None
    s3_folder: str
    max_image_size_bytes: int
    request_timeout_seconds: float
    max_requests_per_minute: int
    host: str
    port: int
    log_level: str

    @property
    def hosting_enabled(self) -> bool:
        return bool(self.s3_bucket)


def _optional(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def load_settings() -> Settings:
    load_dotenv()
    openai_key = os.getenv("OPENAI_API_KEY", "").strip()
    vision_model = os.getenv("OPENAI_MODEL_VISION", "gpt-4o").strip()
    text_model = os.getenv("OPENAI_MODEL_TEXT", "gpt-4o-mini").strip()
    base_url = _optional("OPENAI_BASE_URL") or _optional("BASE_URL")
    max_size_mb = float(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
    timeout = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "90"))
    rpm = int(os.getenv("MAX_REQUESTS_PER_MINUTE", "20"))

    if not openai_key:
        raise ValueError("OPENAI_API_KEY is required")
    if max_size_mb <= 0:
        raise ValueError("MAX_IMAGE_SIZE_MB must be positive")
    if timeout <= 0:
        raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")

    return Settings(
        openai_api_key=openai_key,
        openai_model_vision=vision_model,
        openai_model_text=text_model,
        openai_base_url=base_url,
        s3_bucket=_optional("S3_BUCKET"),
        s3_region=_optional("S3_REGION") or _optional("AWS_REGION"),
        s3_endpoint_url=_optional("S3_ENDPOINT_URL"),
        s3_public_base_url=_optional("S3_PUBLIC_BASE_URL"),
        s3_folder=os.getenv("S3_FOLDER", "calorie-estimator").strip(),
        max_image_size_bytes=int(max_size_mb * 1024 * 1024),
        request_timeout_seconds=timeout,
        max_requests_per_minute=rpm,
        host=os.getenv("HOST", "0.0.0.0").strip(),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
