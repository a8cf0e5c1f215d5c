from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from server.runtime import get_app_context

router = APIRouter()


def mask_secret(value: str | None) -> str:
    """Показывает только края значения, никогда не весь ключ."""
    if not value:
        return "Not set"
    if len(value) <= 8:
        return f"Set - length: {len(value)}"
    return f"Present ({value[:3]}...{value[-3:]})"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/public-debug")
async def public_debug() -> dict:
    settings = get_app_context().settings
    return {
        "message": "Public debug information",
        "env_status": {
            "OPENAI_API_KEY": mask_secret(settings.openai_api_key),
            "OPENAI_BASE_URL": settings.openai_base_url or "Not set",
            "SERVER_TIME": datetime.now(timezone.utc).isoformat(),
        },
    }


@router.get("/debug")
async def debug() -> dict:
    settings = get_app_context().settings
    return {
        "message": "Environment debug information",
        "info": {
            "OPENAI_API_KEY": mask_secret(settings.openai_api_key),
            "OPENAI_MODEL_VISION": settings.openai_model_vision,
            "OPENAI_MODEL_TEXT": settings.openai_model_text,
            "IMAGE_HOSTING": f"S3 bucket {settings.s3_bucket}" if settings.hosting_enabled else "Disabled",
            "MAX_IMAGE_SIZE_BYTES": settings.max_image_size_bytes,
            "REQUEST_TIMEOUT_SECONDS": settings.request_timeout_seconds,
            "REQUEST_TIME": datetime.now(timezone.utc).isoformat(),
        },
    }
