"""Фикстуры для тестов: настройки, замоканный анализатор, FastAPI-приложение."""
from __future__ import annotations

import base64
from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from server.config import Settings
from server.main import create_app
from server.runtime import AppContext

SAMPLE_RESULT = {
    "calories": 450.0,
    "foodItems": [{"name": "Test Food Item", "calories": 450.0, "portion": "1 serving"}],
    "confidence": 0.8,
}

# 1x1 прозрачный PNG
TINY_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def make_settings(**overrides) -> Settings:
    values = dict(
        openai_api_key="sk-fake-key-123456",
        openai_model_vision="gpt-4o",
        openai_model_text="gpt-4o-mini",
        openai_base_url=None,
        s3_bucket=None,
        s3_region=None,
        s3_endpoint_url=None,
        s3_public_base_url=None,
        s3_folder="calorie-estimator",
        max_image_size_bytes=5 * 1024 * 1024,
        request_timeout_seconds=5.0,
        max_requests_per_minute=1000,
        host="127.0.0.1",
        port=8000,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def analyzer() -> MagicMock:
    mock = MagicMock()
    mock.analyze = AsyncMock(return_value=dict(SAMPLE_RESULT))
    mock.analyze_text = AsyncMock(return_value=dict(SAMPLE_RESULT))
    return mock


@pytest.fixture
def app_context(settings: Settings, analyzer: MagicMock) -> AppContext:
    return AppContext(settings=settings, analyzer=analyzer, image_host=None)  # type: ignore[arg-type]


@pytest.fixture
def api(app_context: AppContext) -> Iterator[TestClient]:
    with TestClient(create_app(app_context)) as client:
        yield client


@pytest.fixture
def tiny_image() -> str:
    return f"data:image/png;base64,{TINY_PNG_B64}"


@pytest.fixture
def raw_jpeg_b64() -> str:
    return base64.b64encode(b"\xff\xd8\xff\xe0" + b"\x00" * 64).decode()


@pytest.fixture
def settings_factory():
    return make_settings
