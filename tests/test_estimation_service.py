"""Тесты проверки изображения и вызова внешних сервисов (server.services.estimation)."""
from __future__ import annotations

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from estimator.core import VisionAnalysisError
from estimator.hosting import ImageHostingError
from server.runtime import AppContext
from server.services.estimation import (
    DIRECT_PLACEHOLDER_URL,
    EstimationError,
    estimate_direct,
    estimate_text,
    estimate_with_upload,
    run_with_timeout,
    validate_description,
    validate_image,
)


class TestValidateImage:
    @pytest.mark.parametrize("image", ["", "   ", None])
    def test_empty_image_is_400(self, image: str | None) -> None:
        with pytest.raises(EstimationError) as info:
            validate_image(image, 1024)
        assert info.value.status_code == 400
        assert "Image is required" in str(info.value)

    def test_oversized_image_is_413(self) -> None:
        image = base64.b64encode(b"x" * 2048).decode()
        with pytest.raises(EstimationError) as info:
            validate_image(image, 1024)
        assert info.value.status_code == 413
        assert "Image too large" in str(info.value)

    def test_size_limit_is_inclusive(self) -> None:
        image = base64.b64encode(b"x" * 1024).decode()
        assert validate_image(image, 1024) == image

    def test_limit_message_in_megabytes(self) -> None:
        image = base64.b64encode(b"x" * (6 * 1024 * 1024)).decode()
        with pytest.raises(EstimationError, match="Maximum size is 5MB"):
            validate_image(image, 5 * 1024 * 1024)


def test_validate_description_strips() -> None:
    assert validate_description("  soup ") == "soup"
    with pytest.raises(EstimationError):
        validate_description(" ")


async def test_run_with_timeout_returns_result() -> None:
    async def fast() -> int:
        return 7

    assert await run_with_timeout(fast(), 1.0) == 7


async def test_run_with_timeout_raises_408() -> None:
    async def slow() -> None:
        await asyncio.sleep(1)

    with pytest.raises(EstimationError) as info:
        await run_with_timeout(slow(), 0.01)
    assert info.value.status_code == 408


async def test_estimate_direct_sends_data_uri(app_context: AppContext, raw_jpeg_b64: str) -> None:
    estimation = await estimate_direct(app_context, raw_jpeg_b64)
    app_context.analyzer.analyze.assert_awaited_once_with(f"data:image/jpeg;base64,{raw_jpeg_b64}")
    assert estimation.calories == 450.0
    assert estimation.image_url == DIRECT_PLACEHOLDER_URL


async def test_estimate_with_upload_uses_hosted_url(app_context: AppContext, raw_jpeg_b64: str) -> None:
    host = MagicMock()
    host.upload = AsyncMock(return_value="https://cdn.example.com/a.jpg")
    app_context.image_host = host

    estimation = await estimate_with_upload(app_context, raw_jpeg_b64)

    host.upload.assert_awaited_once_with(raw_jpeg_b64)
    app_context.analyzer.analyze.assert_awaited_once_with("https://cdn.example.com/a.jpg")
    assert estimation.image_url == "https://cdn.example.com/a.jpg"


async def test_estimate_with_upload_without_host_falls_back_to_inline(
    app_context: AppContext, raw_jpeg_b64: str
) -> None:
    estimation = await estimate_with_upload(app_context, raw_jpeg_b64)
    assert estimation.image_url == DIRECT_PLACEHOLDER_URL


async def test_hosting_error_is_prefixed(app_context: AppContext, raw_jpeg_b64: str) -> None:
    host = MagicMock()
    host.upload = AsyncMock(side_effect=ImageHostingError("Access Denied"))
    app_context.image_host = host
    with pytest.raises(EstimationError, match="^Image upload failed: Access Denied$") as info:
        await estimate_with_upload(app_context, raw_jpeg_b64)
    assert info.value.status_code == 500
    app_context.analyzer.analyze.assert_not_awaited()


async def test_analysis_error_is_prefixed(app_context: AppContext, raw_jpeg_b64: str) -> None:
    app_context.analyzer.analyze = AsyncMock(
        side_effect=VisionAnalysisError("Vision API rate limit exceeded.", kind="rate_limit")
    )
    with pytest.raises(EstimationError, match="^AI analysis failed: Vision API rate limit") as info:
        await estimate_direct(app_context, raw_jpeg_b64)
    assert info.value.status_code == 500


async def test_analysis_timeout_maps_to_408(app_context: AppContext) -> None:
    app_context.analyzer.analyze_text = AsyncMock(side_effect=VisionAnalysisError("timed out", kind="timeout"))
    with pytest.raises(EstimationError) as info:
        await estimate_text(app_context, "pasta")
    assert info.value.status_code == 408
