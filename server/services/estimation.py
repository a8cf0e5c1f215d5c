"""Проверка входного изображения и обращение к внешним сервисам (хостинг + анализ)."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from estimator.core import VisionAnalysisError
from estimator.hosting import ImageHostingError
from estimator.schemas import CalorieEstimation, decoded_size, to_data_uri
from server.runtime import AppContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

DIRECT_PLACEHOLDER_URL = "https://placehold.co/600x400?text=Image+Analyzed+Directly"
MOBILE_PLACEHOLDER_URL = "https://placehold.co/600x400?text=Mobile+Analysis+Complete"
TEXT_PLACEHOLDER_URL = "https://placehold.co/600x400?text=Text+Description"

TIMEOUT_MESSAGE = "Request timed out. This may be due to a slow connection or heavy server load."


class EstimationError(Exception):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


def validate_image(image: str | None, max_bytes: int) -> str:
    if not image or not image.strip():
        raise EstimationError("Invalid request: Image is required", 400)
    size = decoded_size(image)
    if size > max_bytes:
        logger.warning("Image too large: %.2f MB", size / (1024 * 1024))
        limit_mb = max_bytes / (1024 * 1024)
        raise EstimationError(f"Image too large. Maximum size is {limit_mb:g}MB.", 413)
    return image


def validate_description(description: str | None) -> str:
    if not description or not description.strip():
        raise EstimationError("Invalid request: Description is required", 400)
    return description.strip()


async def run_with_timeout(aw: Awaitable[T], seconds: float) -> T:
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError as exc:
        logger.error("External call sequence exceeded %.1fs", seconds)
        raise EstimationError(TIMEOUT_MESSAGE, 408) from exc


def _analysis_error(exc: VisionAnalysisError) -> EstimationError:
    status = 408 if exc.kind == "timeout" else 500
    return EstimationError(f"AI analysis failed: {exc}", status)


def _build_estimation(result: dict, image_url: str) -> CalorieEstimation:
    return CalorieEstimation(
        calories=result["calories"],
        food_items=result["foodItems"],
        confidence=result["confidence"],
        image_url=image_url,
    )


async def estimate_direct(ctx: AppContext, image: str, placeholder_url: str = DIRECT_PLACEHOLDER_URL) -> CalorieEstimation:
    try:
        result = await ctx.analyzer.analyze(to_data_uri(image))
    except VisionAnalysisError as exc:
        raise _analysis_error(exc) from exc
    return _build_estimation(result, placeholder_url)


async def estimate_with_upload(ctx: AppContext, image: str) -> CalorieEstimation:
    """Загрузить фото на хостинг и проанализировать его по URL; без хостинга анализ идёт inline."""
    if ctx.image_host is None:
        return await estimate_direct(ctx, image)

    try:
        image_url = await ctx.image_host.upload(image)
    except ImageHostingError as exc:
        raise EstimationError(f"Image upload failed: {exc}", 500) from exc

    try:
        result = await ctx.analyzer.analyze(image_url)
    except VisionAnalysisError as exc:
        raise _analysis_error(exc) from exc
    return _build_estimation(result, image_url)


async def estimate_text(ctx: AppContext, description: str) -> CalorieEstimation:
    try:
        result = await ctx.analyzer.analyze_text(description)
    except VisionAnalysisError as exc:
        raise _analysis_error(exc) from exc
    return _build_estimation(result, TEXT_PLACEHOLDER_URL)
