from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from estimator.schemas import (
    ApiResponse,
    CalorieEstimation,
    EstimationRequest,
    FoodItem,
    TextEstimationRequest,
)
from server.runtime import get_app_context
from server.services.estimation import (
    MOBILE_PLACEHOLDER_URL,
    EstimationError,
    estimate_direct,
    estimate_text,
    estimate_with_upload,
    run_with_timeout,
    validate_description,
    validate_image,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PATCH,DELETE,POST,PUT",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version, X-iOS-Client"
    ),
    "Access-Control-Max-Age": "86400",
}
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
MOBILE_GUIDANCE = "Please try using WiFi or try again later."

IOS_TEST_ESTIMATION = CalorieEstimation(
    calories=450,
    food_items=[FoodItem(name="Test Food Item", calories=450, portion="1 serving")],
    confidence=0.8,
    image_url="https://placehold.co/600x400?text=iOS+Test+Successful",
)


def envelope(
    *,
    data: CalorieEstimation | None = None,
    error: str | None = None,
    status_code: int = 200,
    no_cache: bool = False,
) -> JSONResponse:
    headers = dict(NO_CACHE_HEADERS) if no_cache else None
    body = ApiResponse(success=error is None, data=data, error=error).to_wire()
    return JSONResponse(body, status_code=status_code, headers=headers)


async def _respond(
    label: str,
    work: Callable[[], Awaitable[CalorieEstimation]],
    *,
    no_cache: bool = False,
    guidance: str | None = None,
) -> JSONResponse:
    try:
        estimation = await work()
        response = envelope(data=estimation, no_cache=no_cache)
    except EstimationError as exc:
        logger.warning("%s: request failed with %d: %s", label, exc.status_code, exc)
        message = str(exc)
        if guidance and exc.status_code not in (400, 413):
            message = f"{message}. {guidance}"
        return envelope(error=message, status_code=exc.status_code, no_cache=no_cache)
    except Exception as exc:  # noqa: BLE001
        logger.exception("%s: unexpected error", label)
        return envelope(error=str(exc) or "Unknown error occurred", status_code=500, no_cache=no_cache)

    logger.info(
        "%s: estimated %.0f kcal across %d items",
        label,
        estimation.calories,
        len(estimation.food_items),
    )
    return response


@router.options("/{path:path}")
async def preflight(path: str) -> Response:
    return Response(status_code=200, headers={**CORS_HEADERS, **NO_CACHE_HEADERS})


@router.post("/estimate-calories")
async def estimate_calories(payload: EstimationRequest) -> JSONResponse:
    ctx = get_app_context()

    async def work() -> CalorieEstimation:
        image = validate_image(payload.image, ctx.settings.max_image_size_bytes)
        return await run_with_timeout(estimate_with_upload(ctx, image), ctx.settings.request_timeout_seconds)

    return await _respond("estimate-calories", work)


@router.post("/direct-estimate")
async def direct_estimate(payload: EstimationRequest) -> JSONResponse:
    ctx = get_app_context()

    async def work() -> CalorieEstimation:
        image = validate_image(payload.image, ctx.settings.max_image_size_bytes)
        return await run_with_timeout(estimate_direct(ctx, image), ctx.settings.request_timeout_seconds)

    return await _respond("direct-estimate", work)


@router.post("/mobile-estimate")
async def mobile_estimate(payload: EstimationRequest) -> JSONResponse:
    ctx = get_app_context()

    async def work() -> CalorieEstimation:
        image = validate_image(payload.image, ctx.settings.max_image_size_bytes)
        return await run_with_timeout(
            estimate_direct(ctx, image, MOBILE_PLACEHOLDER_URL),
            ctx.settings.request_timeout_seconds,
        )

    return await _respond("mobile-estimate", work, no_cache=True, guidance=MOBILE_GUIDANCE)


@router.post("/ios-test")
async def ios_test(request: Request) -> JSONResponse:
    # мок без внешних вызовов: проверка связности мобильного клиента
    try:
        await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return envelope(
            error="Invalid JSON body - please check your connection and try again",
            status_code=400,
            no_cache=True,
        )
    return envelope(data=IOS_TEST_ESTIMATION, no_cache=True)


@router.post("/text-estimate")
async def text_estimate(payload: TextEstimationRequest) -> JSONResponse:
    ctx = get_app_context()

    async def work() -> CalorieEstimation:
        description = validate_description(payload.description)
        return await run_with_timeout(estimate_text(ctx, description), ctx.settings.request_timeout_seconds)

    return await _respond("text-estimate", work)
