from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from estimator.core import VisionAnalyzer
from estimator.hosting import ImageHost, build_s3_client
from estimator.schemas import ApiResponse
from server.config import Settings, load_settings
from server.middlewares.rate_limit import EstimationRateLimitMiddleware
from server.routes import ALL_ROUTERS
from server.runtime import AppContext, set_app_context

logger = logging.getLogger(__name__)


def build_context(settings: Settings) -> AppContext:
    analyzer = VisionAnalyzer(
        api_key=settings.openai_api_key,
        vision_model=settings.openai_model_vision,
        text_model=settings.openai_model_text,
        base_url=settings.openai_base_url,
    )
    image_host = None
    if settings.hosting_enabled:
        image_host = ImageHost(
            build_s3_client(settings.s3_region, settings.s3_endpoint_url),
            settings.s3_bucket,  # type: ignore[arg-type]
            folder=settings.s3_folder,
            public_base_url=settings.s3_public_base_url,
        )
    return AppContext(settings=settings, analyzer=analyzer, image_host=image_host)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + ("; ".join(parts) or "malformed body")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return JSONResponse(ApiResponse(success=False, error=message).to_wire(), status_code=400)


def create_app(ctx: AppContext) -> FastAPI:
    set_app_context(ctx)
    app = FastAPI(title="calorie-estimator")
    app.add_middleware(
        EstimationRateLimitMiddleware,
        max_requests_per_minute=ctx.settings.max_requests_per_minute,
    )
    # CORS снаружи rate limit, чтобы и 429 получал заголовки
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    for router in ALL_ROUTERS:
        app.include_router(router, prefix="/api")
    return app


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    logging.info("OpenAI base URL: %s", settings.openai_base_url or "default")
    logging.info("Image hosting: %s", settings.s3_bucket or "disabled")
    app = create_app(build_context(settings))
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
