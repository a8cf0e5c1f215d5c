from __future__ import annotations

from dataclasses import dataclass

from estimator.core import VisionAnalyzer
from estimator.hosting import ImageHost
from server.config import Settings


@dataclass(slots=True)
class AppContext:
    settings: Settings
    analyzer: VisionAnalyzer
    image_host: ImageHost | None = None


app_context: AppContext | None = None


def set_app_context(ctx: AppContext) -> None:
    global app_context
    app_context = ctx


def get_app_context() -> AppContext:
    if app_context is None:
        raise RuntimeError("App context is not initialized")
    return app_context
