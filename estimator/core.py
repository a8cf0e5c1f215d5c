"""Ядро оценки калорий: промпты, вызов OpenAI Vision, разбор и нормализация ответа."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

import openai
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

_PROMPTS_DIR = Path(__file__).parent / "prompts"

DEFAULT_CONFIDENCE = 0.5
DEFAULT_PORTION = "1 serving"


class VisionAnalysisError(Exception):
    """Ошибка внешнего анализа изображения; kind различает причину для сообщений."""

    def __init__(self, message: str, kind: str = "api") -> None:
        super().__init__(message)
        self.kind = kind


def _load_prompt(name: str, **kwargs: str) -> str:
    text = (_PROMPTS_DIR / f"{name}.md").read_text(encoding="utf-8")
    for key, value in kwargs.items():
        text = text.replace("{{" + key + "}}", str(value))
    return text.strip()


SYSTEM_PROMPT = _load_prompt("system")
USER_PROMPT = _load_prompt("user")


def text_prompt(description: str) -> str:
    return _load_prompt("text", description=description.strip())


def _image_content(image_url: str) -> list[dict]:
    return [
        {"type": "text", "text": USER_PROMPT},
        {"type": "image_url", "image_url": {"url": image_url}},
    ]


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    # json.loads превращает 1e400 в inf
    return number if math.isfinite(number) else default


def normalize_result(parsed: dict[str, Any]) -> dict[str, Any]:
    """Привести ответ модели к {calories, foodItems, confidence}.

    Калории не бывают отрицательными, уверенность зажимается в [0, 1].
    Если модель не перечислила блюда, но дала итог, добавляется одна позиция "Meal".
    Без итога калорийность считается как сумма позиций.
    """
    confidence = min(1.0, max(0.0, _to_float(parsed.get("confidence"), DEFAULT_CONFIDENCE)))

    items: list[dict[str, Any]] = []
    raw_items = parsed.get("foodItems") or parsed.get("food_items") or []
    if isinstance(raw_items, list):
        for raw in raw_items:
            if not isinstance(raw, dict):
                continue
            items.append(
                {
                    "name": str(raw.get("name") or "Unknown item"),
                    "calories": max(0.0, _to_float(raw.get("calories"))),
                    "portion": str(raw.get("portion") or DEFAULT_PORTION),
                }
            )

    total = _to_float(parsed.get("calories"), math.nan)
    if math.isnan(total):
        # итог не указан: складываем позиции
        total = sum(item["calories"] for item in items)
    calories = max(0.0, total)

    if not items:
        if calories <= 0:
            raise VisionAnalysisError("No food detected in the image", kind="parse")
        items.append({"name": "Meal", "calories": calories, "portion": DEFAULT_PORTION})

    return {"calories": calories, "foodItems": items, "confidence": confidence}


def _is_response_format_rejection(exc: openai.BadRequestError) -> bool:
    return "response_format" in str(exc)


def _is_content_policy(exc: openai.BadRequestError) -> bool:
    text = str(exc).lower()
    return "content_policy" in text or "content policy" in text


async def _complete_json(client: AsyncOpenAI, **kwargs: Any) -> dict[str, Any]:
    kwargs["response_format"] = {"type": "json_object"}
    try:
        try:
            response = await client.chat.completions.create(**kwargs)
        except openai.BadRequestError as exc:
            if not _is_response_format_rejection(exc):
                raise
            # модель без JSON-режима
            kwargs.pop("response_format", None)
            response = await client.chat.completions.create(**kwargs)
    except openai.RateLimitError as exc:
        raise VisionAnalysisError(
            "Vision API rate limit exceeded. Please try again in a moment.", kind="rate_limit"
        ) from exc
    except openai.AuthenticationError as exc:
        raise VisionAnalysisError(
            "Vision API key is invalid or missing. Please check your configuration.", kind="auth"
        ) from exc
    except openai.APITimeoutError as exc:
        raise VisionAnalysisError("Vision API request timed out", kind="timeout") from exc
    except openai.BadRequestError as exc:
        if _is_content_policy(exc):
            raise VisionAnalysisError(
                "The image may not be appropriate for analysis. Please try a different food image.",
                kind="content_policy",
            ) from exc
        raise VisionAnalysisError(f"Vision API rejected the request: {exc}") from exc
    except openai.APIError as exc:
        raise VisionAnalysisError(f"Vision API error: {exc}") from exc

    content = response.choices[0].message.content
    if not content:
        raise VisionAnalysisError("No content returned from the vision model", kind="parse")
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise VisionAnalysisError("Vision model returned invalid JSON", kind="parse") from exc
    if not isinstance(parsed, dict):
        raise VisionAnalysisError("Vision model returned unexpected JSON", kind="parse")
    return parsed


async def analyze_food_image(
    client: AsyncOpenAI,
    model: str,
    image_url: str,
    *,
    max_tokens: int = 1000,
) -> dict[str, Any]:
    """Оценить калорийность блюда по фото.

    Args:
        client: экземпляр AsyncOpenAI
        model: название модели (например gpt-4o)
        image_url: URL изображения или data URI (base64)

    Returns:
        dict с ключами calories, foodItems, confidence

    Raises:
        VisionAnalysisError: лимит запросов, неверный ключ, политика контента, таймаут или непарсимый ответ
    """
    parsed = await _complete_json(
        client,
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": _image_content(image_url)},
        ],
        temperature=0.0,
        max_tokens=max_tokens,
    )
    return normalize_result(parsed)


async def estimate_from_text(
    client: AsyncOpenAI,
    model: str,
    description: str,
    *,
    max_tokens: int = 1000,
) -> dict[str, Any]:
    """Оценить калорийность по текстовому описанию блюда (тот же JSON-контракт)."""
    parsed = await _complete_json(
        client,
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": text_prompt(description)},
        ],
        temperature=0.2,
        max_tokens=max_tokens,
    )
    return normalize_result(parsed)


class VisionAnalyzer:
    def __init__(
        self,
        api_key: str,
        vision_model: str,
        *,
        text_model: str | None = None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        if client is None:
            kwargs: dict[str, Any] = {"api_key": api_key}
            if base_url:
                kwargs["base_url"] = base_url
            client = AsyncOpenAI(**kwargs)
        self.client = client
        self.vision_model = vision_model
        self.text_model = text_model or vision_model

    async def analyze(self, image_url: str) -> dict[str, Any]:
        logger.info("Analyzing image with %s", self.vision_model)
        return await analyze_food_image(self.client, self.vision_model, image_url)

    async def analyze_text(self, description: str) -> dict[str, Any]:
        logger.info("Estimating text description with %s", self.text_model)
        return await estimate_from_text(self.client, self.text_model, description)
