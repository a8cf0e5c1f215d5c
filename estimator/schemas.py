"""Модель данных оценки калорий: общая для сервера и клиента."""
from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

_IMAGE_DATA_URI_RE = re.compile(r"^data:image/[\w.+-]+;base64,")
# любой base64 data URI, в том числе application/octet-stream
_DATA_URI_RE = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,")


class FoodItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    calories: float = Field(ge=0, allow_inf_nan=False)
    portion: str


class CalorieEstimation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    calories: float = Field(ge=0, allow_inf_nan=False)
    food_items: list[FoodItem] = Field(alias="foodItems")
    confidence: float = Field(ge=0, le=1, allow_inf_nan=False)
    image_url: str = Field(alias="imageUrl")


class EstimationRequest(BaseModel):
    image: str


class TextEstimationRequest(BaseModel):
    description: str


class ApiResponse(BaseModel):
    """Конверт ответа: либо data, либо error."""

    success: bool
    data: CalorieEstimation | None = None
    error: str | None = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def strip_data_uri(image: str) -> str:
    return _DATA_URI_RE.sub("", image.strip(), count=1)


def to_data_uri(image: str) -> str:
    image = image.strip()
    if _IMAGE_DATA_URI_RE.match(image):
        return image
    return f"data:image/jpeg;base64,{strip_data_uri(image)}"


def decoded_size(image: str) -> int:
    """Размер декодированных байтов по длине base64 (без декодирования)."""
    payload = "".join(strip_data_uri(image).split())
    if not payload:
        return 0
    padding = len(payload) - len(payload.rstrip("="))
    return len(payload) * 3 // 4 - padding
