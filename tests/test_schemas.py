"""Тесты модели данных и base64-хелперов (estimator.schemas)."""
from __future__ import annotations

import base64

import pytest
from pydantic import ValidationError

from estimator.schemas import (
    ApiResponse,
    CalorieEstimation,
    FoodItem,
    decoded_size,
    strip_data_uri,
    to_data_uri,
)


class TestDataUri:
    def test_strip_removes_prefix(self) -> None:
        assert strip_data_uri("data:image/png;base64,AAAA") == "AAAA"

    def test_strip_keeps_plain_base64(self) -> None:
        assert strip_data_uri("  AAAA ") == "AAAA"

    def test_to_data_uri_adds_jpeg_prefix(self) -> None:
        assert to_data_uri("AAAA") == "data:image/jpeg;base64,AAAA"

    def test_to_data_uri_keeps_existing_prefix(self) -> None:
        assert to_data_uri("data:image/webp;base64,AAAA") == "data:image/webp;base64,AAAA"


class TestDecodedSize:
    @pytest.mark.parametrize("raw", [b"", b"a", b"ab", b"abc", b"abcd", b"x" * 1000])
    def test_matches_real_decoded_length(self, raw: bytes) -> None:
        encoded = base64.b64encode(raw).decode()
        assert decoded_size(encoded) == len(raw)

    def test_ignores_data_uri_prefix(self) -> None:
        encoded = base64.b64encode(b"x" * 300).decode()
        assert decoded_size(f"data:image/jpeg;base64,{encoded}") == 300

    def test_ignores_non_image_data_uri_prefix(self) -> None:
        encoded = base64.b64encode(b"x" * 300).decode()
        assert decoded_size(f"data:application/octet-stream;base64,{encoded}") == 300

    def test_octet_stream_payload_is_relabelled_as_jpeg(self) -> None:
        assert to_data_uri("data:application/octet-stream;base64,AAAA") == "data:image/jpeg;base64,AAAA"


class TestModels:
    def test_estimation_accepts_wire_names(self) -> None:
        est = CalorieEstimation.model_validate(
            {
                "calories": 300,
                "foodItems": [{"name": "Rice", "calories": 300, "portion": "1 cup"}],
                "confidence": 0.7,
                "imageUrl": "https://example.com/a.jpg",
            }
        )
        assert est.food_items[0].name == "Rice"
        assert est.image_url == "https://example.com/a.jpg"

    def test_rejects_negative_calories(self) -> None:
        with pytest.raises(ValidationError):
            FoodItem(name="x", calories=-1, portion="1")

    def test_rejects_confidence_above_one(self) -> None:
        with pytest.raises(ValidationError):
            CalorieEstimation(calories=1, food_items=[], confidence=1.5, image_url="u")

    def test_estimation_is_immutable(self) -> None:
        est = CalorieEstimation(calories=1, food_items=[], confidence=0.5, image_url="u")
        with pytest.raises(ValidationError):
            est.calories = 5  # type: ignore[misc]

    def test_envelope_omits_missing_fields(self) -> None:
        assert ApiResponse(success=False, error="boom").to_wire() == {"success": False, "error": "boom"}

    def test_envelope_uses_camel_case(self) -> None:
        est = CalorieEstimation(
            calories=10,
            food_items=[FoodItem(name="Tea", calories=10, portion="1 cup")],
            confidence=0.9,
            image_url="u",
        )
        wire = ApiResponse(success=True, data=est).to_wire()
        assert wire["data"]["foodItems"][0]["name"] == "Tea"
        assert wire["data"]["imageUrl"] == "u"
        assert "error" not in wire
