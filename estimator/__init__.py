"""Автономный модуль оценки калорий по фото еды.

Использование как библиотека:
    from estimator import analyze_food_image

Использование из CLI:
    python -m estimator photo.jpg
    python -m estimator https://example.com/food.jpg --model gpt-4o
"""

from estimator.core import VisionAnalysisError, VisionAnalyzer, analyze_food_image, estimate_from_text
from estimator.hosting import ImageHost, ImageHostingError
from estimator.schemas import ApiResponse, CalorieEstimation, FoodItem

__all__ = [
    "analyze_food_image",
    "estimate_from_text",
    "VisionAnalyzer",
    "VisionAnalysisError",
    "ImageHost",
    "ImageHostingError",
    "ApiResponse",
    "CalorieEstimation",
    "FoodItem",
]
