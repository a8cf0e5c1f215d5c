from __future__ import annotations

from estimator.schemas import CalorieEstimation


def confidence_label(confidence: float) -> str:
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.5:
        return "medium"
    return "low"


def render_estimation(estimation: CalorieEstimation) -> str:
    lines = [f"Total: {estimation.calories:.0f} kcal"]
    for item in estimation.food_items:
        lines.append(f"  - {item.name} ({item.portion}): {item.calories:.0f} kcal")
    lines.append(
        f"Confidence: {estimation.confidence * 100:.0f}% ({confidence_label(estimation.confidence)})"
    )
    return "\n".join(lines)
