"""Тесты состояния сессии и вывода результата (client.session, client.render)."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from client.api import ApiError, EstimationClient
from client.config import ClientConfig
from client.render import confidence_label, render_estimation
from client.session import EstimationSession
from estimator.schemas import CalorieEstimation, FoodItem

ESTIMATION = CalorieEstimation(
    calories=650,
    food_items=[
        FoodItem(name="Grilled chicken", calories=300, portion="150g"),
        FoodItem(name="Rice", calories=350, portion="1 cup"),
    ],
    confidence=0.72,
    image_url="https://example.com/meal.jpg",
)


def _session(**estimate_kwargs) -> EstimationSession:
    client = MagicMock()
    client.estimate = AsyncMock(**estimate_kwargs)
    return EstimationSession(client=client)


class TestEstimationSession:
    async def test_success_path(self) -> None:
        session = _session(return_value=ESTIMATION)
        assert session.state == "idle"

        result = await session.submit("abc")

        assert result is ESTIMATION
        assert session.state == "success"
        assert session.result is ESTIMATION
        assert session.error is None

    async def test_error_path_stores_formatted_message(self) -> None:
        session = _session(side_effect=ApiError("Image too large.", 413))

        assert await session.submit("abc") is None

        assert session.state == "error"
        assert session.error == "Error (413): Image too large."
        assert session.result is None

    async def test_unexpected_exception_still_ends_in_error(self) -> None:
        session = _session(side_effect=RuntimeError("decoder exploded"))

        assert await session.submit("abc") is None

        assert session.state == "error"
        assert session.error == "decoder exploded"
        session.reset()
        assert session.state == "idle"

    async def test_broken_response_body_leaves_session_recoverable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip")

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = EstimationClient(ClientConfig(base_url="http://test.local/api"), http=http)
        session = EstimationSession(client=client)

        assert await session.submit("abc") is None
        await http.aclose()

        assert session.state == "error"
        assert session.error.startswith("Error (500):")
        session.reset()
        assert session.state == "idle"

    async def test_is_loading_during_request(self) -> None:
        gate = asyncio.Event()
        seen: list[bool] = []
        session = _session()

        async def slow(_: str) -> CalorieEstimation:
            seen.append(session.is_loading)
            await gate.wait()
            return ESTIMATION

        session.client.estimate.side_effect = slow
        task = asyncio.create_task(session.submit("abc"))
        await asyncio.sleep(0)
        assert session.is_loading
        with pytest.raises(RuntimeError):
            session.reset()
        with pytest.raises(RuntimeError):
            await session.submit("again")
        gate.set()
        await task
        assert seen == [True]
        assert not session.is_loading

    async def test_submit_requires_reset_after_result(self) -> None:
        session = _session(return_value=ESTIMATION)
        await session.submit("abc")
        with pytest.raises(RuntimeError):
            await session.submit("abc")

        session.reset()

        assert session.state == "idle"
        assert session.result is None
        assert await session.submit("abc") is ESTIMATION
        assert session.client.estimate.await_count == 2

    async def test_reset_clears_error(self) -> None:
        session = _session(side_effect=ApiError("boom", 500))
        await session.submit("abc")
        session.reset()
        assert session.state == "idle"
        assert session.error is None


class TestRender:
    @pytest.mark.parametrize(
        ("confidence", "label"),
        [(0.95, "high"), (0.8, "high"), (0.79, "medium"), (0.5, "medium"), (0.49, "low"), (0.0, "low")],
    )
    def test_confidence_label(self, confidence: float, label: str) -> None:
        assert confidence_label(confidence) == label

    def test_render_estimation(self) -> None:
        assert render_estimation(ESTIMATION) == (
            "Total: 650 kcal\n"
            "  - Grilled chicken (150g): 300 kcal\n"
            "  - Rice (1 cup): 350 kcal\n"
            "Confidence: 72% (medium)"
        )
