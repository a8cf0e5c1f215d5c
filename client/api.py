"""Клиент оценки калорий: упорядоченная цепочка эндпоинтов с повтором при сетевых сбоях.

Кандидаты перебираются строго по очереди, первый успешный ответ выигрывает.
Ошибка, на которую сервер ответил, не повторяется: пробуется следующий кандидат.
Если последний кандидат не ответил вовсе (таймаут или нет соединения),
вся цепочка повторяется с линейно растущей паузой attempt * backoff_step.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from client.config import ClientConfig
from client.device import GUIDANCE, DeviceClass
from estimator.schemas import ApiResponse, CalorieEstimation, EstimationRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


class ApiError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class _TransportError(Exception):
    """Ответа от сервера не было: таймаут или нет соединения."""

    def __init__(self, message: str, *, timed_out: bool) -> None:
        super().__init__(message)
        self.timed_out = timed_out


@dataclass(slots=True, frozen=True)
class EndpointStrategy:
    name: str
    path: str


MOBILE_ENDPOINT = EndpointStrategy("mobile", "/mobile-estimate")
PRIMARY_ENDPOINT = EndpointStrategy("primary", "/estimate-calories")
LEGACY_ENDPOINT = EndpointStrategy("legacy", "/direct-estimate")


def default_strategies(device_class: DeviceClass) -> list[EndpointStrategy]:
    strategies = [PRIMARY_ENDPOINT, LEGACY_ENDPOINT]
    if device_class.is_mobile:
        strategies.insert(0, MOBILE_ENDPOINT)
    return strategies


class EstimationClient:
    def __init__(
        self,
        config: ClientConfig,
        *,
        http: httpx.AsyncClient | None = None,
        strategies: list[EndpointStrategy] | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.strategies = strategies if strategies is not None else default_strategies(config.device_class)
        if not self.strategies:
            raise ValueError("At least one endpoint strategy is required")
        self._sleep = sleep
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=config.request_timeout,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> EstimationClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _url(self, strategy: EndpointStrategy) -> str:
        return f"{self.config.base_url.rstrip('/')}{strategy.path}"

    async def _post(self, strategy: EndpointStrategy, payload: dict[str, str]) -> httpx.Response:
        try:
            return await asyncio.wait_for(
                self._http.post(self._url(strategy), json=payload),
                timeout=self.config.request_timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise _TransportError(
                f"The request timed out after {self.config.request_timeout:g}s.", timed_out=True
            ) from exc
        except httpx.TransportError as exc:
            raise _TransportError(f"Could not connect to the server: {exc}", timed_out=False) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # ответ есть, но прочитать его нельзя
            raise ApiError(f"Invalid response from server: {exc}", 500) from exc

    async def _try_strategy(self, strategy: EndpointStrategy, payload: dict[str, str]) -> CalorieEstimation:
        response = await self._post(strategy, payload)
        try:
            envelope = ApiResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ApiError(
                f"Unexpected response from server (HTTP {response.status_code})",
                response.status_code if response.is_error else 500,
            ) from exc

        if response.is_error or not envelope.success or envelope.data is None:
            status = response.status_code if response.is_error else 500
            raise ApiError(envelope.error or "Failed to estimate calories", status)
        return envelope.data

    def _transport_failure(self, exc: _TransportError) -> ApiError:
        guidance = GUIDANCE[self.config.device_class]
        if exc.timed_out:
            return ApiError(f"{exc} {guidance['timeout']}", 408)
        return ApiError(f"Could not connect to the server. {guidance['unreachable']}", 0)

    async def estimate(self, image_base64: str) -> CalorieEstimation:
        payload = EstimationRequest(image=image_base64).model_dump()
        attempts = self.config.max_retries + 1
        for attempt in range(1, attempts + 1):
            failures: list[tuple[EndpointStrategy, Exception]] = []
            for strategy in self.strategies:
                logger.info(
                    "Attempt %d/%d: %s endpoint %s", attempt, attempts, strategy.name, strategy.path
                )
                try:
                    return await self._try_strategy(strategy, payload)
                except (ApiError, _TransportError) as exc:
                    logger.warning("%s endpoint failed: %s", strategy.name, exc)
                    failures.append((strategy, exc))

            _, last_error = failures[-1]
            if isinstance(last_error, _TransportError):
                if attempt < attempts:
                    delay = attempt * self.config.backoff_step
                    logger.info("Retrying in %.1fs", delay)
                    await self._sleep(delay)
                    continue
                raise self._transport_failure(last_error) from last_error
            raise self._compose_server_failure(failures) from last_error

        raise ApiError("Maximum retry attempts exceeded", 0)

    def _compose_server_failure(self, failures: list[tuple[EndpointStrategy, Exception]]) -> ApiError:
        if len(failures) == 1:
            _, only = failures[0]
            return ApiError(str(only), getattr(only, "status_code", 500))
        message = "; ".join(f"{strategy.name}: {exc}" for strategy, exc in failures)
        _, last = failures[-1]
        return ApiError(f"All estimation endpoints failed ({message})", getattr(last, "status_code", 500))


def format_error_message(error: BaseException | str | None) -> str:
    if isinstance(error, ApiError):
        return f"Error ({error.status_code}): {error}"
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    return "An unexpected error occurred"


async def handle_api_error(fn: Callable[[], Awaitable[T]]) -> tuple[T | None, str | None]:
    """Выполнить вызов и вернуть (data, error) вместо исключения."""
    try:
        return await fn(), None
    except Exception as exc:  # noqa: BLE001
        return None, format_error_message(exc)
