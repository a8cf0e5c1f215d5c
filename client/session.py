from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from client.api import ApiError, EstimationClient, format_error_message
from estimator.schemas import CalorieEstimation

logger = logging.getLogger(__name__)

SessionState = Literal["idle", "loading", "success", "error"]


@dataclass(slots=True)
class EstimationSession:
    """Состояния клиента: idle -> loading -> success | error; из success/error только reset()."""

    client: EstimationClient
    state: SessionState = "idle"
    result: CalorieEstimation | None = field(default=None)
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.state == "loading"

    async def submit(self, image_base64: str) -> CalorieEstimation | None:
        if self.state != "idle":
            raise RuntimeError(f"Cannot submit while session is {self.state}")
        self.state = "loading"
        try:
            result = await self.client.estimate(image_base64)
        except ApiError as exc:
            logger.warning("Estimation failed: %s", exc)
            self.error = format_error_message(exc)
            self.state = "error"
            return None
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected estimation failure")
            self.error = format_error_message(exc)
            self.state = "error"
            return None
        self.result = result
        self.state = "success"
        return result

    def reset(self) -> None:
        if self.state == "loading":
            raise RuntimeError("Cannot reset while estimation is in progress")
        self.state = "idle"
        self.result = None
        self.error = None
