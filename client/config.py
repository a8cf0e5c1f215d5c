from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urljoin

from dotenv import load_dotenv

from client.device import DeviceClass

DEFAULT_BASE_URL = "http://localhost:8000/api"


@dataclass(slots=True, frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    device_class: DeviceClass = DeviceClass.DESKTOP
    request_timeout: float = 60.0
    max_retries: int = 2
    backoff_step: float = 2.0


def resolve_base_url(base_url: str, origin: str | None = None) -> str:
    """Абсолютный base_url как есть; относительный (/api) склеивается с origin страницы."""
    if base_url.startswith(("http://", "https://")):
        return base_url.rstrip("/")
    if not origin:
        raise ValueError(f"Relative API base URL {base_url!r} requires an origin")
    return urljoin(origin.rstrip("/") + "/", base_url.lstrip("/")).rstrip("/")


def load_client_config(
    device_class: DeviceClass = DeviceClass.DESKTOP,
    *,
    origin: str | None = None,
) -> ClientConfig:
    load_dotenv()
    base_url = os.getenv("PUBLIC_API_URL", "").strip() or DEFAULT_BASE_URL
    timeout = float(os.getenv("CLIENT_REQUEST_TIMEOUT_SECONDS", "60"))
    retries = int(os.getenv("CLIENT_MAX_RETRIES", "2"))
    if retries < 0:
        raise ValueError("CLIENT_MAX_RETRIES must not be negative")
    return ClientConfig(
        base_url=resolve_base_url(base_url, origin),
        device_class=device_class,
        request_timeout=timeout,
        max_retries=retries,
    )
