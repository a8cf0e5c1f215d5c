from __future__ import annotations

import enum
import re

_IOS_RE = re.compile(r"iPad|iPhone|iPod")
_MOBILE_RE = re.compile(r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)


class DeviceClass(str, enum.Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    CONSTRAINED_MOBILE = "constrained_mobile"

    @property
    def is_mobile(self) -> bool:
        return self is not DeviceClass.DESKTOP


def detect_device_class(user_agent: str | None) -> DeviceClass:
    """Определить класс устройства по User-Agent; вызывается один раз на границе клиента."""
    if not user_agent:
        return DeviceClass.DESKTOP
    if _IOS_RE.search(user_agent):
        return DeviceClass.CONSTRAINED_MOBILE
    if _MOBILE_RE.search(user_agent):
        return DeviceClass.MOBILE
    return DeviceClass.DESKTOP


GUIDANCE: dict[DeviceClass, dict[str, str]] = {
    DeviceClass.DESKTOP: {
        "timeout": "Please check your connection and try again.",
        "unreachable": "Please check that the server is running and reachable.",
    },
    DeviceClass.MOBILE: {
        "timeout": "This may be due to a slow mobile connection or a large image file.",
        "unreachable": (
            "This may be due to a weak mobile signal or network issues. "
            "Please try again on WiFi if possible."
        ),
    },
    DeviceClass.CONSTRAINED_MOBILE: {
        "timeout": "This may be due to a slow mobile connection. Try a smaller photo or switch to WiFi.",
        "unreachable": (
            "Network connectivity issue. Please try switching to WiFi and ensure "
            "your browser allows camera access."
        ),
    },
}
