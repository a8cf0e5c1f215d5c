"""Клиентская часть: сжатие фото и обращение к серверу оценки с повторами."""

from client.api import ApiError, EndpointStrategy, EstimationClient, default_strategies
from client.compression import compress_image
from client.config import ClientConfig
from client.device import DeviceClass, detect_device_class

__all__ = [
    "ApiError",
    "ClientConfig",
    "DeviceClass",
    "EndpointStrategy",
    "EstimationClient",
    "compress_image",
    "default_strategies",
    "detect_device_class",
]
