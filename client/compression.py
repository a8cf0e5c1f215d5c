"""Сжатие фото перед отправкой: ширина и качество JPEG зависят от класса устройства и размера файла."""
from __future__ import annotations

import base64
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from client.device import DeviceClass

logger = logging.getLogger(__name__)

SMALL_FILE_BYTES = 300_000
MOBILE_SECOND_PASS_BYTES = 1024 * 1024


@dataclass(slots=True, frozen=True)
class CompressionProfile:
    max_width: int
    quality: float


SECOND_PASS_PROFILE = CompressionProfile(max_width=500, quality=0.6)

_MAX_WIDTH: dict[DeviceClass, int] = {
    DeviceClass.DESKTOP: 800,
    DeviceClass.MOBILE: 600,
    DeviceClass.CONSTRAINED_MOBILE: 500,
}
_QUALITY_CAP: dict[DeviceClass, float] = {
    DeviceClass.DESKTOP: 1.0,
    DeviceClass.MOBILE: 0.7,
    DeviceClass.CONSTRAINED_MOBILE: 0.6,
}


def _mobile_quality_tier(file_size: int) -> float:
    if file_size > 3_000_000:
        return 0.6
    if file_size > 1_000_000:
        return 0.7
    if file_size > 500_000:
        return 0.8
    return 0.85


def choose_profile(device_class: DeviceClass, file_size: int) -> CompressionProfile:
    if device_class is DeviceClass.DESKTOP:
        return CompressionProfile(_MAX_WIDTH[device_class], 0.9 if file_size < 500_000 else 0.8)

    quality = min(_mobile_quality_tier(file_size), _QUALITY_CAP[device_class])
    if file_size < SMALL_FILE_BYTES:
        # маленькие мобильные фото: сжатие помягче
        quality = min(quality + 0.1, 0.9)
    return CompressionProfile(_MAX_WIDTH[device_class], round(quality, 2))


def _data_uri(content: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode()}"


def _encode_jpeg(image: Image.Image, profile: CompressionProfile) -> bytes:
    width, height = image.size
    if width > profile.max_width:
        height = max(1, round(height * profile.max_width / width))
        width = profile.max_width
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    if image.mode in ("RGBA", "LA", "P"):
        # прозрачность заливается белым, как на canvas
        background = Image.new("RGB", image.size, (255, 255, 255))
        rgba = image.convert("RGBA")
        background.paste(rgba, mask=rgba.split()[-1])
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=int(profile.quality * 100), optimize=True)
    return buf.getvalue()


def compress_image(content: bytes, device_class: DeviceClass, mime: str = "image/jpeg") -> str:
    """Вернуть data URI JPEG не больше профильной ширины.

    Ошибки декодирования не пробрасываются: возвращается исходный файл как data URI.
    """
    profile = choose_profile(device_class, len(content))
    try:
        with Image.open(io.BytesIO(content)) as opened:
            image = ImageOps.exif_transpose(opened)
            image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        logger.warning("Could not decode image (%d bytes), sending original", len(content))
        return _data_uri(content, mime)

    if (
        device_class is DeviceClass.DESKTOP
        and image.width <= profile.max_width
        and len(content) < SMALL_FILE_BYTES
    ):
        logger.debug("Image is already small enough, skipping compression")
        return _data_uri(content, mime)

    try:
        encoded = _encode_jpeg(image, profile)
        if device_class.is_mobile and len(encoded) > MOBILE_SECOND_PASS_BYTES:
            logger.info("Compressed image still %d bytes, running second pass", len(encoded))
            encoded = _encode_jpeg(image, SECOND_PASS_PROFILE)
    except (OSError, ValueError):
        logger.exception("JPEG encoding failed, sending original")
        return _data_uri(content, mime)

    logger.info(
        "Compressed %d -> %d bytes (width<=%d, quality %.2f)",
        len(content),
        len(encoded),
        profile.max_width,
        profile.quality,
    )
    return _data_uri(encoded)


def load_image_file(path: str | Path) -> tuple[bytes, str]:
    path = Path(path).expanduser()
    mime = mimetypes.guess_type(str(path))[0] or "image/jpeg"
    return path.read_bytes(), mime
