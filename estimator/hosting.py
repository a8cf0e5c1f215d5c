"""Загрузка фото в S3-совместимое хранилище для получения постоянного публичного URL."""
from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import uuid
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from estimator.schemas import strip_data_uri

logger = logging.getLogger(__name__)


class ImageHostingError(Exception):
    pass


def build_s3_client(region: str | None = None, endpoint_url: str | None = None):
    kwargs: dict[str, Any] = {"service_name": "s3"}
    if region:
        kwargs["region_name"] = region
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.client(**kwargs)


class ImageHost:
    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        *,
        folder: str = "calorie-estimator",
        public_base_url: str | None = None,
    ):
        self.s3_client = s3_client
        self.bucket = bucket
        self.folder = folder.strip("/")
        self.public_base_url = (public_base_url or f"https://{bucket}.s3.amazonaws.com").rstrip("/")

    def _object_key(self) -> str:
        name = f"{uuid.uuid4().hex}.jpg"
        return f"{self.folder}/{name}" if self.folder else name

    def _upload_sync(self, content: bytes, key: str) -> None:
        self.s3_client.upload_fileobj(
            io.BytesIO(content),
            self.bucket,
            key,
            ExtraArgs={"ContentType": "image/jpeg"},
        )

    async def upload(self, image_base64: str) -> str:
        """Загрузить base64-изображение и вернуть его публичный URL."""
        try:
            content = base64.b64decode(strip_data_uri(image_base64), validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ImageHostingError(f"Image data is not valid base64: {exc}") from exc
        if not content:
            raise ImageHostingError("Image data is empty")

        key = self._object_key()
        try:
            await asyncio.to_thread(self._upload_sync, content, key)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("S3 upload failed for bucket %s", self.bucket)
            raise ImageHostingError(f"Storage upload error: {exc}") from exc

        url = f"{self.public_base_url}/{key}"
        logger.info("Uploaded image (%d bytes) to %s", len(content), url)
        return url
