"""CLI клиента: сжать фото, отправить на сервер по цепочке эндпоинтов, вывести результат.

Использование:
    python -m client photo.jpg
    python -m client photo.jpg --device mobile
    python -m client photo.jpg --user-agent "Mozilla/5.0 (iPhone; ...)" --base-url http://localhost:8000/api
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from client.api import EstimationClient
from client.compression import compress_image, load_image_file
from client.config import load_client_config
from client.device import DeviceClass, detect_device_class
from client.render import render_estimation
from client.session import EstimationSession


async def _run(path: str, device_class: DeviceClass, base_url: str | None) -> int:
    config = load_client_config(device_class)
    if base_url:
        config = replace(config, base_url=base_url.rstrip("/"))

    try:
        content, mime = load_image_file(path)
    except OSError as exc:
        print(f"Could not read {path}: {exc}", file=sys.stderr)
        return 1
    image = compress_image(content, device_class, mime)

    async with EstimationClient(config) as client:
        session = EstimationSession(client)
        result = await session.submit(image)
    if result is None:
        print(session.error, file=sys.stderr)
        return 2
    print(render_estimation(result))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Estimate calories of a food photo via the API server")
    parser.add_argument("image", help="Path to the photo")
    parser.add_argument(
        "--device",
        choices=[d.value for d in DeviceClass],
        default=None,
        help="Device class for compression and endpoint order",
    )
    parser.add_argument("--user-agent", default=None, help="Detect the device class from a User-Agent")
    parser.add_argument("--base-url", default=None, help="API base URL (defaults to PUBLIC_API_URL)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    device_class = DeviceClass(args.device) if args.device else detect_device_class(args.user_agent)
    sys.exit(asyncio.run(_run(args.image, device_class, args.base_url)))


if __name__ == "__main__":
    main()
