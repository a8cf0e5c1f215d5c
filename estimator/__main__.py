"""CLI для оценки калорий по фото напрямую через OpenAI, без сервера.

Использование:
    python -m estimator photo.jpg
    python -m estimator photo.jpg --model gpt-4o-mini
    python -m estimator https://example.com/food.jpg
    python -m estimator --text "two fried eggs and a toast"
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import mimetypes
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from openai import AsyncOpenAI

from estimator.core import VisionAnalysisError, analyze_food_image, estimate_from_text


def to_image_url(source: str) -> str:
    """Превратить локальный путь или URL в image_url для API."""
    if source.startswith(("http://", "https://", "data:")):
        return source
    path = Path(source).expanduser()
    if not path.exists():
        raise FileNotFoundError(path)
    mime = mimetypes.guess_type(str(path))[0] or "image/jpeg"
    b64 = base64.b64encode(path.read_bytes()).decode()
    return f"data:{mime};base64,{b64}"


async def _run(source: str | None, text: str | None, model: str) -> int:
    load_dotenv()
    api_key = os.getenv("OPENAI_API_KEY", "")
    base_url = os.getenv("OPENAI_BASE_URL", "").strip() or os.getenv("BASE_URL", "").strip() or None
    if not api_key:
        print("OPENAI_API_KEY is not set", file=sys.stderr)
        return 1

    client = AsyncOpenAI(api_key=api_key, base_url=base_url)
    try:
        if text:
            result = await estimate_from_text(client, model, text)
        else:
            result = await analyze_food_image(client, model, to_image_url(source or ""))
    except FileNotFoundError as exc:
        print(f"File not found: {exc}", file=sys.stderr)
        return 1
    except VisionAnalysisError as exc:
        print(f"Analysis failed: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Estimate calories of a food photo")
    parser.add_argument("image", nargs="?", help="Path to an image file or an image URL")
    parser.add_argument("--text", default=None, help="Describe the meal instead of sending a photo")
    parser.add_argument(
        "--model",
        default=None,
        help="Model name (defaults to OPENAI_MODEL_VISION or gpt-4o)",
    )
    args = parser.parse_args()
    if not args.image and not args.text:
        parser.error("either an image or --text is required")

    if args.model is None:
        load_dotenv()
        args.model = os.getenv("OPENAI_MODEL_VISION", "gpt-4o")

    sys.exit(asyncio.run(_run(args.image, args.text, args.model)))


if __name__ == "__main__":
    main()
