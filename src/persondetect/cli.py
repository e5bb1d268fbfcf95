"""Command-line entry point: summarize a single image file."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from persondetect.config import LOG_FORMAT, get_settings
from persondetect.runtime import load_runtime
from persondetect.view_model import DetectionViewModel, ViewState


async def summarize(image_path: Path) -> DetectionViewModel:
    settings = get_settings()
    runtime = load_runtime(settings)
    try:
        view_model = DetectionViewModel(runtime.predictor, settings.target_label)
        view_model.picked(image_path.read_bytes())
        await view_model.wait()
        return view_model
    finally:
        runtime.shutdown()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check whether exactly one person is in a photo.")
    parser.add_argument("image", type=Path, help="Path to an image file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log model loading and inference.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format=LOG_FORMAT)

    if not args.image.is_file():
        parser.error(f"no such file: {args.image}")

    view_model = asyncio.run(summarize(args.image))
    if view_model.state is ViewState.FAILED:
        print(f"FAILED: {view_model.error}", file=sys.stderr)
        return 1

    print(view_model.result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
