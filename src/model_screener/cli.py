"""Command line front end: patch model.json files and classify images."""

import argparse
import asyncio
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from model_screener.config import DEFAULT, ScreenerConfig
from model_screener.loader import ModelLoader, ModelRuntime
from model_screener.preprocessing import guess_mime_type
from model_screener.session import ScreenerSession
from model_screener.topology.constants import MODEL_TOPOLOGY_KEY
from model_screener.topology_patcher import needs_patch, patch_topology

logger = logging.getLogger(__name__)


def load_runtime(runtime_path: str) -> ModelRuntime:
    """
    Build a runtime from ``module:attr``.

    ``attr`` may be a runtime object or a zero-argument factory (such as a class).
    """
    module_name, sep, attr = runtime_path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Runtime must be given as module:attr, got {runtime_path!r}")

    target = getattr(importlib.import_module(module_name), attr)
    if isinstance(target, type) or (callable(target) and not hasattr(target, "load_from_artifacts")):
        target = target()
    if not hasattr(target, "load_from_artifacts"):
        raise ValueError(f"{runtime_path} does not provide load_from_artifacts()")
    return target


def run_patch(args: argparse.Namespace) -> int:
    """Patch a model.json (or a bare topology document)."""
    source = Path(args.model_json)
    if not source.exists():
        print(f"File not found: {source}", file=sys.stderr)
        return 1
    try:
        document = json.loads(source.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, OSError, json.JSONDecodeError) as e:
        print(f"Error reading {source}: {e}", file=sys.stderr)
        return 1

    wrapped = isinstance(document, dict) and isinstance(document.get(MODEL_TOPOLOGY_KEY), dict)
    topology = document[MODEL_TOPOLOGY_KEY] if wrapped else document

    if args.check:
        outdated = needs_patch(topology)
        print(f"{source}: {'needs patching' if outdated else 'compatible'}")
        return 1 if outdated else 0

    patch_topology(topology, in_place=True)
    text = json.dumps(document, indent=args.indent)

    if args.output:
        Path(args.output).write_text(text + "\n")
        logger.info(f"Patched model written to {args.output}")
    else:
        print(text)
    return 0


def run_classify(args: argparse.Namespace) -> int:
    """Classify a single image with a selected model."""
    try:
        base = ScreenerConfig.from_file(args.config) if args.config else DEFAULT
        config = ScreenerConfig(
            image_size=args.image_size if args.image_size is not None else base.image_size,
            threshold=args.threshold if args.threshold is not None else base.threshold,
            render_delay=0.0,
            models=base.models,
        )
        runtime = load_runtime(args.runtime)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    image_path = Path(args.image)
    if not image_path.exists():
        print(f"Image not found: {image_path}", file=sys.stderr)
        return 1

    def notify(message: str) -> None:
        print(message, file=sys.stderr)

    session = ScreenerSession(ModelLoader(runtime), config=config, notify=notify)

    async def flow():
        if not await session.select_model(args.model):
            return None
        return await session.submit_image(image_path.read_bytes(), guess_mime_type(image_path) or "")

    try:
        result = asyncio.run(flow())
    finally:
        session.close()

    if result is None:
        return 1

    print("\n" + "=" * 60)
    print("CLASSIFICATION RESULT")
    print("=" * 60)
    print(f"Image:      {image_path}")
    print(f"Model:      {args.model}")
    print(f"Prediction: {result.label}")
    print(result.confidence_text)
    print("=" * 60)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="model-screener",
        description="Screen images for AI generation with layers-model classifiers",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    patch_parser = subparsers.add_parser("patch", help="Make a newer-exporter model.json loadable")
    patch_parser.add_argument("model_json", type=str, help="Path to model.json")
    patch_parser.add_argument("-o", "--output", type=str, default=None, help="Output path (default: stdout)")
    patch_parser.add_argument("--check", action="store_true", help="Only report whether patching is needed")
    patch_parser.add_argument("--indent", type=int, default=None, help="JSON indentation")
    patch_parser.set_defaults(func=run_patch)

    classify_parser = subparsers.add_parser("classify", help="Classify an image")
    classify_parser.add_argument("image", type=str, help="Path to image file")
    classify_parser.add_argument("--model", type=str, required=True, help="Model name from the config, or model.json path/URL")
    classify_parser.add_argument("--runtime", type=str, required=True, help="Inference runtime as module:attr")
    classify_parser.add_argument("--config", type=str, default=None, help="JSON config file")
    classify_parser.add_argument("--threshold", type=float, default=None, help="Decision threshold (default: from config)")
    classify_parser.add_argument("--image-size", type=int, default=None, help="Model input size (default: from config)")
    classify_parser.set_defaults(func=run_classify)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
