"""Command line entry point."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .app import MODEL_ERROR_TEXT, ClassifierScreen, build_error_demo, build_session, format_prediction
from .config import AppConfig, apply_env, load_config
from .fetch import FetchError
from .models import ModelType


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="random-image-classifier",
        description="Fetch a random image and classify it with a TFLite model.",
    )
    parser.add_argument("--config", help="Path to a YAML configuration file.")
    parser.add_argument(
        "--model",
        choices=[m.value for m in ModelType],
        help="Model variant to load (overrides the config file).",
    )
    parser.add_argument("--share", action="store_true", help="Create a public Gradio link.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Classify a single image without starting the UI and print the result.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config) if args.config else AppConfig()
    config = apply_env(config)
    if args.model:
        config.model = ModelType.from_name(args.model)
    if args.share:
        config.share = True
    return config


def cli(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = _resolve_config(args)
    session = build_session(config)

    if args.once:
        if session is None:
            print(MODEL_ERROR_TEXT, file=sys.stderr)
            return 1
        try:
            outcome = session.run_once()
        except FetchError as e:
            print(f"Fetch error: {e}", file=sys.stderr)
            return 1
        finally:
            session.close()
        if outcome is None:
            return 1
        print(format_prediction(outcome.prediction))
        return 0

    demo = build_error_demo() if session is None else ClassifierScreen(session).build_demo()
    launch_kwargs = {"share": config.share}
    if config.server_name:
        launch_kwargs["server_name"] = config.server_name
    if config.server_port:
        launch_kwargs["server_port"] = config.server_port
    demo.launch(**launch_kwargs)
    return 0


if __name__ == "__main__":
    sys.exit(cli())
