"""Application configuration: YAML file plus environment overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Mapping, Optional

import yaml

from .fetch import DEFAULT_IMAGE_URL
from .models import DEFAULT_MODEL, ModelType

ENV_PREFIX = "RIC_"


@dataclass
class AppConfig:
    """Settings for the classifier screen."""

    model: ModelType = DEFAULT_MODEL
    assets_dir: Path = Path("assets")
    image_url: str = DEFAULT_IMAGE_URL
    labels_path: Optional[Path] = None
    fetch_timeout: Optional[float] = None
    share: bool = False
    server_name: Optional[str] = None
    server_port: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.model, str):
            self.model = ModelType.from_name(self.model)
        self.assets_dir = Path(self.assets_dir)
        if self.labels_path is not None:
            self.labels_path = Path(self.labels_path)


def _optional_str(data: Mapping[str, object], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise TypeError(f"`{key}` must be a non-empty string.")
    return value


def _optional_number(data: Mapping[str, object], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"`{key}` must be a numeric value.")
    if value <= 0:
        raise ValueError(f"`{key}` must be greater than zero.")
    return float(value)


def load_config(path: str) -> AppConfig:
    """Load and validate an :class:`AppConfig` from ``path``."""

    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping of options.")

    known = {
        "model", "assets_dir", "image_url", "labels_path",
        "fetch_timeout", "share", "server_name", "server_port",
    }
    unknown = set(data).difference(known)
    if unknown:
        raise KeyError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    config = AppConfig()

    model = _optional_str(data, "model")
    if model is not None:
        config.model = ModelType.from_name(model)

    assets_dir = _optional_str(data, "assets_dir")
    if assets_dir is not None:
        # relative paths resolve against the config file
        config.assets_dir = config_path.parent / assets_dir

    image_url = _optional_str(data, "image_url")
    if image_url is not None:
        config.image_url = image_url

    labels_path = _optional_str(data, "labels_path")
    if labels_path is not None:
        config.labels_path = config_path.parent / labels_path

    config.fetch_timeout = _optional_number(data, "fetch_timeout")
    share = data.get("share", False)
    if not isinstance(share, bool):
        raise TypeError("`share` must be true or false.")
    config.share = share
    config.server_name = _optional_str(data, "server_name")

    port = data.get("server_port")
    if port is not None:
        if isinstance(port, bool) or not isinstance(port, int):
            raise TypeError("`server_port` must be an integer.")
        config.server_port = port

    return config


def apply_env(config: AppConfig, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Return a copy of ``config`` with ``RIC_*`` environment overrides applied."""
    env = os.environ if environ is None else environ
    changes: dict = {}
    if env.get(ENV_PREFIX + "MODEL"):
        changes["model"] = ModelType.from_name(env[ENV_PREFIX + "MODEL"])
    if env.get(ENV_PREFIX + "ASSETS_DIR"):
        changes["assets_dir"] = Path(env[ENV_PREFIX + "ASSETS_DIR"])
    if env.get(ENV_PREFIX + "IMAGE_URL"):
        changes["image_url"] = env[ENV_PREFIX + "IMAGE_URL"]
    if env.get(ENV_PREFIX + "LABELS_PATH"):
        changes["labels_path"] = Path(env[ENV_PREFIX + "LABELS_PATH"])
    return replace(config, **changes)


def load_labels(path: Optional[Path]) -> Optional[List[str]]:
    """One label per line, blank lines skipped. ``None`` if there is no file."""
    if path is None or not path.is_file():
        return None
    labels = [line.strip() for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
    return labels or None
