"""
Runtime configuration.

Settings are resolved in three layers, later ones winning:

    defaults  -->  YAML file (optional)  -->  CALLIGIF_* environment

The YAML file is a flat mapping of ``PipelineConfig`` field names.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from calligif.assembly import WebpConfig
from calligif.exceptions import ConfigError, RequestError

logger = logging.getLogger(__name__)

# The service rejects anything larger before it reaches the pipeline.
MAX_CANVAS_SIZE = 4096

_ENV_VARS = {
    "CALLIGIF_FRAMES_ROOT": "frames_root",
    "CALLIGIF_FRAME_DELAY_MS": "frame_delay_ms",
    "CALLIGIF_FETCH_WORKERS": "fetch_workers",
}


@dataclass(frozen=True)
class PipelineConfig:
    """Full configuration for a rendering run."""
    frame_delay_ms: int = 33          # ~30 fps
    max_canvas_size: int = MAX_CANVAS_SIZE
    fetch_workers: int = 0            # 0 = auto
    frames_root: Path | None = None   # directory source root
    webp_quality: int = 80
    webp_lossless: bool = False
    webp_method: int = 4
    loop_count: int = 0               # 0 = infinite

    def webp(self) -> WebpConfig:
        return WebpConfig(
            quality=self.webp_quality,
            lossless=self.webp_lossless,
            loop_count=self.loop_count,
            method=self.webp_method,
        )


_FIELDS = frozenset(f.name for f in dataclasses.fields(PipelineConfig))


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name == "frames_root":
        return Path(value)
    if name == "webp_lossless":
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _apply(config: PipelineConfig, values: Mapping[str, Any], origin: str) -> PipelineConfig:
    unknown = sorted(set(values) - _FIELDS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys in {origin}: {', '.join(unknown)}")
    changes = {k: _coerce(k, v) for k, v in values.items()}
    return dataclasses.replace(config, **changes)


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML configuration file into a plain mapping."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Path | str | None = None,
                environ: Mapping[str, str] | None = None) -> PipelineConfig:
    """Resolve configuration from defaults, an optional file and the environment."""
    environ = os.environ if environ is None else environ
    config = PipelineConfig()
    if path is not None:
        config = _apply(config, read_config_file(Path(path)), str(path))
    env_values = {field: environ[var] for var, field in _ENV_VARS.items() if var in environ}
    if env_values:
        config = _apply(config, env_values, "environment")
    if config.frame_delay_ms < 0:
        raise ConfigError("frame_delay_ms must not be negative")
    logger.debug("Resolved config: %s", config)
    return config


def validate_canvas_size(width: int, height: int, limit: int = MAX_CANVAS_SIZE) -> None:
    """Reject canvases that are non-positive or exceed *limit* on a side."""
    if width <= 0 or height <= 0:
        raise RequestError(f"Canvas size must be positive, got {width}x{height}")
    if width > limit or height > limit:
        raise RequestError(f"Canvas {width}x{height} exceeds the {limit}x{limit} limit")
