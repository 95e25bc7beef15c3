"""Session settings: optional YAML file, then FUNNEL_* environment overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX = "FUNNEL_"


@dataclass
class FunnelConfig:
    schema: str | None = None  # path or URL of the funnel document
    results_delay: float = 0.8  # seconds the mock results provider waits
    seed: int | None = None  # RNG seed for "random" variant draws
    max_condition_depth: int = 32
    max_auto_steps: int = 100  # pass-through hops (router/flow_ref) per action
    log_level: str = "WARNING"


_CASTS = {
    "schema": str,
    "results_delay": float,
    "seed": int,
    "max_condition_depth": int,
    "max_auto_steps": int,
    "log_level": lambda v: str(v).upper(),
}


def _apply(config: FunnelConfig, values: Mapping[str, Any], source: str) -> None:
    known = {f.name for f in fields(FunnelConfig)}
    for key, raw in values.items():
        if key not in known:
            continue
        if raw is None or raw == "":
            # blank clears optional settings, keeps the default otherwise
            if key in ("schema", "seed"):
                setattr(config, key, None)
            continue
        try:
            setattr(config, key, _CASTS[key](raw))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid {key} in {source}: {raw!r} ({e})") from e


def load_config(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> FunnelConfig:
    """Build a FunnelConfig.

    Args:
        path: YAML settings file. Falls back to ``FUNNEL_CONFIG`` when omitted.
        env: Environment mapping (default: ``os.environ``).
    """
    env = os.environ if env is None else env
    config = FunnelConfig()

    settings_path = path or env.get(f"{ENV_PREFIX}CONFIG")
    if settings_path:
        raw = yaml.safe_load(Path(settings_path).read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid settings file {settings_path}: expected a mapping")
        _apply(config, raw, str(settings_path))

    overrides = {
        f.name: env[f"{ENV_PREFIX}{f.name.upper()}"]
        for f in fields(FunnelConfig)
        if f"{ENV_PREFIX}{f.name.upper()}" in env
    }
    _apply(config, overrides, "environment")
    return config
