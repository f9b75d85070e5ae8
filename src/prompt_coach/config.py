# ABOUTME: Declares tunable engine constants and loads them from YAML configs.
# ABOUTME: Mirrors the trainer configs: one dataclass filled from a config section.

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml


@dataclass(frozen=True)
class EngineConfig:
    """Configuration values shared by the scorer, store and guidance engine."""

    mastery_threshold: float = 80.0
    smoothing_factor: float = 0.3
    trend_window: int = 10
    skill_improved_threshold: float = 5.0
    initial_skill_level: float = 50.0
    template_completion_stages: int = 3
    performance_window: int = 5
    min_data_points: int = 3
    max_suggestions: int = 5
    vocabulary_path: Optional[Path] = None
    achievements_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not 0.0 < self.smoothing_factor < 1.0:
            raise ValueError("smoothing_factor must be strictly between 0 and 1.")
        if self.trend_window < 1:
            raise ValueError("trend_window must be at least 1.")
        if self.performance_window < 2:
            raise ValueError("performance_window must be at least 2.")
        if not 0.0 <= self.initial_skill_level <= 100.0:
            raise ValueError("initial_skill_level must be within [0, 100].")


def load_engine_config(config_path: Path) -> EngineConfig:
    """Read the ``engine`` section of a YAML file into an EngineConfig."""

    with open(config_path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    engine_cfg = dict(cfg.get("engine", {}))
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(engine_cfg) - known)
    if unknown:
        raise ValueError(f"Unknown engine settings in {config_path}: {', '.join(unknown)}")

    # Relative data paths resolve against the config file's directory.
    for key in ("vocabulary_path", "achievements_path"):
        if engine_cfg.get(key):
            path = Path(engine_cfg[key])
            engine_cfg[key] = path if path.is_absolute() else Path(config_path).parent / path
    return EngineConfig(**engine_cfg)
