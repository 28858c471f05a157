# capacity_scheduler/settings.py
"""Tunable thresholds and heuristic weights for one scheduling run.

The weights reproduce the numbers the household dashboard has always used.
They were picked by hand, so they live here rather than inline in the
placement passes and can be overridden from a YAML file.
"""
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import SettingsError

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "CAPACITY_SCHEDULER_SETTINGS"


@dataclass(frozen=True)
class ScoringWeights:
    # Placement engine (lower score wins)
    weekday_step: float = 10.0
    quick_item_penalty: float = 5.0
    flexible_slot_bonus: float = 2.0

    # Quick-win strategist (higher confidence wins)
    base_confidence: float = 50.0
    long_task_break: float = 25.0
    gap_fill: float = 30.0
    momentum: float = 20.0
    subject_diversity: float = 15.0
    early_week: float = 10.0


@dataclass(frozen=True)
class EngineSettings:
    quick_win_max_minutes: int = 20
    long_task_minutes: int = 45
    gap_tolerance_minutes: int = 10
    momentum_max_minutes: int = 15
    early_week_days: Tuple[str, ...] = ("Monday", "Tuesday", "Wednesday")
    default_duration_minutes: int = 30
    critical_within_days: int = 1
    important_within_days: int = 7
    points_bump_threshold: int = 100
    quick_win_pass: bool = True
    weights: ScoringWeights = field(default_factory=ScoringWeights)


def _coerce(name: str, current: Any, value: Any) -> Any:
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        raise SettingsError(f"{name} must be true/false, got {value!r}")
    if isinstance(current, tuple):
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (list, tuple)):
            return tuple(str(v) for v in value)
        raise SettingsError(f"{name} must be a list, got {value!r}")
    if isinstance(current, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SettingsError(f"{name} must be numeric, got {value!r}")
        return type(current)(value)
    return value


def _apply(obj: Any, overrides: Mapping[str, Any], section: str) -> Any:
    known = {f.name: f for f in fields(obj)}
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("Ignoring unknown %s setting %r", section, key)
            continue
        changes[key] = _coerce(f"{section}.{key}", getattr(obj, key), value)
    return replace(obj, **changes)


def settings_from_mapping(data: Optional[Mapping[str, Any]]) -> EngineSettings:
    """Build settings from a plain mapping (top-level keys plus ``weights``)."""
    if data is None:
        return EngineSettings()
    if not isinstance(data, Mapping):
        raise SettingsError("settings document must be a mapping")

    data = dict(data)
    weight_overrides = data.pop("weights", None) or {}
    if not isinstance(weight_overrides, Mapping):
        raise SettingsError("'weights' must be a mapping")

    settings = _apply(EngineSettings(), data, "engine")
    weights = _apply(settings.weights, weight_overrides, "weights")
    return replace(settings, weights=weights)


def load_settings(path: Optional[str] = None) -> EngineSettings:
    """Read settings from YAML; falls back to $CAPACITY_SCHEDULER_SETTINGS, then defaults."""
    path = path or os.environ.get(SETTINGS_ENV_VAR)
    if not path:
        return EngineSettings()

    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise SettingsError(f"cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SettingsError(f"invalid YAML in {path}: {exc}") from exc

    logger.info("Loaded scheduler settings from %s", path)
    return settings_from_mapping(data)
