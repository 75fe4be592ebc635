from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from keytutor.core.accuracy import DEFAULT_HISTORY_LIMIT
from keytutor.core.backspace import BackspaceLimits
from keytutor.core.completion import CompletionCriteria

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    target_text: str
    case_sensitive: bool = False
    allow_backspace: bool = True
    auto_advance_on_error: bool = True
    completion_criteria: CompletionCriteria = field(default_factory=CompletionCriteria)
    backspace: BackspaceLimits = field(default_factory=BackspaceLimits)
    time_limit_ms: Optional[int] = None
    history_limit: int = DEFAULT_HISTORY_LIMIT

    def __post_init__(self) -> None:
        if not isinstance(self.target_text, str) or not self.target_text:
            raise ValueError("target_text must be a non-empty string")
        if self.time_limit_ms is not None and self.time_limit_ms <= 0:
            raise ValueError(f"time_limit_ms must be positive, got {self.time_limit_ms}")
        if self.history_limit <= 0:
            raise ValueError(f"history_limit must be positive, got {self.history_limit}")


_BOOL_KEYS = ("case_sensitive", "allow_backspace", "auto_advance_on_error")


def _section(raw: Mapping[str, Any], key: str, source: str) -> Dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{source}: '{key}' must be a mapping")
    return value


def _build(cls, values: Dict[str, Any], source: str, section: str):
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning("%s: ignoring unknown %s keys: %s", source, section, ", ".join(unknown))
    try:
        return cls(**{k: v for k, v in values.items() if k in known})
    except (TypeError, ValueError) as e:
        raise ValueError(f"{source}: invalid '{section}': {e}") from e


def config_from_mapping(raw: Any, source: str = "<config>") -> SessionConfig:
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"{source}: expected a mapping with 'target_text'")
    text = raw.get("target_text")
    if not text or not isinstance(text, str):
        raise ValueError(f"{source}: missing or invalid 'target_text'")
    for key in _BOOL_KEYS:
        if key in raw and not isinstance(raw[key], bool):
            raise ValueError(f"{source}: '{key}' must be true or false")

    criteria = _build(CompletionCriteria, _section(raw, "completion_criteria", source), source, "completion_criteria")
    limits = _build(BackspaceLimits, _section(raw, "backspace", source), source, "backspace")

    options = {key: raw[key] for key in _BOOL_KEYS if key in raw}
    for key in ("time_limit_ms", "history_limit"):
        if raw.get(key) is None:
            continue
        try:
            options[key] = int(raw[key])
        except (TypeError, ValueError) as e:
            raise ValueError(f"{source}: '{key}' must be an integer") from e
    try:
        return SessionConfig(target_text=text, completion_criteria=criteria, backspace=limits, **options)
    except ValueError as e:
        raise ValueError(f"{source}: {e}") from e


def load_config(path: Path) -> SessionConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Exercise config not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"{path.name}: invalid YAML: {e}") from e
    return config_from_mapping(raw, path.name)
