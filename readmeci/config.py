"""Configuration loading for readmeci (.readmeci.yml)."""

from __future__ import annotations

from dataclasses import MISSING, Field, dataclass, field, fields
from pathlib import Path
import re
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .models import ReadmeCIError

CONFIG_FILENAME = ".readmeci.yml"

_CAMEL_PATTERN = re.compile(r"(?<!^)(?=[A-Z])")


class ConfigError(ReadmeCIError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ParserConfig:
    """Tunables for the analysis pipeline."""

    enable_caching: bool = True
    enable_performance_monitoring: bool = True
    confidence_threshold: float = 0.5
    max_contexts: int = 20
    enable_context_inheritance: bool = True
    pipeline_timeout: float = 30.0
    max_workers: int = 4
    enable_recovery: bool = False
    max_retries: int = 3
    enabled_analyzers: List[str] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list, compare=False)

    def __post_init__(self) -> None:
        # Directly constructed values go through the same checks as loaded ones.
        for item in fields(self):
            if item.name == "diagnostics":
                continue
            value = getattr(self, item.name)
            setattr(self, item.name, _default_of(item))
            self._apply(item.name, value)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ParserConfig":
        """Build a config from snake_case or camelCase keys.

        Values that are out of range are clamped, values of the wrong type are
        ignored; both leave a human readable note in ``diagnostics``.
        """
        config = cls()
        if not data:
            return config

        known = {item.name for item in fields(cls) if item.name != "diagnostics"}
        for raw_key, value in data.items():
            key = _normalise_key(str(raw_key))
            if key not in known:
                config.diagnostics.append(f"Unknown option '{raw_key}' ignored")
                continue
            config._apply(key, value)
        return config

    def _apply(self, key: str, value: Any) -> None:
        if key in {"enable_caching", "enable_performance_monitoring", "enable_context_inheritance", "enable_recovery"}:
            flag = _as_bool(value)
            if flag is None:
                self.diagnostics.append(f"'{key}' expects a boolean; keeping {getattr(self, key)}")
                return
            setattr(self, key, flag)
        elif key == "confidence_threshold":
            number = _as_float(value)
            if number is None:
                self.diagnostics.append("'confidence_threshold' expects a number; keeping default")
                return
            clamped = min(max(number, 0.0), 1.0)
            if clamped != number:
                self.diagnostics.append(
                    f"'confidence_threshold' {number} outside [0, 1]; clamped to {clamped}"
                )
            self.confidence_threshold = clamped
        elif key in {"max_contexts", "max_workers"}:
            number = _as_int(value)
            if number is None:
                self.diagnostics.append(f"'{key}' expects an integer; keeping {getattr(self, key)}")
                return
            if number < 1:
                self.diagnostics.append(f"'{key}' {number} below 1; clamped to 1")
                number = 1
            setattr(self, key, number)
        elif key == "max_retries":
            number = _as_int(value)
            if number is None:
                self.diagnostics.append(f"'max_retries' expects an integer; keeping {self.max_retries}")
                return
            if number < 0:
                self.diagnostics.append(f"'max_retries' {number} below 0; clamped to 0")
                number = 0
            self.max_retries = number
        elif key == "pipeline_timeout":
            number = _as_float(value)
            if number is None or number <= 0:
                self.diagnostics.append(
                    f"'pipeline_timeout' must be a positive number; keeping {self.pipeline_timeout}"
                )
                return
            self.pipeline_timeout = number
        elif key == "enabled_analyzers":
            if value is None:
                self.enabled_analyzers = []
                return
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, (list, tuple)):
                self.diagnostics.append("'enabled_analyzers' expects a list of names; ignored")
                return
            self.enabled_analyzers = [str(item).strip() for item in value if str(item).strip()]


def load_config(config_path: Path) -> ParserConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    if not config_file.exists():
        return ParserConfig()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    section = data.get("parser")
    if isinstance(section, dict):
        data = section
    return ParserConfig.from_mapping(data)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _normalise_key(key: str) -> str:
    return _CAMEL_PATTERN.sub("_", key.strip()).replace("-", "_").lower()


def _default_of(item: Field) -> Any:
    if item.default_factory is not MISSING:
        return item.default_factory()
    return item.default


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on", "1"}:
            return True
        if lowered in {"false", "no", "off", "0"}:
            return False
    if isinstance(value, int):
        return bool(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_dict(config: ParserConfig) -> Dict[str, Any]:
    return {item.name: getattr(config, item.name) for item in fields(config) if item.name != "diagnostics"}


__all__ = ["CONFIG_FILENAME", "ConfigError", "ParserConfig", "as_dict", "load_config"]
