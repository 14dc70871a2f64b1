"""
Config system - Layered hub configuration with validation.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import dotenv_values

from .errors import ConfigError

logger = logging.getLogger("exporthub.config")


class DuplicatePolicy(str, Enum):
    """What ``add_export`` does with an instance that is already exported."""

    ALLOW = "allow"      # Warn, add a second record
    IGNORE = "ignore"    # Warn, keep the existing record(s)
    REPLACE = "replace"  # Warn, remove old record(s) then add at the end
    RAISE = "raise"      # Raise DuplicateExportError


_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class HubConfig:
    """Settings for an :class:`~exporthub.core.Injector`."""

    duplicate_policy: DuplicatePolicy = DuplicatePolicy.ALLOW
    warn_on_ambiguous: bool = True
    resource_paths: List[str] = field(default_factory=lambda: ["resources"])
    auto_bootstrap: bool = True
    log_level: str = "WARNING"

    def __post_init__(self):
        errors = []

        try:
            self.duplicate_policy = DuplicatePolicy(self.duplicate_policy)
        except ValueError:
            allowed = ", ".join(p.value for p in DuplicatePolicy)
            errors.append(f"duplicate_policy must be one of {allowed}, got {self.duplicate_policy!r}")

        if isinstance(self.resource_paths, str):
            self.resource_paths = [p for p in self.resource_paths.split(os.pathsep) if p]
        if not isinstance(self.resource_paths, list):
            errors.append(f"resource_paths must be a list, got {type(self.resource_paths).__name__}")

        for name in ("warn_on_ambiguous", "auto_bootstrap"):
            if not isinstance(getattr(self, name), bool):
                errors.append(f"{name} must be a boolean, got {getattr(self, name)!r}")

        level = str(self.log_level).upper()
        if level not in _LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}")
        self.log_level = level

        if errors:
            raise ConfigError(errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duplicate_policy": self.duplicate_policy.value,
            "warn_on_ambiguous": self.warn_on_ambiguous,
            "resource_paths": list(self.resource_paths),
            "auto_bootstrap": self.auto_bootstrap,
            "log_level": self.log_level,
        }


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config file > defaults
    """

    def __init__(self, env_prefix: str = "EXPORTHUB_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_file: Optional[str] = None,
        env_prefix: str = "EXPORTHUB_",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> HubConfig:
        """
        Load configuration from multiple sources.

        Args:
            path: Optional YAML or JSON config file
            env_file: Optional .env file
            env_prefix: Prefix for environment variables
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated HubConfig
        """
        loader = cls(env_prefix=env_prefix)

        if path:
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader.config_data.update(overrides)

        return loader.build()

    def build(self) -> HubConfig:
        known = {f.name for f in fields(HubConfig)}
        unknown = sorted(set(self.config_data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return HubConfig(**{k: v for k, v in self.config_data.items() if k in known})

    def _load_file(self, path: Path) -> None:
        """Load config from a YAML or JSON file."""
        if not path.exists():
            raise ConfigError([f"config file not found: {path}"], source=str(path))

        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(["top-level value must be a mapping"], source=str(path))

        # Allow a nested "exporthub:" section
        section = data.get("exporthub", data)
        self.config_data.update(section)

    def _load_env_file(self, path: str) -> None:
        """Load config from .env file."""
        if not Path(path).exists():
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_value(key, value)

    def _load_from_env(self) -> None:
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_value(key, value)

    def _set_value(self, key: str, value: str) -> None:
        """EXPORTHUB_DUPLICATE_POLICY=ignore -> duplicate_policy."""
        name = key[len(self.env_prefix):].lower()
        if name == "resource_paths":
            self.config_data[name] = [p for p in value.split(os.pathsep) if p]
        else:
            self.config_data[name] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes", "1"):
            return True
        if value.lower() in ("false", "no", "0"):
            return False

        # JSON
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value


def configure_logging(level: str = "WARNING") -> None:
    """Attach a stream handler to the ``exporthub`` logger (CLI use)."""
    hub_logger = logging.getLogger("exporthub")
    hub_logger.setLevel(getattr(logging, level.upper()))
    if not any(getattr(h, "_exporthub", False) for h in hub_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handler._exporthub = True  # type: ignore[attr-defined]
        hub_logger.addHandler(handler)
