"""Configuration loader and validator."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import json
import logging
import os

import yaml

from cors_diagnoser.core.models import CorsConfiguration
from cors_diagnoser.core.security import ENVIRONMENTS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "cors-diagnoser.yaml"

CONFIG_TEMPLATE = '''# CORS Diagnoser Configuration
environment: "production"  # production, development

middleware:
  verbose: false
  enable_history: true
  max_history_size: 100
  security_checks: true  # false hides info-level findings

probe:
  origin: "http://localhost:3000"
  method: "GET"
  timeout: 10

# The policy your API is supposed to apply, used by `compare`
expected:
  origin:
    - "http://localhost:3000"
  methods: ["GET", "POST"]
  allowed_headers: ["Content-Type", "Authorization"]
  credentials: true
  max_age: 600
'''


@dataclass
class MiddlewareOptions:
    verbose: bool = False
    enable_history: bool = True
    max_history_size: int = 100
    security_checks: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MiddlewareOptions":
        """Build options from a mapping; camelCase keys are accepted.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        data = dict(data or {})
        aliases = {
            "enableHistory": "enable_history",
            "maxHistorySize": "max_history_size",
            "securityChecks": "security_checks",
        }
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ValueError(f"Unknown middleware option: {key}")
            values[name] = value

        for name in ("verbose", "enable_history", "security_checks"):
            if name in values and not isinstance(values[name], bool):
                raise ValueError(f"middleware.{name} must be a boolean")

        size = values.get("max_history_size", 100)
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise ValueError("middleware.max_history_size must be a positive integer")

        return cls(**values)


class Config:
    """Load and validate cors-diagnoser.yaml configuration."""

    def __init__(self, config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> None:
        """Initialize config loader.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """Load and validate configuration.

        Returns:
            Validated configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}\n"
                "Run 'cors-diagnoser init' to create one."
            )

        with open(self.config_path, encoding="utf-8") as f:
            self._config = yaml.safe_load(f)

        if self._config is None:
            self._config = {}

        if not isinstance(self._config, dict):
            raise ValueError("Configuration root must be a mapping/object")

        self._expand_env_vars(self._config)
        self._validate()

        logger.debug("Loaded configuration from %s", self.config_path)
        return self._config

    def _expand_env_vars(self, obj: Any) -> None:
        """Recursively expand ${VAR} environment variables."""
        if isinstance(obj, dict):
            for key, value in obj.items():
                if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                    obj[key] = os.environ.get(value[2:-1], "")
                elif isinstance(value, (dict, list)):
                    self._expand_env_vars(value)
        elif isinstance(obj, list):
            for index, item in enumerate(obj):
                if isinstance(item, str) and item.startswith("${") and item.endswith("}"):
                    obj[index] = os.environ.get(item[2:-1], "")
                else:
                    self._expand_env_vars(item)

    def _validate(self) -> None:
        """Validate configuration."""
        environment = self._config.get("environment", "production")
        if environment not in ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of {', '.join(ENVIRONMENTS)}, got '{environment}'"
            )

        for section in ("middleware", "probe", "expected"):
            value = self._config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ValueError(f"{section} must be a mapping/object")

        MiddlewareOptions.from_dict(self._config.get("middleware"))

        probe = self.probe
        if "timeout" in probe:
            timeout = probe["timeout"]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ValueError("probe.timeout must be a positive number")

        if self._config.get("expected") is not None:
            CorsConfiguration.from_dict(self._config["expected"])

    @property
    def environment(self) -> str:
        return self._config.get("environment", "production")

    @property
    def middleware(self) -> MiddlewareOptions:
        """Get middleware options."""
        return MiddlewareOptions.from_dict(self._config.get("middleware"))

    @property
    def probe(self) -> Dict[str, Any]:
        """Get probe configuration."""
        return self._config.get("probe") or {}

    @property
    def expected(self) -> Optional[CorsConfiguration]:
        """Get the expected CORS policy, if one is configured."""
        expected = self._config.get("expected")
        if expected is None:
            return None
        return CorsConfiguration.from_dict(expected)


def load_cors_configuration(path: Union[str, Path]) -> CorsConfiguration:
    """Read a CorsConfiguration from a YAML or JSON file.

    The policy may sit at the document root or under a ``cors`` key.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't a valid CORS configuration
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CORS configuration file not found: {path}")

    with open(path, encoding="utf-8") as f:
        text = f.read()

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Could not parse {path}: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("cors"), dict):
        data = data["cors"]
    if data is None:
        data = {}
    return CorsConfiguration.from_dict(data)
