# config/config_loader.py

import logging
import os
from pathlib import Path
from typing import Any, ClassVar

import yaml

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Sections whose leaf values must be positive integers (seconds or counts)
NUMERIC_SECTIONS = ("cache", "rate_limits", "verification.timeout_seconds", "imports.timeout_seconds")


def _get_project_root() -> Path:
    """config/config_loader.py -> project root."""
    return Path(__file__).resolve().parent.parent


class ConfigLoader:
    """
    Process-wide view of ``config/config.yaml``.

    The file is read once; later calls return the cached mapping. Secrets are
    never read from here, they come from the environment.

    Observability:
        - Logs INFO on successful config load with path
        - Logs WARNING on missing config file or dropped values (degraded mode)
        - Logs ERROR on YAML parse errors
        - Tracks config_status for the health endpoint
    """

    _config: ClassVar[dict[str, Any]] = {}
    _config_status: ClassVar[str] = "not_loaded"  # "ok", "degraded", "error"
    _config_path: ClassVar[str | None] = None

    @classmethod
    def load_config(cls, config_path: str | None = None) -> dict[str, Any]:
        """Load the listing configuration if not already loaded.

        Args:
            config_path: Path to the YAML file. Falls back to ``CONFIG_PATH``
                and then to project_root/config/config.yaml.

        Returns:
            The loaded mapping, empty when the file is missing or invalid.
        """
        if cls._config_status != "not_loaded":
            return cls._config

        config_path = cls._resolve_path(config_path)
        cls._config_path = config_path

        try:
            with Path(config_path).open(encoding="utf-8") as file:
                loaded = yaml.safe_load(file) or {}
        except FileNotFoundError:
            logging.warning(
                "Listing config not found at %s; running on built-in defaults",
                config_path,
            )
            cls._set({}, "degraded")
            return cls._config
        except yaml.YAMLError as e:
            logging.exception("Error parsing listing config at %s: %s", config_path, e)
            cls._set({}, "error")
            return cls._config

        if not isinstance(loaded, dict):
            logging.warning("Listing config at %s is not a mapping; ignoring it", config_path)
            cls._set({}, "degraded")
            return cls._config

        cls._set(loaded, "ok")
        cls._validate_logging_level()
        cls._drop_invalid_numbers()
        logging.info("Listing config loaded from %s", config_path)
        return cls._config

    @classmethod
    def _resolve_path(cls, config_path: str | None) -> str:
        if config_path is not None:
            return config_path
        env_path = os.environ.get("CONFIG_PATH")
        if env_path:
            logging.info("Config path overridden via CONFIG_PATH env: %s", env_path)
            return env_path
        return str(_get_project_root() / "config" / "config.yaml")

    @classmethod
    def _set(cls, config: dict[str, Any], status: str) -> None:
        cls._config = config
        cls._config_status = status

    @classmethod
    def get_config_status(cls) -> dict[str, Any]:
        """Return config health status for the health endpoint."""
        return {
            "config_status": cls._config_status,
            "config_path": cls._config_path,
            "config_loaded": bool(cls._config),
        }

    @classmethod
    def _validate_logging_level(cls) -> None:
        logging_cfg = cls._config.get("logging")
        if not isinstance(logging_cfg, dict):
            logging_cfg = cls._config["logging"] = {}
        level = str(logging_cfg.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            logging.warning("Invalid logging level '%s' in config. Defaulting to 'INFO'.", level)
            level = "INFO"
        logging_cfg["level"] = level

    @classmethod
    def _drop_invalid_numbers(cls) -> None:
        """Remove cache/limit/timeout values that are not positive integers.

        Callers then fall back to their code defaults for the dropped keys.
        """
        for dotted_key in NUMERIC_SECTIONS:
            parent_key, _, leaf = dotted_key.rpartition(".")
            parent = cls.get_nested(parent_key) if parent_key else cls._config
            if isinstance(parent, dict) and leaf in parent:
                cls._prune(parent, leaf, dotted_key)

    @classmethod
    def _prune(cls, parent: dict[str, Any], key: str, dotted_key: str) -> None:
        value = parent[key]
        if isinstance(value, dict):
            for child in list(value):
                cls._prune(value, child, f"{dotted_key}.{child}")
            return
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            logging.warning("Ignoring config value %s=%r; expected a positive integer", dotted_key, value)
            del parent[key]
            cls._config_status = "degraded"

    @classmethod
    def get_nested(cls, dotted_key: str, default: Any = None) -> Any:
        """Resolve a dotted key such as ``cache.search.ttl_seconds``."""
        node: Any = cls._config
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node if node is not None else default

    @classmethod
    def reset(cls) -> None:
        """Reset the loader state (used by tests)."""
        cls._config = {}
        cls._config_status = "not_loaded"
        cls._config_path = None
