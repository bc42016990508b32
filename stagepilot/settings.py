"""
Settings for StagePilot.

Loads a TOML file and validates its values against fixed bounds. Anything the
file leaves out falls back to ``DEFAULT_SETTINGS``.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import toml

from stagepilot.stageplan_layout import LayoutSettings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STAGEPILOT_CONFIG"
DEFAULT_CONFIG_PATH = "stagepilot.toml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class SettingsError(Exception):
    """Raised when the settings file cannot be read or holds invalid values."""


class Settings:
    """Settings loader and validator."""

    PARAM_BOUNDS: dict[str, dict[str, tuple[float, float]]] = {
        "stageplan": {
            "text_size_pt": (6.0, 14.0),
            "line_height": (1.0, 2.0),
            "top_box_max_height_mm": (40.0, 200.0),
            "bottom_box_max_height_mm": (40.0, 200.0),
            "page_height_mm": (200.0, 420.0),
            "margin_top_mm": (5.0, 40.0),
            "margin_bottom_mm": (5.0, 40.0),
        },
    }

    DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
        "data": {
            "root": "data",
        },
        "document": {
            "notes_template": "notes_default_cs",
            "output_dir": "out",
        },
        "stageplan": {
            "text_size_pt": 9.0,
            "line_height": 1.3,
            "top_box_max_height_mm": 110.0,
            "bottom_box_max_height_mm": 110.0,
            "page_height_mm": 297.0,
            "margin_top_mm": 20.0,
            "margin_bottom_mm": 15.0,
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, data: dict[str, Any] | None = None, source: Path | None = None) -> None:
        self.data = self._merge_defaults(data or {})
        self.source = source
        self._validate()

    @classmethod
    def load(cls, path: str | Path | None = None) -> Settings:
        """
        Load settings from a TOML file.

        Args:
            path: Settings file. If None, uses the STAGEPILOT_CONFIG env var
                  or ``stagepilot.toml`` in the working directory.

        Raises:
            SettingsError: If the file exists but cannot be parsed or validated.
        """
        if path is None:
            path = os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
        path = Path(path)

        if not path.exists():
            logger.warning("Settings file not found: %s. Using defaults.", path)
            return cls()

        try:
            data = toml.load(path)
        except (OSError, toml.TomlDecodeError) as exc:
            raise SettingsError(f"Failed to load settings from {path}: {exc}") from exc
        logger.debug("Loaded settings from %s", path)
        return cls(data, source=path)

    def _merge_defaults(self, data: dict[str, Any]) -> dict[str, Any]:
        merged = copy.deepcopy(self.DEFAULT_SETTINGS)
        for section, values in data.items():
            if not isinstance(values, dict):
                raise SettingsError(f"Settings section [{section}] must be a table.")
            merged.setdefault(section, {}).update(values)
        return merged

    def _validate(self) -> None:
        for section, params in self.PARAM_BOUNDS.items():
            for param, (min_val, max_val) in params.items():
                value = self.data[section][param]
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise SettingsError(f"Parameter {section}.{param} must be a number, got {value!r}")
                if not (min_val <= value <= max_val):
                    raise SettingsError(
                        f"Parameter {section}.{param}={value} out of bounds [{min_val}, {max_val}]"
                    )

        level = str(self.data["logging"]["level"]).upper()
        if level not in LOG_LEVELS:
            raise SettingsError(f"Unknown logging level: {level}")
        self.data["logging"]["level"] = level

    def get(self, section: str, param: str, default: Any = None) -> Any:
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> dict[str, Any]:
        return self.data.get(section, {})

    @property
    def data_root(self) -> Path:
        root = Path(self.get("data", "root"))
        if self.source is not None and not root.is_absolute():
            return self.source.parent / root
        return root

    @property
    def notes_template(self) -> str:
        return str(self.get("document", "notes_template"))

    @property
    def output_dir(self) -> Path:
        return Path(self.get("document", "output_dir"))

    @property
    def log_level(self) -> str:
        return self.data["logging"]["level"]

    def layout_settings(self) -> LayoutSettings:
        """Stage plan geometry with the configured overrides applied."""
        values = {param: float(self.data["stageplan"][param]) for param in self.PARAM_BOUNDS["stageplan"]}
        return LayoutSettings(**values)

    def __repr__(self) -> str:
        return f"Settings(source={self.source})"
