"""
settings.py

Persistent settings management for the dialog graph editor.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/dialog-editor/settings.toml
    - macOS: ~/Library/Application Support/dialog-editor/settings.toml
    - Linux: ~/.config/dialog-editor/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "dialog-editor"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


def set_settings(manager: Optional["SettingsManager"]) -> None:
    """Replace the global settings manager (``None`` resets to lazy default)."""
    global _settings_manager
    _settings_manager = manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasCardSettings:
    """Card rectangle size.

    Defaults:
        width: 500.0
        height: 150.0
    """
    width: float = 500.0   # Default: 500.0 scene units
    height: float = 150.0  # Default: 150.0 scene units


@dataclass
class CanvasZoomSettings:
    """Zoom behavior settings.

    Defaults:
        wheel_factor: 1.15
    """
    wheel_factor: float = 1.15  # Default: 1.15 (15% per scroll step)


@dataclass
class CanvasSettings:
    """All canvas-related settings."""
    card: CanvasCardSettings = field(default_factory=CanvasCardSettings)
    zoom: CanvasZoomSettings = field(default_factory=CanvasZoomSettings)


# =============================================================================
# Routing Settings
# =============================================================================

@dataclass
class RoutingSettings:
    """Edge routing and arrowhead geometry.

    Defaults:
        padding: 20.0
        vertical_offset: 30.0
        arrow_length: 20.0
        arrow_width: 10.0
        label_offset: 10.0
        epsilon: 1e-6
    """
    padding: float = 20.0          # Default: 20.0 margin around obstacle cards
    vertical_offset: float = 30.0  # Default: 30.0 length of the first/last vertical legs
    arrow_length: float = 20.0     # Default: 20.0
    arrow_width: float = 10.0      # Default: 10.0 (half-width of arrow base)
    label_offset: float = 10.0     # Default: 10.0 (label sits above the middle segment)
    epsilon: float = 1e-6          # Default: 1e-6 (degenerate direction threshold)


# =============================================================================
# Auto-layout Settings
# =============================================================================

@dataclass
class LayoutSettings:
    """Layered auto-layout spacing.

    Defaults:
        node_sep: 50.0
        rank_sep: 100.0
    """
    node_sep: float = 50.0   # Default: 50.0 horizontal gap between cards in a layer
    rank_sep: float = 100.0  # Default: 100.0 vertical gap between layers


# =============================================================================
# Autosave / Logging Settings
# =============================================================================

@dataclass
class AutosaveSettings:
    """Periodic autosave.

    Defaults:
        enabled: True
        interval_minutes: 5.0
        max_files: 10
    """
    enabled: bool = True           # Default: True
    interval_minutes: float = 5.0  # Default: 5 minutes
    max_files: int = 10            # Default: keep newest 10 autosaves


@dataclass
class LoggingSettings:
    """Logging behavior.

    Defaults:
        level: "INFO"
        debug_trace: False
        max_error_logs: 100
    """
    level: str = "INFO"          # Default: "INFO"
    debug_trace: bool = False    # Default: False (category traces off)
    max_error_logs: int = 100    # Default: 100 entries kept in memory


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        workspace_dir: Default directory for saving/loading scenes.
        canvas: Canvas-related settings.
        routing: Edge routing settings.
        layout: Auto-layout spacing.
        autosave: Autosave settings.
        logging: Logging settings.
    """
    # Workspace directory for scene save/load (empty = ~/Documents/DialogEditor)
    workspace_dir: str = ""

    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    routing: RoutingSettings = field(default_factory=RoutingSettings)
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    autosave: AutosaveSettings = field(default_factory=AutosaveSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        config_dir: Explicit directory overriding the platform location.
    """

    def __init__(self, app_name: str = APP_NAME, config_dir: Optional[Union[str, Path]] = None):
        self.app_name = app_name
        if config_dir is not None:
            self.settings_dir = Path(config_dir)
        else:
            self.settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, ValueError, AttributeError, TypeError):
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        general = data.get("general", {})
        settings.workspace_dir = general.get("workspace_dir", settings.workspace_dir)

        canvas = data.get("canvas", {})
        if "card" in canvas:
            c = canvas["card"]
            settings.canvas.card.width = float(c.get("width", settings.canvas.card.width))
            settings.canvas.card.height = float(c.get("height", settings.canvas.card.height))
        if "zoom" in canvas:
            zm = canvas["zoom"]
            settings.canvas.zoom.wheel_factor = zm.get("wheel_factor", settings.canvas.zoom.wheel_factor)

        r = data.get("routing", {})
        routing = settings.routing
        routing.padding = float(r.get("padding", routing.padding))
        routing.vertical_offset = float(r.get("vertical_offset", routing.vertical_offset))
        routing.arrow_length = float(r.get("arrow_length", routing.arrow_length))
        routing.arrow_width = float(r.get("arrow_width", routing.arrow_width))
        routing.label_offset = float(r.get("label_offset", routing.label_offset))
        routing.epsilon = float(r.get("epsilon", routing.epsilon))

        ly = data.get("layout", {})
        settings.layout.node_sep = float(ly.get("node_sep", settings.layout.node_sep))
        settings.layout.rank_sep = float(ly.get("rank_sep", settings.layout.rank_sep))

        a = data.get("autosave", {})
        settings.autosave.enabled = a.get("enabled", settings.autosave.enabled)
        settings.autosave.interval_minutes = float(a.get("interval_minutes", settings.autosave.interval_minutes))
        settings.autosave.max_files = int(a.get("max_files", settings.autosave.max_files))

        lg = data.get("logging", {})
        settings.logging.level = str(lg.get("level", settings.logging.level)).upper()
        settings.logging.debug_trace = lg.get("debug_trace", settings.logging.debug_trace)
        settings.logging.max_error_logs = int(lg.get("max_error_logs", settings.logging.max_error_logs))

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "workspace_dir": s.workspace_dir,
            },
            "canvas": {
                "card": {
                    "width": s.canvas.card.width,
                    "height": s.canvas.card.height,
                },
                "zoom": {
                    "wheel_factor": s.canvas.zoom.wheel_factor,
                },
            },
            "routing": {
                "padding": s.routing.padding,
                "vertical_offset": s.routing.vertical_offset,
                "arrow_length": s.routing.arrow_length,
                "arrow_width": s.routing.arrow_width,
                "label_offset": s.routing.label_offset,
                "epsilon": s.routing.epsilon,
            },
            "layout": {
                "node_sep": s.layout.node_sep,
                "rank_sep": s.layout.rank_sep,
            },
            "autosave": {
                "enabled": s.autosave.enabled,
                "interval_minutes": s.autosave.interval_minutes,
                "max_files": s.autosave.max_files,
            },
            "logging": {
                "level": s.logging.level,
                "debug_trace": s.logging.debug_trace,
                "max_error_logs": s.logging.max_error_logs,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string."""
        return tomli_w.dumps(self._to_toml_dict())

    def get_workspace_dir(self) -> Path:
        """Get the resolved workspace directory path.

        Returns:
            Path to workspace directory. Falls back to ~/Documents/DialogEditor
            if workspace_dir setting is empty.
        """
        if self.settings.workspace_dir:
            return Path(self.settings.workspace_dir)
        return Path.home() / "Documents" / "DialogEditor"

    def get_data_dir(self) -> Path:
        """Directory for autosaves (platformdirs user data dir)."""
        if self._is_overridden():
            return self.settings_dir / "data"
        return Path(platformdirs.user_data_dir(self.app_name))

    def get_log_dir(self) -> Path:
        """Directory for log files (platformdirs user log dir)."""
        if self._is_overridden():
            return self.settings_dir / "logs"
        return Path(platformdirs.user_log_dir(self.app_name))

    def get_settings_path(self) -> Path:
        """Get the path to the settings file."""
        return self.settings_file

    def _is_overridden(self) -> bool:
        return self.settings_dir != Path(platformdirs.user_config_dir(self.app_name))
