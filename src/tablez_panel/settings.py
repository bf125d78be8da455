"""
Panel settings loading.

Precedence: built-in defaults, then the YAML settings file, then
environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .config import PenConfig
from .driver import DEFAULT_CONFIG_PATH, DEFAULT_SOCKET_PATH
from .sync import STATUS_CLEAR_DELAY
from .telemetry import (
    DEFAULT_CANVAS_HEIGHT, DEFAULT_CANVAS_WIDTH, DEFAULT_DEVICE_RANGE, CanvasScale
)

LOG = logging.getLogger("tablez.settings")

# Environment variable -> settings field
ENV_OVERRIDES = {
    'TABLEZ_SOCKET': 'socket_path',
    'TABLEZ_CONFIG': 'config_path',
    'TABLEZ_LOG_LEVEL': 'log_level',
}


@dataclass(frozen=True)
class PanelSettings:
    """Panel runtime settings."""
    socket_path: str = DEFAULT_SOCKET_PATH
    config_path: str = DEFAULT_CONFIG_PATH

    # Visualization canvas, in canvas units
    canvas_width: float = float(DEFAULT_CANVAS_WIDTH)
    canvas_height: float = float(DEFAULT_CANVAS_HEIGHT)

    # Device range used when the driver does not report calibration
    device_max_x: int = DEFAULT_DEVICE_RANGE
    device_max_y: int = DEFAULT_DEVICE_RANGE
    scale_from_device: bool = True

    status_clear_delay: float = STATUS_CLEAR_DELAY
    persist_config: bool = True
    log_level: str = 'INFO'

    def canvas_scale(self, pen: Optional[PenConfig] = None) -> CanvasScale:
        """Coordinate mapping for the status canvas.

        Uses the loaded pen calibration when scale_from_device is set.
        """
        fallback = (self.device_max_x, self.device_max_y)
        if self.scale_from_device and pen is not None:
            return CanvasScale.from_pen(pen, self.canvas_width, self.canvas_height, fallback)
        return CanvasScale(self.canvas_width, self.canvas_height, *fallback)


def get_settings_path() -> Path:
    """Get the settings file path."""
    if os.name == 'nt':
        base = Path(os.environ.get('APPDATA', Path.home()))
    elif os.name == 'posix' and 'darwin' in os.uname().sysname.lower():
        base = Path.home() / 'Library' / 'Application Support'
    else:
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))

    return base / 'tablez-panel' / 'settings.yaml'


def _accepts(default, value) -> bool:
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, float):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, str)


def apply_overrides(settings: PanelSettings, data: Mapping, source: str) -> PanelSettings:
    """Return settings with known, well-typed keys from data applied."""
    defaults = PanelSettings()
    known = {f.name for f in fields(PanelSettings)}
    changes = {}
    for key, value in data.items():
        if key not in known:
            LOG.debug("Ignoring unknown setting %r in %s", key, source)
            continue
        if not _accepts(getattr(defaults, key), value):
            LOG.warning("Ignoring setting %s=%r in %s: wrong type", key, value, source)
            continue
        changes[key] = value
    return replace(settings, **changes)


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None
) -> PanelSettings:
    """Load settings from file and environment.

    A missing settings file is not an error. An unreadable or invalid one
    is logged and skipped.
    """
    if path is None:
        path = get_settings_path()
    if environ is None:
        environ = os.environ

    settings = PanelSettings()

    if path.exists():
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            LOG.warning("Could not read settings from %s: %s", path, e)
            data = {}
        if isinstance(data, Mapping):
            settings = apply_overrides(settings, data, str(path))
        else:
            LOG.warning("Settings file %s is not a mapping, ignoring", path)

    env = {field_name: environ[var] for var, field_name in ENV_OVERRIDES.items() if var in environ}
    if env:
        settings = apply_overrides(settings, env, 'environment')

    return settings
