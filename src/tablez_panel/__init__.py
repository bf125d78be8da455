"""Tablez Panel - Control panel for the table_z graphics tablet driver."""

__version__ = "0.1.0"

from .keys import NO_KEY, KEYS, KEY_CODES, display_name, is_key, parse_key
from .combo import BUTTON_SLOTS, decode_combo, encode_combo, decode_buttons, encode_buttons
from .config import TabletConfig, PenConfig, ActionsConfig, SettingsConfig, replace_field
from .errors import TablezError, ConfigError, DriverError
from .channels import EventChannels, Subscription
from .telemetry import PointerSnapshot, ButtonSnapshot, CanvasScale, TelemetryMonitor
from .sync import ConfigSynchronizer, SyncState, SaveStatus
from .driver import DriverClient, parse_event
