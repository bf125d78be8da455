"""
Configuration load/edit/save cycle.

States:
- idle: no driver call in flight
- loading: reading the configuration from the driver
- saving: sending the merged configuration to the driver

Edits are local until save(). A save always sends the complete record:
the last loaded configuration with the current flags and button pairs
merged in, so calibration and the pen actions go back unchanged.
"""

import asyncio
import logging
from dataclasses import replace
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Tuple

from .combo import BUTTON_SLOTS, ComboPair, decode_buttons, encode_buttons
from .config import TabletConfig, replace_field
from .errors import ConfigError
from .keys import is_key

LOG = logging.getLogger("tablez.sync")

# Seconds a save result stays visible
STATUS_CLEAR_DELAY = 3.0


class SyncState(Enum):
    IDLE = auto()
    LOADING = auto()
    SAVING = auto()


class SaveStatus(Enum):
    NONE = auto()
    SAVED = auto()
    FAILED = auto()


class ConfigSynchronizer:
    """
    Local working copy of the driver configuration.

    The client must provide ``async read_config() -> TabletConfig`` and
    ``async write_config(config)``. Neither load() nor save() raises;
    failures are logged and reflected in ``load_error`` / ``save_status``.
    """

    def __init__(self, client, clear_delay: float = STATUS_CLEAR_DELAY):
        self._client = client
        self._clear_delay = clear_delay
        self._state = SyncState.IDLE
        self._loaded = TabletConfig()
        self._record = self._loaded
        self._pairs: List[ComboPair] = decode_buttons(self._loaded.actions.tablet_buttons)
        self._save_status = SaveStatus.NONE
        self._clear_handle: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Callable[['ConfigSynchronizer'], None]] = []
        self.load_error: Optional[str] = None
        self.save_error: Optional[str] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def save_status(self) -> SaveStatus:
        return self._save_status

    @property
    def loaded(self) -> TabletConfig:
        """Last configuration read from or written to the driver.

        Button mappings are in canonical form, exactly BUTTON_SLOTS long.
        """
        return self._loaded

    @property
    def pairs(self) -> Tuple[ComboPair, ...]:
        """Editable button pairs, always BUTTON_SLOTS long."""
        return tuple(self._pairs)

    @property
    def record(self) -> TabletConfig:
        """Current edits merged into the loaded configuration."""
        actions = replace(
            self._record.actions,
            tablet_buttons=tuple(encode_buttons(self._pairs)),
        )
        return replace(self._record, actions=actions)

    @property
    def is_dirty(self) -> bool:
        """True if there are edits not yet saved."""
        return self._loaded != self.record

    def changes(self) -> Dict[str, Tuple[Any, Any]]:
        """Unsaved changes as {path: (saved_value, edited_value)}."""
        return self._loaded.diff(self.record)

    def status_text(self) -> str:
        """Short status line for the view."""
        if self._state == SyncState.LOADING:
            return 'Loading...'
        if self._state == SyncState.SAVING:
            return 'Saving...'
        if self._save_status == SaveStatus.SAVED:
            return 'Saved'
        if self._save_status == SaveStatus.FAILED:
            return f'Save failed: {self.save_error}'
        if self.load_error:
            return f'Load failed: {self.load_error}'
        return ''

    # Listeners

    def add_listener(self, callback: Callable[['ConfigSynchronizer'], None]):
        """Add a change listener, called after every state or edit change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[['ConfigSynchronizer'], None]):
        """Remove a change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                LOG.exception("Sync listener failed")

    # Driver calls

    async def load(self) -> bool:
        """Read the configuration from the driver and replace local state.

        On failure the previous record and edits are kept.

        Returns:
            True if the configuration was loaded
        """
        self._state = SyncState.LOADING
        self._notify()
        try:
            config = await self._client.read_config()
        except Exception as e:
            LOG.error("Failed to load config: %s", e)
            self.load_error = str(e) or type(e).__name__
            self._state = SyncState.IDLE
            self._notify()
            return False

        extra = len(config.actions.tablet_buttons) - BUTTON_SLOTS
        if extra > 0:
            LOG.warning("Driver reported %d button mappings, only %d are editable",
                        len(config.actions.tablet_buttons), BUTTON_SLOTS)

        self._record = config
        self._pairs = decode_buttons(config.actions.tablet_buttons)
        # Canonical baseline: a fresh load is never dirty
        self._loaded = self.record
        self.load_error = None
        self._state = SyncState.IDLE
        LOG.info("Loaded config: %r", config)
        self._notify()
        return True

    async def save(self) -> bool:
        """Send the merged configuration to the driver.

        Edits are kept whether or not the write succeeds. The resulting
        status clears itself after the configured delay.

        Returns:
            True if the driver accepted the configuration
        """
        # Supersede any previous result
        self._cancel_clear()
        self._save_status = SaveStatus.NONE
        self.save_error = None

        merged = self.record
        self._state = SyncState.SAVING
        self._notify()

        try:
            await self._client.write_config(merged)
        except Exception as e:
            LOG.error("Failed to save config: %s", e)
            self.save_error = str(e) or type(e).__name__
            self._save_status = SaveStatus.FAILED
            ok = False
        else:
            self._loaded = merged
            self._save_status = SaveStatus.SAVED
            LOG.info("Saved config: %r", merged)
            ok = True

        self._state = SyncState.IDLE
        self._schedule_clear()
        self._notify()
        return ok

    def _schedule_clear(self):
        self._cancel_clear()
        loop = asyncio.get_running_loop()
        self._clear_handle = loop.call_later(self._clear_delay, self._clear_status)

    def _cancel_clear(self):
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    def _clear_status(self):
        self._clear_handle = None
        self._save_status = SaveStatus.NONE
        self.save_error = None
        self._notify()

    # Local edits

    def edit_field(self, path: str, value: Any) -> None:
        """Change one local leaf without contacting the driver.

        Args:
            path: ``settings.<flag>`` or ``buttons.<index>.<slot>``
            value: bool for flags, key identifier for button slots

        Raises:
            ConfigError: for unknown or read-only paths and invalid values
        """
        parts = path.split('.')
        if parts[0] == 'settings':
            self._record = replace_field(self._record, path, value)
        elif parts[0] == 'buttons' and len(parts) == 3:
            index, slot = _parse_slot(path, parts[1], parts[2])
            if not isinstance(value, str) or not is_key(value):
                raise ConfigError(f"Unknown key {value!r} for {path}")
            pair = list(self._pairs[index])
            pair[slot] = value
            pairs = list(self._pairs)
            pairs[index] = (pair[0], pair[1])
            self._pairs = pairs
        else:
            raise ConfigError(f"Field is not editable: {path!r}")
        self._notify()

    def set_flag(self, name: str, value: bool) -> None:
        """Set one settings flag, e.g. ``swap_axis``."""
        self.edit_field(f'settings.{name}', value)

    def set_button_key(self, index: int, slot: int, key: str) -> None:
        """Set one slot (0 or 1) of one button pair."""
        self.edit_field(f'buttons.{index}.{slot}', key)

    def set_button(self, index: int, pair: ComboPair) -> None:
        """Replace both slots of one button pair."""
        self.set_button_key(index, 0, pair[0])
        self.set_button_key(index, 1, pair[1])


def _parse_slot(path: str, index_text: str, slot_text: str) -> Tuple[int, int]:
    try:
        index = int(index_text)
        slot = int(slot_text)
    except ValueError:
        raise ConfigError(f"Invalid button path: {path!r}") from None
    if not 0 <= index < BUTTON_SLOTS or slot not in (0, 1):
        raise ConfigError(f"Button path out of range: {path!r}")
    return index, slot
