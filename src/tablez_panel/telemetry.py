"""
Live telemetry state for the status view.

Keeps the latest pointer and button snapshot received from the driver and
maps raw device coordinates onto the visualization canvas.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from .channels import BUTTON, POINTER, EventChannels, Subscription
from .config import PenConfig

LOG = logging.getLogger("tablez.telemetry")

# Raw range per axis of the M100 tablet
DEFAULT_DEVICE_RANGE = 4096

DEFAULT_CANVAS_WIDTH = 300
DEFAULT_CANVAS_HEIGHT = 200

# Pen dot stays visible at zero pressure
MIN_DOT_RADIUS = 5
DOT_PRESSURE_DIVISOR = 100

MIN_RING_RADIUS = 8
RING_PRESSURE_DIVISOR = 80


def _field(payload: Mapping, name: str, kind: type) -> Any:
    value = payload[name]
    if kind is int and isinstance(value, bool):
        raise ValueError(f"{name} must be int, got bool")
    if not isinstance(value, kind):
        raise ValueError(f"{name} must be {kind.__name__}, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class PointerSnapshot:
    """Pen state from one pointer event"""
    x: int = 0          # raw device units
    y: int = 0
    pressure: int = 0
    touch: bool = False  # pen tip in contact

    @classmethod
    def from_payload(cls, payload: Mapping) -> 'PointerSnapshot':
        """Build from a complete event payload.

        Raises:
            ValueError: if a field is missing or has the wrong type
        """
        try:
            return cls(
                x=_field(payload, 'x', int),
                y=_field(payload, 'y', int),
                pressure=_field(payload, 'pressure', int),
                touch=_field(payload, 'touch', bool),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed pointer payload: {payload!r}") from e


@dataclass(frozen=True)
class ButtonSnapshot:
    """Tablet button state from one button event"""
    key: int = 0        # evdev key code emitted
    pressed: bool = False
    index: int = 0      # physical button, 0-based

    @classmethod
    def from_payload(cls, payload: Mapping) -> 'ButtonSnapshot':
        """Build from a complete event payload.

        Older drivers omit ``index``; it then defaults to 0.

        Raises:
            ValueError: if a field is missing or has the wrong type
        """
        try:
            index = _field(payload, 'index', int) if 'index' in payload else 0
            return cls(
                key=_field(payload, 'key', int),
                pressed=_field(payload, 'pressed', bool),
                index=index,
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed button payload: {payload!r}") from e


@dataclass(frozen=True)
class CanvasScale:
    """Linear mapping from device units to canvas units."""
    canvas_width: float = DEFAULT_CANVAS_WIDTH
    canvas_height: float = DEFAULT_CANVAS_HEIGHT
    device_max_x: int = DEFAULT_DEVICE_RANGE
    device_max_y: int = DEFAULT_DEVICE_RANGE

    def __post_init__(self):
        if self.device_max_x <= 0 or self.device_max_y <= 0:
            raise ValueError("Device range must be positive")

    @classmethod
    def from_pen(
        cls,
        pen: PenConfig,
        canvas_width: float = DEFAULT_CANVAS_WIDTH,
        canvas_height: float = DEFAULT_CANVAS_HEIGHT,
        fallback_range: Tuple[int, int] = (DEFAULT_DEVICE_RANGE, DEFAULT_DEVICE_RANGE),
    ) -> 'CanvasScale':
        """Derive the device range from loaded pen calibration.

        Axes the driver reports as 0 use fallback_range instead.
        """
        return cls(
            canvas_width=canvas_width,
            canvas_height=canvas_height,
            device_max_x=pen.max_x or fallback_range[0],
            device_max_y=pen.max_y or fallback_range[1],
        )

    @property
    def k_x(self) -> float:
        return self.canvas_width / self.device_max_x

    @property
    def k_y(self) -> float:
        return self.canvas_height / self.device_max_y

    def to_visual(self, snapshot: PointerSnapshot) -> Tuple[float, float]:
        """Canvas position of the pen."""
        return (snapshot.x * self.k_x, snapshot.y * self.k_y)


def pressure_radius(pressure: int) -> float:
    """Radius of the pen dot for a pressure reading."""
    return max(MIN_DOT_RADIUS, pressure / DOT_PRESSURE_DIVISOR)


def ring_radius(pressure: int) -> float:
    """Radius of the pressure ring drawn while touching."""
    return max(MIN_RING_RADIUS, pressure / RING_PRESSURE_DIVISOR)


class TelemetryMonitor:
    """
    Latest-known pointer and button state.

    Example usage:
        monitor = TelemetryMonitor(channels, on_update=redraw)
        monitor.mount()
        ...
        monitor.unmount()

    or scoped with ``with TelemetryMonitor(channels):``.
    """

    def __init__(
        self,
        channels: EventChannels,
        on_update: Optional[Callable[[str, Any], None]] = None
    ):
        self._channels = channels
        self._on_update = on_update
        self._pointer = PointerSnapshot()
        self._button = ButtonSnapshot()
        self._pointer_sub: Optional[Subscription] = None
        self._button_sub: Optional[Subscription] = None

    @property
    def pointer(self) -> PointerSnapshot:
        return self._pointer

    @property
    def button(self) -> ButtonSnapshot:
        return self._button

    @property
    def mounted(self) -> bool:
        return self._pointer_sub is not None

    def mount(self) -> None:
        """Start listening on both channels. No-op when already mounted."""
        if self.mounted:
            return
        self._pointer_sub = self._channels.subscribe(POINTER, self._on_pointer)
        self._button_sub = self._channels.subscribe(BUTTON, self._on_button)

    def unmount(self) -> None:
        """Stop listening. Safe to call more than once."""
        for sub in (self._pointer_sub, self._button_sub):
            if sub is not None:
                sub.cancel()
        self._pointer_sub = None
        self._button_sub = None

    def __enter__(self) -> 'TelemetryMonitor':
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    def _on_pointer(self, payload: Mapping) -> None:
        try:
            self._pointer = PointerSnapshot.from_payload(payload)
        except ValueError as e:
            LOG.debug("Dropped pointer event: %s", e)
            return
        if self._on_update:
            self._on_update(POINTER, self._pointer)

    def _on_button(self, payload: Mapping) -> None:
        try:
            self._button = ButtonSnapshot.from_payload(payload)
        except ValueError as e:
            LOG.debug("Dropped button event: %s", e)
            return
        if self._on_update:
            self._on_update(BUTTON, self._button)
