"""Tablet configuration record.

Mirrors the driver's ``Config`` struct. Records are immutable; edits go
through :func:`replace_field`, which rebuilds only the touched branch.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Tuple

from .combo import BUTTON_SLOTS, pad_mappings
from .errors import ConfigError

LOG = logging.getLogger("tablez.config")


@dataclass(frozen=True)
class PenConfig:
    """Pen calibration reported by the driver."""
    max_x: int = 0
    max_y: int = 0
    max_pressure: int = 0
    resolution_x: int = 0
    resolution_y: int = 0


@dataclass(frozen=True)
class ActionsConfig:
    """Key actions bound to the pen and the tablet buttons."""
    pen: str = ''
    stylus: str = ''
    pen_touch: str = ''
    tablet_buttons: Tuple[str, ...] = ('',) * BUTTON_SLOTS


@dataclass(frozen=True)
class SettingsConfig:
    """Axis transformation flags."""
    swap_axis: bool = False
    swap_direction_x: bool = False
    swap_direction_y: bool = False


@dataclass(frozen=True)
class TabletConfig:
    """Complete tablet configuration."""
    xinput_name: str = ''
    vendor_id: int = 0
    product_id: int = 0
    interface: int = 0
    pen: PenConfig = field(default_factory=PenConfig)
    actions: ActionsConfig = field(default_factory=ActionsConfig)
    settings: SettingsConfig = field(default_factory=SettingsConfig)

    @classmethod
    def from_dict(cls, data: Any) -> 'TabletConfig':
        """Parse a driver payload into a typed record.

        Missing fields take their defaults and unknown keys are ignored.
        Values of the wrong type are coerced when unambiguous, otherwise
        replaced by the default with a warning.

        Raises:
            ConfigError: if data is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Expected a mapping, got {type(data).__name__}")

        identity = _parse_leaves(cls, data, '')
        pen = PenConfig(**_parse_leaves(PenConfig, _section(data, 'pen'), 'pen.'))
        actions_data = _section(data, 'actions')
        actions = ActionsConfig(
            tablet_buttons=_parse_buttons(actions_data.get('tablet_buttons')),
            **_parse_leaves(ActionsConfig, actions_data, 'actions.'),
        )
        settings = SettingsConfig(
            **_parse_leaves(SettingsConfig, _section(data, 'settings'), 'settings.')
        )
        return cls(pen=pen, actions=actions, settings=settings, **identity)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the driver's JSON/YAML shape."""
        return {
            'xinput_name': self.xinput_name,
            'vendor_id': self.vendor_id,
            'product_id': self.product_id,
            'interface': self.interface,
            'pen': {f.name: getattr(self.pen, f.name) for f in fields(PenConfig)},
            'actions': {
                'pen': self.actions.pen,
                'stylus': self.actions.stylus,
                'pen_touch': self.actions.pen_touch,
                'tablet_buttons': list(self.actions.tablet_buttons),
            },
            'settings': {
                f.name: getattr(self.settings, f.name) for f in fields(SettingsConfig)
            },
        }

    def diff(self, other: 'TabletConfig') -> Dict[str, Tuple[Any, Any]]:
        """Compare two configs, return changed leaves.

        Returns dict of {dotted_path: (self_value, other_value)}.
        """
        mine = _flatten(self.to_dict())
        theirs = _flatten(other.to_dict())
        changes = {}
        for path in sorted(set(mine) | set(theirs)):
            a, b = mine.get(path), theirs.get(path)
            if a != b:
                changes[path] = (a, b)
        return changes

    def __repr__(self):
        mapped = sum(1 for b in self.actions.tablet_buttons if b)
        return (f"TabletConfig({self.xinput_name!r}, "
                f"{self.vendor_id:04x}:{self.product_id:04x}, {mapped} buttons mapped)")


def replace_field(config: TabletConfig, path: str, value: Any) -> TabletConfig:
    """Return a copy of config with one leaf replaced.

    Args:
        config: Record to update (not modified)
        path: Dotted leaf path, e.g. ``settings.swap_axis`` or
              ``actions.tablet_buttons.3``
        value: New value, must match the leaf's type

    Raises:
        ConfigError: for unknown paths or mismatched value types.
    """
    parts = path.split('.')
    head = parts[0]
    if head not in _field_names(TabletConfig):
        raise ConfigError(f"Unknown config field: {path!r}")

    if len(parts) == 1:
        current = getattr(config, head)
        if _is_dataclass_instance(current):
            raise ConfigError(f"Cannot replace section {path!r} as a leaf")
        return replace(config, **{head: _checked(path, current, value)})

    section = getattr(config, head)
    if not _is_dataclass_instance(section):
        raise ConfigError(f"Unknown config field: {path!r}")
    leaf = parts[1]
    if leaf not in _field_names(type(section)):
        raise ConfigError(f"Unknown config field: {path!r}")

    current = getattr(section, leaf)
    if leaf == 'tablet_buttons':
        if len(parts) != 3:
            raise ConfigError(f"Button path needs an index: {path!r}")
        try:
            index = int(parts[2])
        except ValueError:
            raise ConfigError(f"Invalid button index in {path!r}") from None
        if not 0 <= index < len(current):
            raise ConfigError(f"Button index out of range in {path!r}")
        buttons = list(current)
        buttons[index] = _checked(path, current[index], value)
        new_section = replace(section, tablet_buttons=tuple(buttons))
    elif len(parts) == 2:
        new_section = replace(section, **{leaf: _checked(path, current, value)})
    else:
        raise ConfigError(f"Unknown config field: {path!r}")

    return replace(config, **{head: new_section})


def _field_names(cls) -> set:
    return {f.name for f in fields(cls)}


def _is_dataclass_instance(value) -> bool:
    return hasattr(type(value), '__dataclass_fields__')


def _checked(path: str, current: Any, value: Any) -> Any:
    # bool is an int subclass, so check it first
    if isinstance(current, bool):
        ok = isinstance(value, bool)
    elif isinstance(current, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, type(current))
    if not ok:
        raise ConfigError(
            f"{path} expects {type(current).__name__}, got {type(value).__name__}"
        )
    return value


def _section(data: Mapping, name: str) -> Mapping:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        LOG.warning("Config section %r is not a mapping, using defaults", name)
        return {}
    return section


def _parse_leaves(cls, data: Mapping, prefix: str) -> Dict[str, Any]:
    """Coerce the scalar fields of cls found in data."""
    defaults = cls()
    values = {}
    for f in fields(cls):
        default = getattr(defaults, f.name)
        if _is_dataclass_instance(default) or isinstance(default, tuple):
            continue
        if f.name not in data:
            continue
        values[f.name] = _coerce(prefix + f.name, data[f.name], default)
    return values


def _coerce(path: str, raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int) and raw in (0, 1):
            return bool(raw)
        if isinstance(raw, str) and raw.strip().lower() in ('true', 'false'):
            return raw.strip().lower() == 'true'
    elif isinstance(default, int):
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            try:
                return int(raw, 0)
            except ValueError:
                pass
    elif isinstance(default, str):
        if isinstance(raw, str):
            return raw
        if raw is None:
            return default

    LOG.warning("Invalid value %r for %s, using default %r", raw, path, default)
    return default


def _parse_buttons(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return pad_mappings(())
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        LOG.warning("actions.tablet_buttons is not a list, using defaults")
        return pad_mappings(())

    buttons = []
    for i, item in enumerate(raw):
        if isinstance(item, str):
            buttons.append(item)
        elif item is None:
            buttons.append('')
        else:
            LOG.warning("Invalid button mapping %r at slot %d, clearing", item, i)
            buttons.append('')
    return pad_mappings(buttons)


def _flatten(data: Mapping, prefix: str = '') -> Dict[str, Any]:
    flat = {}
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, path + '.'))
        elif isinstance(value, list):
            for i, item in enumerate(value):
                flat[f"{path}.{i}"] = item
        else:
            flat[path] = value
    return flat
