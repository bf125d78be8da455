#!/usr/bin/env python3
"""Command-line interface for the tablet control panel."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import yaml

from .channels import POINTER, EventChannels
from .combo import BUTTON_SLOTS, format_combo
from .driver import DriverClient
from .errors import DriverError
from .keys import KEYS, KEY_CODES, NO_KEY, display_name, key_for_code, parse_key
from .settings import PanelSettings, load_settings
from .sync import ConfigSynchronizer
from .telemetry import TelemetryMonitor

LOG = logging.getLogger("tablez.cli")

FLAGS = ('swap_axis', 'swap_direction_x', 'swap_direction_y')

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def make_client(settings: PanelSettings, channels: EventChannels = None) -> DriverClient:
    """Create a driver client from settings."""
    return DriverClient(
        socket_path=settings.socket_path,
        config_path=settings.config_path,
        channels=channels,
        persist=settings.persist_config,
    )


def make_synchronizer(settings: PanelSettings, client) -> ConfigSynchronizer:
    return ConfigSynchronizer(client, clear_delay=settings.status_clear_delay)


def print_buttons(pairs):
    print("Buttons:")
    for i, pair in enumerate(pairs):
        print(f"  {i + 1}: {format_combo(pair)}")


def cmd_show(args, settings: PanelSettings) -> int:
    """Print the driver configuration."""
    async def run():
        client = make_client(settings)
        sync = make_synchronizer(settings, client)
        ok = await sync.load()
        await client.close()
        return sync if ok else None

    sync = asyncio.run(run())
    if sync is None:
        print("Could not load configuration (see log)", file=sys.stderr)
        return 1

    data = sync.loaded.to_dict()
    if args.json:
        print(json.dumps(data, indent=2))
        return 0

    print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), end='')
    print()
    print_buttons(sync.pairs)
    return 0


async def _edit_and_save(settings: PanelSettings, edit) -> ConfigSynchronizer:
    client = make_client(settings)
    sync = make_synchronizer(settings, client)
    try:
        if not await sync.load():
            print(f"Load failed: {sync.load_error}", file=sys.stderr)
            return None
        edit(sync)
        if not await sync.save():
            print(f"Save failed: {sync.save_error}", file=sys.stderr)
            return None
        return sync
    finally:
        await client.close()


def cmd_set_button(args, settings: PanelSettings) -> int:
    """Map a tablet button to one or two keys."""
    if not 1 <= args.button <= BUTTON_SLOTS:
        print(f"Button must be 1-{BUTTON_SLOTS}", file=sys.stderr)
        return 1
    if len(args.keys) > 2:
        print("At most two keys per button", file=sys.stderr)
        return 1

    try:
        keys = [parse_key(k) for k in args.keys]
    except ValueError as e:
        print(f"{e}. Use 'keys' command to list valid keys.", file=sys.stderr)
        return 1
    keys += [NO_KEY] * (2 - len(keys))

    index = args.button - 1
    sync = asyncio.run(_edit_and_save(settings, lambda s: s.set_button(index, tuple(keys))))
    if sync is None:
        return 1

    print(f"Button {args.button}: {format_combo(sync.pairs[index])}")
    return 0


def cmd_set_flag(args, settings: PanelSettings) -> int:
    """Set an axis flag."""
    value = args.value == 'on'
    sync = asyncio.run(_edit_and_save(settings, lambda s: s.set_flag(args.flag, value)))
    if sync is None:
        return 1

    print(f"{args.flag}: {'on' if value else 'off'}")
    return 0


def format_event(kind, snapshot, scale) -> str:
    """One line describing a telemetry snapshot."""
    if kind == POINTER:
        vx, vy = scale.to_visual(snapshot)
        touch = 'touch' if snapshot.touch else 'hover'
        return (f"pen    x={snapshot.x:5d} y={snapshot.y:5d} "
                f"pressure={snapshot.pressure:5d} {touch:5s} -> ({vx:.1f}, {vy:.1f})")

    name = key_for_code(snapshot.key)
    key = display_name(name) if name else f'code {snapshot.key}'
    state = 'pressed' if snapshot.pressed else 'released'
    return f"button {snapshot.index + 1} {state} ({key})"


def cmd_monitor(args, settings: PanelSettings) -> int:
    """Print live telemetry from the driver."""
    async def run():
        channels = EventChannels()
        client = make_client(settings, channels)

        pen = None
        try:
            pen = (await client.read_config()).pen
        except DriverError as e:
            LOG.info("No calibration available, using default range: %s", e)
        scale = settings.canvas_scale(pen)

        done = asyncio.Event()
        seen = 0

        def on_update(kind, snapshot):
            nonlocal seen
            print(format_event(kind, snapshot, scale), flush=True)
            seen += 1
            if args.count and seen >= args.count:
                done.set()

        with TelemetryMonitor(channels, on_update=on_update):
            try:
                await client.connect()
            except DriverError as e:
                print(e, file=sys.stderr)
                return 1

            reader = client.start()
            waiter = asyncio.ensure_future(done.wait())
            await asyncio.wait([reader, waiter], return_when=asyncio.FIRST_COMPLETED)
            waiter.cancel()
            await client.close()
        return 0

    try:
        return asyncio.run(run())
    except KeyboardInterrupt:
        return 0


def cmd_keys(args, settings: PanelSettings) -> int:
    """List the key vocabulary."""
    for name in KEYS:
        if name == NO_KEY:
            print(f"{name:16s}   -  (unset)")
        else:
            print(f"{name:16s} {KEY_CODES[name]:3d}  {display_name(name)}")
    return 0


def cmd_gui(args, settings: PanelSettings) -> int:
    """Run the Kivy panel."""
    try:
        from .gui.app import run_app
    except ImportError as e:
        print(f"GUI unavailable ({e}). Install with: pip install tablez-panel[gui]",
              file=sys.stderr)
        return 1
    run_app(settings)
    return 0


def configure_logging(level_name: str):
    level = getattr(logging, str(level_name).upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Graphics tablet control panel',
        prog='tablez-panel'
    )
    parser.add_argument('--settings', type=Path,
                        help='Settings file (default: per-user config dir)')
    parser.add_argument('--log-level', choices=LOG_LEVELS,
                        help='Logging level (default: from settings, INFO)')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # gui command
    subparsers.add_parser('gui', help='Open the control panel window')

    # show command
    show_parser = subparsers.add_parser('show', help='Show the driver configuration')
    show_parser.add_argument('--json', action='store_true', help='Print as JSON')

    # set-button command
    button_parser = subparsers.add_parser('set-button', help='Map a tablet button to keys')
    button_parser.add_argument('button', type=int, help=f'Button number (1-{BUTTON_SLOTS})')
    button_parser.add_argument('keys', nargs='*',
                               help='Up to two keys, e.g. LEFTCTRL Z (none to clear)')

    # set-flag command
    flag_parser = subparsers.add_parser('set-flag', help='Set an axis flag')
    flag_parser.add_argument('flag', choices=FLAGS, help='Flag name')
    flag_parser.add_argument('value', choices=['on', 'off'], help='New value')

    # monitor command
    monitor_parser = subparsers.add_parser('monitor', help='Print live pen and button events')
    monitor_parser.add_argument('-n', '--count', type=int, default=0,
                                help='Stop after N events (default: run until Ctrl+C)')

    # keys command
    subparsers.add_parser('keys', help='List keys usable in button mappings')

    args = parser.parse_args(argv)

    settings = load_settings(args.settings)
    configure_logging(args.log_level or settings.log_level)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == 'gui':
        return cmd_gui(args, settings)
    elif args.command == 'show':
        return cmd_show(args, settings)
    elif args.command == 'set-button':
        return cmd_set_button(args, settings)
    elif args.command == 'set-flag':
        return cmd_set_flag(args, settings)
    elif args.command == 'monitor':
        return cmd_monitor(args, settings)
    elif args.command == 'keys':
        return cmd_keys(args, settings)

    return 0


if __name__ == '__main__':
    sys.exit(main() or 0)
