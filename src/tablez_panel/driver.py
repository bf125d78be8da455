"""
Tablez Panel - Driver Client

Talks to the table_z driver daemon over its Unix socket. The driver
broadcasts one JSON object per line for every pen and button event:

    {"Pen": {"x": 1200, "y": 800, "pressure": 350, "touch": true}}
    {"Btn": {"key": 29, "pressed": true, "index": 0}}

and accepts a complete configuration as one JSON line, which it applies
atomically. The configuration it boots from is a YAML file.
"""

import asyncio
import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from .channels import BUTTON, POINTER, EventChannels
from .config import TabletConfig
from .errors import ConfigError, DriverError

LOG = logging.getLogger("tablez.driver")

DEFAULT_SOCKET_PATH = '/tmp/tablet.sock'
DEFAULT_CONFIG_PATH = '/etc/table_z_utils.yaml'

# Mode of a newly created driver config file
NEW_CONFIG_MODE = 0o644

# Event variant -> channel name
EVENT_CHANNELS = {
    'Pen': POINTER,
    'Btn': BUTTON,
}


def parse_event(line: Union[bytes, str]) -> Optional[Tuple[str, dict]]:
    """Decode one telemetry line.

    Returns:
        (channel, payload) or None if the line is not a known event
    """
    if isinstance(line, bytes):
        try:
            line = line.decode('utf-8')
        except UnicodeDecodeError as e:
            LOG.debug("Dropped undecodable event bytes: %s", e)
            return None

    line = line.strip()
    if not line:
        return None

    try:
        message = json.loads(line)
    except json.JSONDecodeError as e:
        LOG.debug("Dropped invalid JSON event: %s", e)
        return None

    if not isinstance(message, dict) or len(message) != 1:
        LOG.debug("Dropped unexpected event: %r", message)
        return None

    variant, payload = next(iter(message.items()))
    channel = EVENT_CHANNELS.get(variant)
    if channel is None or not isinstance(payload, dict):
        LOG.debug("Dropped unknown event variant: %r", variant)
        return None
    return channel, payload


class DriverClient:
    """
    Connection to the tablet driver.

    Example usage:
        async with DriverClient(channels=channels) as driver:
            driver.start()
            config = await driver.read_config()
            await driver.write_config(config)
    """

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET_PATH,
        config_path: str = DEFAULT_CONFIG_PATH,
        channels: Optional[EventChannels] = None,
        persist: bool = True
    ):
        """
        Args:
            socket_path: Driver control/telemetry socket
            config_path: YAML file the driver loads its configuration from
            channels: Where telemetry events are emitted
            persist: Also write saved configs back to config_path
        """
        self.socket_path = socket_path
        self.config_path = Path(config_path)
        self.channels = channels if channels is not None else EventChannels()
        self.persist = persist
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        """Open the driver socket.

        Raises:
            DriverError: if the driver is not listening
        """
        if self.is_connected():
            return
        try:
            self._reader, self._writer = await asyncio.open_unix_connection(self.socket_path)
        except OSError as e:
            raise DriverError(f"Cannot connect to driver at {self.socket_path}: {e}") from e
        LOG.info("Connected to driver at %s", self.socket_path)

    def is_connected(self) -> bool:
        """Check if the socket is open."""
        return self._writer is not None and not self._writer.is_closing()

    async def close(self) -> None:
        """Stop the telemetry reader and close the socket."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._close_writer()

    async def __aenter__(self) -> 'DriverClient':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _close_writer(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            LOG.debug("Error closing driver socket: %s", e)

    # Telemetry

    def start(self) -> asyncio.Task:
        """Run the telemetry reader as a task on the current loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self.run())
        return self._task

    async def run(self) -> None:
        """Read telemetry lines until the driver closes the connection."""
        await self.connect()
        reader = self._reader
        try:
            while True:
                line = await reader.readline()
                if not line:
                    LOG.info("Driver closed the connection")
                    break
                event = parse_event(line)
                if event is not None:
                    self.channels.emit(*event)
        except (ConnectionError, OSError, ValueError) as e:
            LOG.warning("Telemetry stream failed: %s", e)
        finally:
            if self._reader is reader:
                await self._close_writer()

    # Configuration

    async def read_config(self) -> TabletConfig:
        """Read the driver's current configuration.

        Raises:
            DriverError: if the file cannot be read or parsed
        """
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self._load_yaml)
        try:
            return TabletConfig.from_dict(data)
        except ConfigError as e:
            raise DriverError(f"Invalid config in {self.config_path}: {e}") from e

    async def write_config(self, config: TabletConfig) -> None:
        """Send a complete configuration to the driver.

        Raises:
            DriverError: if the driver cannot be reached
        """
        await self.connect()
        message = json.dumps(config.to_dict()) + '\n'
        try:
            self._writer.write(message.encode('utf-8'))
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            await self._close_writer()
            raise DriverError(f"Failed to send config to driver: {e}") from e
        LOG.info("Config sent to driver")

        if self.persist:
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, self._save_yaml, config)
            except OSError as e:
                # Driver already applied it; only the boot file is stale
                LOG.warning("Could not persist config to %s: %s", self.config_path, e)

    def _load_yaml(self) -> dict:
        try:
            with open(self.config_path, 'r') as f:
                return yaml.safe_load(f) or {}
        except OSError as e:
            raise DriverError(f"Cannot read {self.config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise DriverError(f"Invalid YAML in {self.config_path}: {e}") from e

    def _save_yaml(self, config: TabletConfig) -> None:
        """Write the config file atomically.

        The existing file mode is kept; a new file gets NEW_CONFIG_MODE.
        """
        directory = self.config_path.parent
        try:
            mode = stat.S_IMODE(os.stat(self.config_path).st_mode)
        except FileNotFoundError:
            mode = NEW_CONFIG_MODE
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tablez-', suffix='.yaml')
        try:
            with os.fdopen(fd, 'w') as f:
                os.chmod(tmp_path, mode)
                yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, self.config_path)
        except BaseException:
            os.unlink(tmp_path)
            raise
