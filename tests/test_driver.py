"""Tests for the driver socket client."""

import asyncio
import json
import logging
import os
import shutil
import stat
import tempfile

import pytest
import yaml
from tablez_panel.channels import BUTTON, POINTER, EventChannels
from tablez_panel.config import replace_field
from tablez_panel.driver import DriverClient, parse_event
from tablez_panel.errors import DriverError


@pytest.fixture
def socket_path():
    # Unix socket paths are length-limited, keep it short
    directory = tempfile.mkdtemp(prefix='tz')
    yield os.path.join(directory, 'd.sock')
    shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture
def config_file(tmp_path, sample_config_dict):
    path = tmp_path / 'table_z_utils.yaml'
    path.write_text(yaml.safe_dump(sample_config_dict))
    return path


class TestParseEvent:
    """Tests for telemetry line decoding."""

    def test_pen_event(self):
        line = b'{"Pen": {"x": 1200, "y": 800, "pressure": 350, "touch": true}}\n'
        assert parse_event(line) == (POINTER, {'x': 1200, 'y': 800, 'pressure': 350, 'touch': True})

    def test_button_event(self):
        assert parse_event('{"Btn": {"key": 29, "pressed": true, "index": 0}}') == \
            (BUTTON, {'key': 29, 'pressed': True, 'index': 0})

    @pytest.mark.parametrize('line', [
        b'',
        b'\n',
        b'not json\n',
        b'[1, 2]\n',
        b'{"Pen": {}, "Btn": {}}\n',
        b'{"Wheel": {"delta": 1}}\n',
        b'{"Pen": 5}\n',
        b'\xff\xfe\n',
    ])
    def test_dropped(self, line):
        assert parse_event(line) is None


class TestReadConfig:
    """Tests for reading the driver config file."""

    def test_read(self, config_file, sample_config):
        client = DriverClient(config_path=str(config_file))
        assert asyncio.run(client.read_config()) == sample_config

    def test_missing_file(self, tmp_path):
        client = DriverClient(config_path=str(tmp_path / 'missing.yaml'))
        with pytest.raises(DriverError, match="Cannot read"):
            asyncio.run(client.read_config())

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text('pen: [unclosed\n')
        client = DriverClient(config_path=str(path))
        with pytest.raises(DriverError, match="Invalid YAML"):
            asyncio.run(client.read_config())

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n')
        client = DriverClient(config_path=str(path))
        with pytest.raises(DriverError, match="Invalid config"):
            asyncio.run(client.read_config())

    def test_empty_file_defaults(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        client = DriverClient(config_path=str(path))
        config = asyncio.run(client.read_config())
        assert config.actions.tablet_buttons == ('',) * 8


class TestWriteConfig:
    """Tests for sending configs to a driver socket."""

    def test_sends_json_line_and_persists(self, socket_path, config_file, sample_config):
        received = []

        async def handle(reader, writer):
            received.append(await reader.readline())
            writer.close()

        async def scenario():
            server = await asyncio.start_unix_server(handle, path=socket_path)
            updated = replace_field(sample_config, 'settings.swap_axis', True)
            async with DriverClient(socket_path, str(config_file)) as client:
                await client.write_config(updated)
                await asyncio.sleep(0.05)
            server.close()
            await server.wait_closed()
            return updated

        updated = asyncio.run(scenario())
        assert json.loads(received[0]) == updated.to_dict()
        on_disk = yaml.safe_load(config_file.read_text())
        assert on_disk['settings']['swap_axis'] is True
        assert len(on_disk['actions']['tablet_buttons']) == 8

    def test_no_persist(self, socket_path, config_file, sample_config):
        before = config_file.read_text()

        async def handle(reader, writer):
            await reader.readline()
            writer.close()

        async def scenario():
            server = await asyncio.start_unix_server(handle, path=socket_path)
            client = DriverClient(socket_path, str(config_file), persist=False)
            await client.write_config(replace_field(sample_config, 'settings.swap_axis', True))
            await client.close()
            server.close()
            await server.wait_closed()

        asyncio.run(scenario())
        assert config_file.read_text() == before

    def test_persist_keeps_file_mode(self, socket_path, config_file):
        """Rewriting the config file does not change its permissions."""
        os.chmod(config_file, 0o644)

        async def handle(reader, writer):
            await reader.readline()
            writer.close()

        async def scenario():
            server = await asyncio.start_unix_server(handle, path=socket_path)
            async with DriverClient(socket_path, str(config_file)) as client:
                await client.write_config(await client.read_config())
            server.close()
            await server.wait_closed()

        asyncio.run(scenario())
        assert stat.S_IMODE(os.stat(config_file).st_mode) == 0o644

    def test_persist_failure_only_warns(self, socket_path, tmp_path, sample_config, caplog):
        """The driver already has the config when the file cannot be written."""
        received = []
        config_path = tmp_path / 'missing' / 'table_z_utils.yaml'

        async def handle(reader, writer):
            received.append(await reader.readline())
            writer.close()

        async def scenario():
            server = await asyncio.start_unix_server(handle, path=socket_path)
            async with DriverClient(socket_path, str(config_path)) as client:
                await client.write_config(sample_config)
                await asyncio.sleep(0.05)
            server.close()
            await server.wait_closed()

        with caplog.at_level(logging.WARNING, logger="tablez.driver"):
            asyncio.run(scenario())
        assert json.loads(received[0]) == sample_config.to_dict()
        assert 'Could not persist config' in caplog.text
        assert not config_path.exists()

    def test_driver_not_running(self, socket_path, sample_config):
        client = DriverClient(socket_path)
        with pytest.raises(DriverError, match="Cannot connect"):
            asyncio.run(client.write_config(sample_config))


class TestTelemetry:
    """Tests for the event reader loop."""

    def test_events_emitted(self, socket_path):
        lines = [
            b'{"Pen": {"x": 10, "y": 20, "pressure": 5, "touch": false}}\n',
            b'garbage\n',
            b'{"Btn": {"key": 30, "pressed": true, "index": 2}}\n',
        ]

        async def handle(reader, writer):
            for line in lines:
                writer.write(line)
            await writer.drain()
            writer.close()

        async def scenario():
            channels = EventChannels()
            seen = []
            channels.subscribe(POINTER, lambda p: seen.append((POINTER, p)))
            channels.subscribe(BUTTON, lambda p: seen.append((BUTTON, p)))
            server = await asyncio.start_unix_server(handle, path=socket_path)
            client = DriverClient(socket_path, channels=channels)
            await client.start()
            server.close()
            await server.wait_closed()
            return client, seen

        client, seen = asyncio.run(scenario())
        assert seen == [
            (POINTER, {'x': 10, 'y': 20, 'pressure': 5, 'touch': False}),
            (BUTTON, {'key': 30, 'pressed': True, 'index': 2}),
        ]
        assert not client.is_connected()
