"""Pytest fixtures for Tablez Panel tests."""

import pytest

from tablez_panel.config import TabletConfig
from tablez_panel.errors import DriverError


class FakeDriver:
    """In-memory stand-in for the driver's read/write calls."""

    def __init__(self, config: TabletConfig = None):
        self.config = config if config is not None else TabletConfig()
        self.writes = []
        self.reads = 0
        self.fail_read = False
        self.fail_write = False

    async def read_config(self) -> TabletConfig:
        self.reads += 1
        if self.fail_read:
            raise DriverError("driver not running")
        return self.config

    async def write_config(self, config: TabletConfig) -> None:
        if self.fail_write:
            raise DriverError("socket closed")
        self.writes.append(config)
        self.config = config


@pytest.fixture
def sample_config_dict() -> dict:
    """Driver config payload as found in /etc/table_z_utils.yaml."""
    return {
        'xinput_name': 'Tablet Monitor Pen',
        'vendor_id': 0x08F2,
        'product_id': 0x6811,
        'interface': 2,
        'pen': {
            'max_x': 4096,
            'max_y': 4096,
            'max_pressure': 8191,
            'resolution_x': 200,
            'resolution_y': 200,
        },
        'actions': {
            'pen': 'BTN_TOOL_PEN',
            'stylus': 'BTN_STYLUS',
            'pen_touch': 'BTN_TOUCH',
            'tablet_buttons': [
                'KEY_LEFTCTRL+KEY_Z',
                'KEY_LEFTCTRL+KEY_Y',
                'KEY_B',
                'KEY_E',
            ],
        },
        'settings': {
            'swap_axis': False,
            'swap_direction_x': False,
            'swap_direction_y': True,
        },
    }


@pytest.fixture
def sample_config(sample_config_dict) -> TabletConfig:
    return TabletConfig.from_dict(sample_config_dict)


@pytest.fixture
def fake_driver(sample_config) -> FakeDriver:
    return FakeDriver(sample_config)
