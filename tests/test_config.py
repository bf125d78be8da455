"""Tests for TabletConfig parsing and updates."""

import logging

import pytest
from tablez_panel.config import TabletConfig, PenConfig, SettingsConfig, replace_field
from tablez_panel.errors import ConfigError


class TestFromDict:
    """Tests for boundary parsing."""

    def test_full_payload(self, sample_config_dict):
        config = TabletConfig.from_dict(sample_config_dict)
        assert config.xinput_name == 'Tablet Monitor Pen'
        assert config.vendor_id == 0x08F2
        assert config.interface == 2
        assert config.pen == PenConfig(4096, 4096, 8191, 200, 200)
        assert config.actions.pen == 'BTN_TOOL_PEN'
        assert config.settings.swap_direction_y is True

    def test_buttons_padded(self, sample_config_dict):
        """Short button lists are padded with empty mappings."""
        config = TabletConfig.from_dict(sample_config_dict)
        assert len(config.actions.tablet_buttons) == 8
        assert config.actions.tablet_buttons[0] == 'KEY_LEFTCTRL+KEY_Z'
        assert config.actions.tablet_buttons[4:] == ('', '', '', '')

    def test_empty_payload_uses_defaults(self):
        config = TabletConfig.from_dict({})
        assert config == TabletConfig()
        assert config.actions.tablet_buttons == ('',) * 8

    def test_unknown_keys_ignored(self, sample_config_dict):
        sample_config_dict['firmware'] = 'v2'
        sample_config_dict['settings']['turbo'] = True
        config = TabletConfig.from_dict(sample_config_dict)
        assert config.settings == SettingsConfig(False, False, True)

    def test_string_numbers_coerced(self):
        config = TabletConfig.from_dict({'vendor_id': '0x08f2', 'pen': {'max_x': '4096'}})
        assert config.vendor_id == 0x08F2
        assert config.pen.max_x == 4096

    def test_int_flags_coerced(self):
        config = TabletConfig.from_dict({'settings': {'swap_axis': 1}})
        assert config.settings.swap_axis is True

    def test_bad_value_defaults(self, caplog):
        """Unusable values fall back to the default with a warning."""
        with caplog.at_level(logging.WARNING, logger="tablez.config"):
            config = TabletConfig.from_dict({'pen': {'max_x': 'wide'}, 'settings': {'swap_axis': 'maybe'}})
        assert config.pen.max_x == 0
        assert config.settings.swap_axis is False
        assert 'pen.max_x' in caplog.text

    def test_bad_section_defaults(self):
        config = TabletConfig.from_dict({'pen': [1, 2, 3]})
        assert config.pen == PenConfig()

    def test_bad_button_entries_cleared(self):
        config = TabletConfig.from_dict({'actions': {'tablet_buttons': ['KEY_A', 5, None]}})
        assert config.actions.tablet_buttons[:3] == ('KEY_A', '', '')

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError, match="Expected a mapping"):
            TabletConfig.from_dict(['not', 'a', 'config'])

    def test_to_dict_round_trip(self, sample_config):
        assert TabletConfig.from_dict(sample_config.to_dict()) == sample_config

    def test_to_dict_shape(self, sample_config):
        data = sample_config.to_dict()
        assert set(data) == {'xinput_name', 'vendor_id', 'product_id', 'interface',
                             'pen', 'actions', 'settings'}
        assert isinstance(data['actions']['tablet_buttons'], list)


class TestReplaceField:
    """Tests for immutable leaf updates."""

    def test_settings_flag(self, sample_config):
        updated = replace_field(sample_config, 'settings.swap_axis', True)
        assert updated.settings.swap_axis is True
        assert sample_config.settings.swap_axis is False

    def test_untouched_branches_shared(self, sample_config):
        """Only the touched branch is rebuilt."""
        updated = replace_field(sample_config, 'settings.swap_axis', True)
        assert updated.pen is sample_config.pen
        assert updated.actions is sample_config.actions
        assert updated.settings is not sample_config.settings

    def test_button_slot(self, sample_config):
        updated = replace_field(sample_config, 'actions.tablet_buttons.5', 'KEY_F5')
        assert updated.actions.tablet_buttons[5] == 'KEY_F5'
        assert updated.actions.tablet_buttons[0] == 'KEY_LEFTCTRL+KEY_Z'

    def test_identity_field(self, sample_config):
        updated = replace_field(sample_config, 'xinput_name', 'Other')
        assert updated.xinput_name == 'Other'

    def test_unknown_path(self, sample_config):
        with pytest.raises(ConfigError, match="Unknown config field"):
            replace_field(sample_config, 'settings.turbo', True)

    def test_section_not_a_leaf(self, sample_config):
        with pytest.raises(ConfigError):
            replace_field(sample_config, 'pen', PenConfig())

    def test_wrong_type(self, sample_config):
        with pytest.raises(ConfigError, match="expects bool"):
            replace_field(sample_config, 'settings.swap_axis', 1)

    def test_button_index_out_of_range(self, sample_config):
        with pytest.raises(ConfigError, match="out of range"):
            replace_field(sample_config, 'actions.tablet_buttons.8', 'KEY_A')


class TestDiff:
    """Tests for diff()."""

    def test_identical(self, sample_config):
        assert sample_config.diff(sample_config) == {}

    def test_changes(self, sample_config):
        other = replace_field(sample_config, 'settings.swap_axis', True)
        other = replace_field(other, 'actions.tablet_buttons.2', '')
        assert sample_config.diff(other) == {
            'actions.tablet_buttons.2': ('KEY_B', ''),
            'settings.swap_axis': (False, True),
        }


class TestRepr:

    def test_repr(self, sample_config):
        r = repr(sample_config)
        assert 'Tablet Monitor Pen' in r
        assert '08f2:6811' in r
        assert '4 buttons mapped' in r
