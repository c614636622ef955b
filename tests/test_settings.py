import sys
import types

import pytest

from switchback.errors import InvalidSetting
from switchback.settings import DEFAULT_SETTINGS, make_settings, settings_from_env, settings_from_file


def test_defaults():
    settings = make_settings()

    assert settings == DEFAULT_SETTINGS
    assert settings['port'] == 8080
    assert settings['strict'] is False


def test_unknown_setting():
    with pytest.raises(InvalidSetting):
        make_settings(colour='blue')


def test_invalid_host():
    with pytest.raises(InvalidSetting):
        make_settings(host='not an ip')


def test_non_positive_limits():
    with pytest.raises(InvalidSetting):
        make_settings(max_fragments=0)


def test_from_env(monkeypatch):
    monkeypatch.setenv('SWITCHBACK_PORT', '9001')
    monkeypatch.setenv('SWITCHBACK_STRICT', 'yes')
    monkeypatch.setenv('SWITCHBACK_MAX_FRAGMENTS', '16')

    settings = settings_from_env()

    assert settings['port'] == 9001
    assert settings['strict'] is True
    assert settings['max_fragments'] == 16
    assert settings['host'] == '127.0.0.1'


def test_from_env_invalid_value(monkeypatch):
    monkeypatch.setenv('SWITCHBACK_STRICT', 'maybe')

    with pytest.raises(InvalidSetting):
        settings_from_env()


def test_from_file(monkeypatch):
    module = types.ModuleType('switchback_test_settings')
    module.port = 7000
    module.max_handshake_size = 1024
    monkeypatch.setitem(sys.modules, module.__name__, module)

    settings = settings_from_file(module.__name__)

    assert settings['port'] == 7000
    assert settings['max_handshake_size'] == 1024
    assert settings['max_fragments'] == DEFAULT_SETTINGS['max_fragments']
