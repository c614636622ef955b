"""
MIT License

Copyright (c) 2021 blanketsucks

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""
from typing import Any, Dict, TypedDict, Union
import importlib
import os
import pathlib

from .errors import InvalidSetting
from .utils import LOCALHOST, SETTING_ENV_PREFIX, validate_ip
from .websockets.frame import DEFAULT_MAX_FRAGMENTS
from .websockets.handshake import DEFAULT_MAX_HANDSHAKE_SIZE

__all__ = (
    'Settings',
    'DEFAULT_SETTINGS',
    'settings_from_file',
    'settings_from_env',
    'make_settings',
    'VALID_SETTINGS',
)

VALID_SETTINGS = (
    'host',
    'port',
    'max_handshake_size',
    'max_fragments',
    'strict',
)

DEFAULT_SETTINGS = {
    'host': LOCALHOST,
    'port': 8080,
    'max_handshake_size': DEFAULT_MAX_HANDSHAKE_SIZE,
    'max_fragments': DEFAULT_MAX_FRAGMENTS,
    'strict': False,
}

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off')

class Settings(TypedDict):
    """
    A :class:`typing.TypedDict` representing settings used by the server.
    """
    host: str
    port: int
    max_handshake_size: int
    max_fragments: int
    strict: bool

def _convert(key: str, value: Any) -> Any:
    default = DEFAULT_SETTINGS[key]

    if not isinstance(value, str) or isinstance(default, str):
        return value

    if isinstance(default, bool):
        lowered = value.casefold()

        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False

        raise InvalidSetting(f'Invalid boolean value for {key!r}: {value!r}')

    try:
        return type(default)(value)
    except ValueError:
        raise InvalidSetting(f'Invalid value for {key!r}: {value!r}') from None

def _validate(kwargs: Dict[str, Any]) -> Settings:
    try:
        kwargs['host'] = validate_ip(kwargs['host'])
    except ValueError as exc:
        raise InvalidSetting(str(exc)) from None

    for key in ('port', 'max_handshake_size', 'max_fragments'):
        if kwargs[key] < 0 or (key != 'port' and kwargs[key] == 0):
            raise InvalidSetting(f'{key!r} must be positive, got {kwargs[key]!r}')

    return Settings(**kwargs)

def make_settings(**kwargs: Any) -> Settings:
    """
    Creates settings from keyword arguments, filling in the defaults.

    Raises
    ------
    InvalidSetting: If an unknown or invalid setting is passed in.
    """
    for key in kwargs:
        if key not in VALID_SETTINGS:
            raise InvalidSetting(f'Unknown setting {key!r}')

    values = {**DEFAULT_SETTINGS, **kwargs}
    return _validate({key: _convert(key, value) for key, value in values.items()})

def settings_from_file(path: Union[str, pathlib.Path]) -> Settings:
    """
    Loads settings from a module. Module attributes are looked up by setting name.

    Parameters
    ----------
    path: Union[:class:`str`, :class:`pathlib.Path`]
        The import path of the module to load settings from.
    """
    if isinstance(path, pathlib.Path):
        path = str(path)

    module = importlib.import_module(path)

    kwargs: Dict[str, Any] = {}
    
    for key, default in DEFAULT_SETTINGS.items():
        kwargs[key] = _convert(key, getattr(module, key.casefold(), default))

    return _validate(kwargs)

def settings_from_env() -> Settings:
    """
    Loads settings from ``SWITCHBACK_<SETTING>`` environment variables.
    """
    env = os.environ
    kwargs: Dict[str, Any] = {}

    for key, default in DEFAULT_SETTINGS.items():
        item = SETTING_ENV_PREFIX + key.upper()
        kwargs[key] = _convert(key, env.get(item, default))

    return _validate(kwargs)
