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
from typing import Optional
import socket

__all__ = (
    'LOCALHOST',
    'LOCALHOST_V6',
    'CRLF',
    'GUID',
    'SETTING_ENV_PREFIX',
    'is_ipv6',
    'is_ipv4',
    'validate_ip',
)

LOCALHOST = '127.0.0.1'
LOCALHOST_V6 = '::1'

CRLF = b'\r\n'

# Fixed by RFC 6455, section 1.3
GUID = '258EAFA5-E914-47DA-95CA-C5AB0DC85B11'

SETTING_ENV_PREFIX = 'SWITCHBACK_'

def is_ipv6(ip: str) -> bool:
    """
    A helper function that checks if a given IP address is a valid IPv6 one.
    
    Parameters
    ----------
    ip: :class:`str`
        A string representing an IP address.
    """
    try:
        socket.inet_pton(socket.AF_INET6, ip)
        return True
    except OSError:
        return False

def is_ipv4(ip: str) -> bool:
    """
    A helper function that checks if a given IP address is a valid IPv4 one.
    
    Parameters
    ----------
    ip: :class:`str`
        A string representing an IP address.
    """
    try:
        socket.inet_aton(ip)
        return True
    except OSError:
        return False

def validate_ip(ip: Optional[str] = None, *, ipv6: bool = False) -> str:
    """
    A helper function that validates an IP address.
    If an IP address is not given it will return the localhost address.

    Parameters
    ----------
    ip: Optional[:class:`str`]
        The IP address to validate.
    ipv6: Optional[:class:`bool`]
        Whether to validate an IPv6 address or not. Defaults to `False`.
    """
    if not ip:
        if ipv6:
            return LOCALHOST_V6

        return LOCALHOST

    if ipv6:
        if not is_ipv6(ip):
            raise ValueError(f'{ip!r} is not a valid IPv6 address')
    elif not is_ipv4(ip):
        raise ValueError(f'{ip!r} is not a valid IPv4 address')

    return ip
