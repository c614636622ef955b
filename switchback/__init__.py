"""
A small, blocking implementation of the server side of the websocket protocol.
"""
from .errors import *
from .utils import *
from .websockets import *
from .streams import *
from .settings import *
from .server import *

from . import websockets, server, settings, streams

__version__ = '0.1.0'
