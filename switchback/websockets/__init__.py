from .enums import *
from .errors import *
from .frame import *
from .handshake import *
from .session import *
