from .discovery_cmds import register as register_discovery
from .server_cmds import register as register_server

__all__ = [
    "register_discovery",
    "register_server",
]
