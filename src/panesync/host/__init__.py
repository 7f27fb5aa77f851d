"""Filesystem backends."""

from panesync.host.bridge import HostBridge
from panesync.host.localhost import Localhost, entry_from_path

__all__ = [
    "HostBridge",
    "Localhost",
    "entry_from_path",
]
