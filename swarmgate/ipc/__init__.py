"""Inter-process communication module for swarmgate.

This module provides platform-specific IPC implementations used to hand the parameters of a new invocation to the running instance.
"""

import sys

from .ipc_model import ParamsSignal, ShutdownSignal

if sys.platform == "win32":
	from .windows_ipc import WindowsIpc as SwarmgateIpc
else:
	from .unix_ipc import UnixIpc as SwarmgateIpc

__all__ = ["ParamsSignal", "ShutdownSignal", "SwarmgateIpc"]
