"""Instance lock management for swarmgate."""

import sys

if sys.platform == "win32":
	from .windows_instance_guard import WindowsInstanceGuard as InstanceGuard
else:
	from .posix_instance_guard import PosixInstanceGuard as InstanceGuard

__all__ = ["InstanceGuard"]
