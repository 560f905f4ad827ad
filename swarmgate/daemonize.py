"""Detach the current process from its controlling terminal."""

import logging
import os
import sys

from swarmgate.errors import DaemonizeError

log = logging.getLogger(__name__)


def is_supported() -> bool:
	return hasattr(os, "fork") and hasattr(os, "setsid")


def daemonize(change_dir: bool = False, close_stdio: bool = True) -> None:
	"""Run the rest of the program in a detached child process.

	The calling process exits immediately with status 0 once the child is forked. The child becomes the leader of a new session, so it has no controlling terminal.

	Args:
		change_dir: Change the working directory of the child to "/".
		close_stdio: Redirect the standard streams of the child to /dev/null.

	Raises:
		DaemonizeError: If the platform does not support it or a system call fails.
	"""
	if not is_supported():
		raise DaemonizeError(f"daemon mode is not supported on {sys.platform}")
	sys.stdout.flush()
	sys.stderr.flush()
	try:
		pid = os.fork()
	except OSError as e:
		raise DaemonizeError(f"fork failed: {e}") from e
	if pid > 0:
		os._exit(0)
	try:
		os.setsid()
		if change_dir:
			os.chdir("/")
		if close_stdio:
			_redirect_stdio()
	except OSError as e:
		raise DaemonizeError(f"unable to detach: {e}") from e
	log.info("Daemonized with PID %d", os.getpid())


def _redirect_stdio() -> None:
	devnull = os.open(os.devnull, os.O_RDWR)
	try:
		for fd in (0, 1, 2):
			os.dup2(devnull, fd)
	finally:
		if devnull > 2:
			os.close(devnull)
