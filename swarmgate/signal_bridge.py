"""Bridge between OS signals and the cooperative shutdown of the engine.

Termination signals never tear anything down from the handler. The handler writes a pre-encoded notice on the standard error stream with a raw os.write, flags the ShutdownRequest observed by the engine loop, and restores the default disposition so that a second signal kills the process.

Fault signals are left to faulthandler, which dumps the stack of every thread from C code, then restores the default disposition and re-raises the signal so the OS terminates the process as usual.
"""

from __future__ import annotations

import faulthandler
import logging
import os
import signal
import time
from types import FrameType, MappingProxyType
from typing import Iterable, Optional

from swarmgate.consts import CRASH_REPORT_HINT

log = logging.getLogger(__name__)

# signal number to symbolic name, aliases such as SIGIOT are left out
SIGNAL_NAMES = MappingProxyType({sig.value: sig.name for sig in signal.Signals})

TERMINATION_SIGNALS = tuple(
	getattr(signal, name)
	for name in ("SIGINT", "SIGTERM", "SIGBREAK")
	if hasattr(signal, name)
)

FAULT_SIGNALS = tuple(
	getattr(signal, name)
	for name in ("SIGABRT", "SIGSEGV", "SIGFPE", "SIGBUS", "SIGILL")
	if hasattr(signal, name)
)

STDERR_FILENO = 2
STDOUT_FILENO = 1


def signal_name(signum: int) -> str:
	"""Get the symbolic name of a signal.

	Args:
		signum: The signal number.

	Returns:
		The name, for example "SIGTERM", or "signal <n>" for an unknown number.
	"""
	return SIGNAL_NAMES.get(signum, f"signal {signum}")


def termination_notice(signum: int) -> bytes:
	"""Build the notice written when a termination signal is caught.

	Args:
		signum: The signal number.

	Returns:
		The encoded notice.
	"""
	return f"Catching signal: {signal_name(signum)}\nExiting cleanly\n".encode(
		"ascii"
	)


class ShutdownRequest:
	"""Flag set from a signal handler and observed by the main loop.

	Setting the flag is a plain attribute assignment: no lock is taken, so it is safe from a signal handler interrupting the main thread anywhere.
	"""

	# interval between two checks of the flag in wait()
	POLL_INTERVAL = 0.1

	def __init__(self):
		self._requested = False
		self.signum: Optional[int] = None

	def request(self, signum: Optional[int] = None) -> None:
		"""Ask the main loop to stop.

		Args:
			signum: The signal that caused the request, if any.
		"""
		self.signum = signum
		self._requested = True

	def is_requested(self) -> bool:
		"""Check whether a shutdown was requested."""
		return self._requested

	def wait(self, timeout: Optional[float] = None) -> bool:
		"""Block until a shutdown is requested or the timeout expires.

		Args:
			timeout: Maximal time to wait in seconds, None to wait forever.

		Returns:
			True if a shutdown was requested.
		"""
		deadline = None if timeout is None else time.monotonic() + timeout
		while not self._requested:
			if deadline is None:
				time.sleep(self.POLL_INTERVAL)
				continue
			remaining = deadline - time.monotonic()
			if remaining <= 0:
				break
			time.sleep(min(self.POLL_INTERVAL, remaining))
		return self._requested


class SignalBridge:
	"""Install and remove the termination and fault signal handlers."""

	def __init__(
		self,
		shutdown: ShutdownRequest,
		stream_fd: int = STDERR_FILENO,
		fallback_fd: int = STDOUT_FILENO,
	):
		"""Initialize the bridge.

		Args:
			shutdown: Flag raised when a termination signal is caught.
			stream_fd: File descriptor receiving the notices.
			fallback_fd: File descriptor used when writing to stream_fd fails.
		"""
		self.shutdown = shutdown
		self.stream_fd = stream_fd
		self.fallback_fd = fallback_fd
		self._notices: dict[int, bytes] = {}
		self._previous_handlers = {}
		self._fault_handler_enabled = False

	def install_termination_handlers(
		self, signals: Iterable[int] = TERMINATION_SIGNALS
	) -> None:
		"""Route the termination signals to the shutdown request.

		Must be called from the main thread.

		Args:
			signals: The signals to handle.
		"""
		for signum in signals:
			# encoded now, the handler only writes existing bytes
			self._notices[signum] = termination_notice(signum)
			self._previous_handlers[signum] = signal.signal(
				signum, self._on_termination_signal
			)
			log.debug("Handler installed for %s", signal_name(signum))

	def install_fault_handlers(self) -> bool:
		"""Enable the crash diagnostics for the fault signals.

		Returns:
			True if the diagnostics are enabled.
		"""
		try:
			faulthandler.enable(file=self.stream_fd, all_threads=True)
		except (AttributeError, OSError, RuntimeError, ValueError) as e:
			log.warning("Crash diagnostics unavailable: %s", e)
			return False
		self._fault_handler_enabled = True
		log.debug(
			"Crash diagnostics enabled for %s",
			", ".join(signal_name(signum) for signum in FAULT_SIGNALS),
		)
		log.debug(CRASH_REPORT_HINT)
		return True

	def _write_notice(self, data: bytes) -> None:
		try:
			written = os.write(self.stream_fd, data)
		except OSError:
			written = -1
		if written < len(data):
			try:
				os.write(self.fallback_fd, data)
			except OSError:
				pass

	def _on_termination_signal(
		self, signum: int, frame: Optional[FrameType]
	) -> None:
		self._write_notice(self._notices[signum])
		self.shutdown.request(signum)
		signal.signal(signum, signal.SIG_DFL)

	def uninstall(self) -> None:
		"""Restore the handlers replaced by install_termination_handlers and disable the crash diagnostics."""
		for signum, handler in self._previous_handlers.items():
			if signal.getsignal(signum) == self._on_termination_signal:
				signal.signal(signum, handler)
		self._previous_handlers.clear()
		if self._fault_handler_enabled:
			faulthandler.disable()
			self._fault_handler_enabled = False
