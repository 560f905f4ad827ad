"""Tests for the signal handling."""

import faulthandler
import os
import signal
import subprocess
import sys
import threading
from pathlib import Path
from unittest import mock

import pytest

from swarmgate.signal_bridge import (
	FAULT_SIGNALS,
	SIGNAL_NAMES,
	TERMINATION_SIGNALS,
	ShutdownRequest,
	SignalBridge,
	signal_name,
	termination_notice,
)

posix_only = pytest.mark.skipif(
	sys.platform == "win32", reason="POSIX signal delivery only"
)


@pytest.fixture
def notice_pipe():
	"""Return the read and write ends of a pipe receiving the notices."""
	read_fd, write_fd = os.pipe()
	yield read_fd, write_fd
	os.close(read_fd)
	os.close(write_fd)


@pytest.fixture
def bridge(notice_pipe):
	"""Return a bridge writing its notices to a pipe."""
	_, write_fd = notice_pipe
	bridge = SignalBridge(ShutdownRequest(), stream_fd=write_fd)
	yield bridge
	bridge.uninstall()


class TestSignalNames:
	"""Tests for the signal name table."""

	def test_known_names(self):
		"""Standard signals have their symbolic names."""
		assert SIGNAL_NAMES[signal.SIGINT] == "SIGINT"
		assert SIGNAL_NAMES[signal.SIGTERM] == "SIGTERM"
		assert signal_name(signal.SIGSEGV) == "SIGSEGV"

	def test_unknown_signal(self):
		"""Unknown numbers get a generic name."""
		assert signal_name(1000) == "signal 1000"

	def test_read_only(self):
		"""The table cannot be modified."""
		with pytest.raises(TypeError):
			SIGNAL_NAMES[signal.SIGINT] = "other"

	def test_signal_sets(self):
		"""Termination and fault signals are distinct."""
		assert signal.SIGINT in TERMINATION_SIGNALS
		assert signal.SIGTERM in TERMINATION_SIGNALS
		assert signal.SIGSEGV in FAULT_SIGNALS
		assert not set(TERMINATION_SIGNALS) & set(FAULT_SIGNALS)

	def test_termination_notice(self):
		"""The notice names the signal."""
		assert termination_notice(signal.SIGTERM) == (
			b"Catching signal: SIGTERM\nExiting cleanly\n"
		)


class TestShutdownRequest:
	"""Tests for ShutdownRequest."""

	def test_initial_state(self):
		"""No shutdown is requested initially."""
		shutdown = ShutdownRequest()
		assert not shutdown.is_requested()
		assert shutdown.signum is None

	def test_request(self):
		"""A request is remembered with its signal."""
		shutdown = ShutdownRequest()
		shutdown.request(signal.SIGTERM)
		assert shutdown.is_requested()
		assert shutdown.signum == signal.SIGTERM

	def test_wait_timeout(self):
		"""wait returns False when nothing is requested in time."""
		assert not ShutdownRequest().wait(0.05)

	def test_wait_from_thread(self):
		"""wait returns once another thread requests the shutdown."""
		shutdown = ShutdownRequest()
		timer = threading.Timer(0.05, shutdown.request)
		timer.start()
		try:
			assert shutdown.wait(5)
		finally:
			timer.cancel()


class TestSignalBridge:
	"""Tests for SignalBridge."""

	def test_install_and_uninstall(self, bridge):
		"""Previous handlers are restored by uninstall."""
		previous = signal.getsignal(signal.SIGTERM)
		bridge.install_termination_handlers([signal.SIGTERM])
		assert signal.getsignal(signal.SIGTERM) == bridge._on_termination_signal
		bridge.uninstall()
		assert signal.getsignal(signal.SIGTERM) == previous

	def test_handler_writes_and_flags(self, bridge, notice_pipe):
		"""The handler writes the notice, flags the shutdown and resets the disposition."""
		read_fd, _ = notice_pipe
		previous = signal.getsignal(signal.SIGINT)
		bridge.install_termination_handlers([signal.SIGINT])
		try:
			bridge._on_termination_signal(signal.SIGINT, None)
			assert os.read(read_fd, 1024) == (
				b"Catching signal: SIGINT\nExiting cleanly\n"
			)
			assert bridge.shutdown.is_requested()
			assert bridge.shutdown.signum == signal.SIGINT
			assert signal.getsignal(signal.SIGINT) == signal.SIG_DFL
		finally:
			signal.signal(signal.SIGINT, previous)

	@posix_only
	def test_real_sigterm(self, bridge, notice_pipe):
		"""A real SIGTERM is turned into a shutdown request."""
		read_fd, _ = notice_pipe
		previous = signal.getsignal(signal.SIGTERM)
		bridge.install_termination_handlers([signal.SIGTERM])
		try:
			os.kill(os.getpid(), signal.SIGTERM)
			assert bridge.shutdown.wait(5)
			assert b"SIGTERM" in os.read(read_fd, 1024)
			assert signal.getsignal(signal.SIGTERM) == signal.SIG_DFL
		finally:
			signal.signal(signal.SIGTERM, previous)

	def test_fallback_stream(self, notice_pipe):
		"""The notice goes to the fallback descriptor when the stream fails."""
		read_fd, write_fd = notice_pipe
		closed_read, closed_write = os.pipe()
		os.close(closed_read)
		os.close(closed_write)
		bridge = SignalBridge(
			ShutdownRequest(), stream_fd=closed_write, fallback_fd=write_fd
		)
		bridge._write_notice(b"notice\n")
		assert os.read(read_fd, 1024) == b"notice\n"

	def test_fault_handlers(self, bridge):
		"""Crash diagnostics are enabled and disabled with the bridge."""
		was_enabled = faulthandler.is_enabled()
		try:
			assert bridge.install_fault_handlers()
			assert faulthandler.is_enabled()
			bridge.uninstall()
			assert not faulthandler.is_enabled()
		finally:
			if was_enabled:
				faulthandler.enable()

	def test_fault_handlers_unavailable(self, bridge, caplog):
		"""A failure to enable the diagnostics is logged."""
		with mock.patch(
			"faulthandler.enable", side_effect=RuntimeError("no stderr")
		):
			assert not bridge.install_fault_handlers()
		assert "Crash diagnostics unavailable" in caplog.text


ROOT_DIR = Path(__file__).resolve().parents[1]

CHILD_PRELUDE = """
import os, signal, sys, time
from swarmgate.signal_bridge import ShutdownRequest, SignalBridge
bridge = SignalBridge(ShutdownRequest())
"""


def start_child(code: str) -> subprocess.Popen:
	"""Start a Python process running code after creating a bridge."""
	env = dict(os.environ)
	env["PYTHONPATH"] = os.pathsep.join(
		filter(None, (str(ROOT_DIR), env.get("PYTHONPATH")))
	)
	return subprocess.Popen(
		[sys.executable, "-c", CHILD_PRELUDE + code],
		stdout=subprocess.PIPE,
		stderr=subprocess.PIPE,
		env=env,
		text=True,
	)


@posix_only
class TestSignalDelivery:
	"""Tests delivering real signals to a separate process."""

	def test_second_termination_signal_kills(self):
		"""A second SIGTERM terminates the process with the default disposition."""
		child = start_child(
			"bridge.install_termination_handlers()\n"
			"print('ready', flush=True)\n"
			"bridge.shutdown.wait()\n"
			"print('requested', flush=True)\n"
			"while True:\n"
			"    time.sleep(0.05)\n"
		)
		try:
			assert child.stdout.readline() == "ready\n"
			child.send_signal(signal.SIGTERM)
			first_line = child.stderr.readline()
			assert first_line == "Catching signal: SIGTERM\n"
			assert child.stdout.readline() == "requested\n"
			child.send_signal(signal.SIGTERM)
			child.wait(timeout=10)
			rest = child.stderr.read()
		finally:
			if child.poll() is None:
				child.kill()
				child.communicate()
		assert child.returncode == -signal.SIGTERM
		assert (first_line + rest).count("Catching signal: SIGTERM") == 1
		assert rest.startswith("Exiting cleanly\n")

	def test_fault_signal_dumps_and_reraises(self):
		"""A fault signal prints the stacks then kills the process with it."""
		child = start_child(
			"bridge.install_fault_handlers()\n"
			"os.kill(os.getpid(), signal.SIGSEGV)\n"
			"time.sleep(5)\n"
		)
		try:
			_, stderr = child.communicate(timeout=10)
		finally:
			if child.poll() is None:
				child.kill()
				child.communicate()
		assert child.returncode == -signal.SIGSEGV
		assert "Fatal Python error" in stderr
		assert "most recent call first" in stderr
		assert "Catching signal" not in stderr
