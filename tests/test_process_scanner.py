"""Tests for the process table scan."""

import sys
from types import SimpleNamespace
from unittest import mock

import psutil
import pytest

from swarmgate.errors import ProcessScanError
from swarmgate.process_scanner import (
	ProcessDescriptor,
	program_arguments,
	scan,
)


def fake_process(pid, name, cmdline):
	"""Build an object looking like a psutil.Process with its info filled."""
	return SimpleNamespace(info={"pid": pid, "name": name, "cmdline": cmdline})


@pytest.fixture
def process_table():
	"""Return a process table with several swarmgate processes."""
	return [
		fake_process(1, "systemd", ["/sbin/init"]),
		fake_process(100, "swarmgate", ["/usr/bin/swarmgate"]),
		fake_process(
			101,
			"swarmgate-nox",
			["/usr/bin/swarmgate-nox", "-d", "--configuration=work"],
		),
		fake_process(
			102, "python3", ["/usr/bin/python3", "/usr/local/bin/swarmgate"]
		),
		fake_process(103, "python3", ["python3", "-m", "swarmgate", "x.torrent"]),
		fake_process(104, "swarmgate", None),
		fake_process(105, "vim", ["vim", "swarmgate.conf"]),
		fake_process(106, "python3", ["python3", "tool.py", "swarmgate"]),
	]


class TestScan:
	"""Tests for scan."""

	def test_finds_program_instances(self, process_table):
		"""Every form of the program is found, other processes are not."""
		with mock.patch("psutil.process_iter", return_value=process_table):
			result = scan(self_pid=999)
		assert [p.pid for p in result] == [100, 101, 102, 103, 104]

	def test_excludes_self(self, process_table):
		"""The calling process is never returned."""
		with mock.patch("psutil.process_iter", return_value=process_table):
			result = scan(self_pid=101)
		assert 101 not in [p.pid for p in result]

	def test_arguments(self, process_table):
		"""The arguments following the program are returned."""
		with mock.patch("psutil.process_iter", return_value=process_table):
			result = {p.pid: p.arguments for p in scan(self_pid=999)}
		assert result[100] == ()
		assert result[101] == ("-d", "--configuration=work")
		assert result[102] == ()
		assert result[103] == ("x.torrent",)

	def test_unreadable_arguments(self, process_table):
		"""A process whose arguments cannot be read has empty arguments."""
		with mock.patch("psutil.process_iter", return_value=process_table):
			result = {p.pid: p.arguments for p in scan(self_pid=999)}
		assert result[104] == ()

	def test_empty_table(self):
		"""No process gives an empty list."""
		with mock.patch("psutil.process_iter", return_value=[]):
			assert scan(self_pid=1) == []

	def test_enumeration_failure(self):
		"""A failure of the enumeration raises ProcessScanError."""
		with mock.patch(
			"psutil.process_iter", side_effect=psutil.AccessDenied()
		):
			with pytest.raises(ProcessScanError):
				scan(self_pid=1)

	def test_os_error(self):
		"""An OS error while reading the table raises ProcessScanError."""
		with mock.patch("psutil.process_iter", side_effect=OSError("no /proc")):
			with pytest.raises(ProcessScanError):
				scan(self_pid=1)

	def test_real_process_table(self):
		"""Scanning the real process table does not fail."""
		result = scan(self_pid=psutil.Process().pid)
		assert all(isinstance(p, ProcessDescriptor) for p in result)


class TestProgramArguments:
	"""Tests for program_arguments."""

	@pytest.mark.parametrize(
		("name", "cmdline", "expected"),
		[
			("swarmgate", ["swarmgate", "-v"], ("-v",)),
			("SWARMGATE.EXE", ["C:\\bin\\SWARMGATE.EXE"], ()),
			("swarmgate-nox", ["./swarmgate-nox", "a"], ("a",)),
			("python", ["python", "/opt/swarmgate.py", "b"], ("b",)),
			("python3.12", ["python3.12", "-m", "swarmgate", "c"], ("c",)),
			("swarmgate", [], ()),
			("bash", ["bash", "-c", "swarmgate"], None),
			("python3", ["python3", "other.py", "swarmgate"], None),
			("swarmgatex", ["swarmgatex"], None),
			(None, None, None),
		],
	)
	def test_forms(self, name, cmdline, expected):
		"""The program is recognized whatever the way it is launched."""
		assert program_arguments(name, cmdline, "swarmgate") == expected


class TestProcessDescriptor:
	"""Tests for ProcessDescriptor."""

	def test_frozen(self):
		"""Descriptors cannot be modified."""
		descriptor = ProcessDescriptor(pid=1, arguments=("a",))
		with pytest.raises(Exception):
			descriptor.pid = 2

	def test_command_line(self):
		"""Arguments are quoted for the platform."""
		descriptor = ProcessDescriptor(
			pid=1, arguments=("--configuration=my config", "-d")
		)
		if sys.platform == "win32":
			assert descriptor.command_line == '"--configuration=my config" -d'
		else:
			assert descriptor.command_line == "'--configuration=my config' -d"

	def test_empty_command_line(self):
		"""A descriptor without arguments has an empty command line."""
		assert ProcessDescriptor(pid=1).command_line == ""
