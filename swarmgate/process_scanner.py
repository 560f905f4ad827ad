"""Enumeration of the running swarmgate processes.

The process table is read with psutil, which returns each process's argument vector as a list, so no OS utility is spawned and no text output has to be parsed.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys

import psutil
from pydantic import BaseModel, ConfigDict

from swarmgate.consts import PROGRAM_NAME
from swarmgate.errors import ProcessScanError

log = logging.getLogger(__name__)

# suffixes stripped from executable names before comparing them
_EXECUTABLE_SUFFIXES = (".exe", ".py", ".pyw")

# variants of the program that share the same instance slots
_VARIANT_SUFFIXES = ("", "-nox")

# interpreters able to run the program as a script or as a module
_INTERPRETER_PREFIXES = ("python", "pypy")


class ProcessDescriptor(BaseModel):
	"""A running process that may be another instance of the program."""

	model_config = ConfigDict(frozen=True)

	pid: int
	# arguments following the program, empty when the OS does not expose them
	arguments: tuple[str, ...] = ()

	@property
	def command_line(self) -> str:
		"""The arguments rendered as a single platform-quoted string."""
		if sys.platform == "win32":
			return subprocess.list2cmdline(self.arguments)
		return shlex.join(self.arguments)


def _normalize_name(name: str) -> str:
	name = os.path.basename(name).lower()
	for suffix in _EXECUTABLE_SUFFIXES:
		if name.endswith(suffix):
			return name[: -len(suffix)]
	return name


def _is_interpreter(name: str) -> bool:
	return _normalize_name(name).startswith(_INTERPRETER_PREFIXES)


def _matches_program(name: str | None, program_name: str) -> bool:
	if not name:
		return False
	normalized = _normalize_name(name)
	program_name = program_name.lower()
	return any(
		normalized == program_name + suffix for suffix in _VARIANT_SUFFIXES
	)


def program_arguments(
	name: str | None, cmdline: list[str] | None, program_name: str
) -> tuple[str, ...] | None:
	"""Get the arguments of a process if it runs the program.

	The program may be the executable itself, a script run by an interpreter ("python /usr/bin/swarmgate ...") or the package run as a module ("python -m swarmgate ...").

	Args:
		name: Process name reported by the OS.
		cmdline: Full argument vector, None or empty when it cannot be read.
		program_name: Name of the program to look for.

	Returns:
		The arguments following the program, an empty tuple if the process runs the program but its arguments are unreadable, or None if the process does not run the program.
	"""
	if cmdline:
		if _matches_program(cmdline[0], program_name):
			return tuple(cmdline[1:])
		if _is_interpreter(cmdline[0]):
			if len(cmdline) > 1 and _matches_program(cmdline[1], program_name):
				return tuple(cmdline[2:])
			if (
				len(cmdline) > 2
				and cmdline[1] == "-m"
				and cmdline[2].lower() == program_name.lower()
			):
				return tuple(cmdline[3:])
	if _matches_program(name, program_name):
		return tuple(cmdline[1:]) if cmdline else ()
	return None


def scan(
	self_pid: int, program_name: str = PROGRAM_NAME
) -> list[ProcessDescriptor]:
	"""List the processes running the program, excluding self_pid.

	Processes that exit during the scan are skipped. A process whose arguments cannot be read (owned by another user, zombie) is returned with empty arguments instead of failing the scan.

	Args:
		self_pid: Pid of the calling process, never part of the result.
		program_name: Name of the program to look for.

	Returns:
		The matching processes in process table order.

	Raises:
		ProcessScanError: If the process table cannot be enumerated at all.
	"""
	candidates = []
	try:
		for proc in psutil.process_iter(["pid", "name", "cmdline"], ad_value=None):
			info = proc.info
			pid = info["pid"]
			if pid == self_pid:
				continue
			arguments = program_arguments(
				info["name"], info["cmdline"], program_name
			)
			if arguments is None:
				continue
			candidates.append(ProcessDescriptor(pid=pid, arguments=arguments))
	except psutil.Error as e:
		raise ProcessScanError(f"Unable to enumerate processes: {e}") from e
	except OSError as e:
		raise ProcessScanError(f"Unable to read the process table: {e}") from e
	log.debug(
		"Found %d other %s process(es): %s",
		len(candidates),
		program_name,
		[c.pid for c in candidates],
	)
	return candidates
