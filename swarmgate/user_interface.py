"""User interface collaborators of the startup supervisor.

The supervisor never draws anything itself. It reports command line errors, shows the legal notice and the splash screen through a UserInterface. ConsoleInterface is the implementation used by both executables when no graphical front-end is attached.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from swarmgate.consts import APP_NAME

log = logging.getLogger(__name__)


class UserInterface(ABC):
	"""Interface used by the supervisor to talk to the user."""

	@abstractmethod
	def show_error(self, title: str, message: str) -> None:
		"""Display an error to the user.

		Args:
			title: Short title of the error.
			message: Full text of the error.
		"""

	@abstractmethod
	def confirm_legal_notice(self, text: str) -> bool:
		"""Display the legal notice and wait for the user's decision.

		Args:
			text: The legal notice.

		Returns:
			True if the user accepts the notice.
		"""

	@abstractmethod
	def show_splash(self, version: str) -> None:
		"""Display the splash screen while the engine starts."""

	@abstractmethod
	def ask_yes_no(self, question: str) -> bool:
		"""Ask a yes/no question.

		Args:
			question: The question to display.

		Returns:
			True if the user answered yes.
		"""


class ConsoleInterface(UserInterface):
	"""UserInterface writing on the standard streams.

	Answers are read one line at a time, only the first character of the line counts.
	"""

	def __init__(
		self,
		stdin: TextIO | None = None,
		stdout: TextIO | None = None,
		stderr: TextIO | None = None,
	):
		"""Initialize the console interface.

		Args:
			stdin: Stream the answers are read from (default: sys.stdin).
			stdout: Stream for the notices (default: sys.stdout).
			stderr: Stream for the errors (default: sys.stderr).
		"""
		self.stdin = stdin or sys.stdin
		self.stdout = stdout or sys.stdout
		self.stderr = stderr or sys.stderr

	def show_error(self, title: str, message: str) -> None:
		self.stderr.write(f"{title}\n{message}\n")
		self.stderr.flush()

	def _read_key(self) -> str:
		line = self.stdin.readline()
		return line[:1]

	def confirm_legal_notice(self, text: str) -> bool:
		"""Print the legal notice and read the answer.

		Args:
			text: The legal notice.

		Returns:
			True if the answer starts with "y" or "Y".
		"""
		separator = "*" * 10
		self.stdout.write(
			f"\n{separator} Legal Notice {separator}\n{text}\n\n"
			"No further notices will be issued.\n\n"
			"Press 'y' key to accept and continue...\n"
		)
		self.stdout.flush()
		accepted = self._read_key() in ("y", "Y")
		log.debug("Legal notice %s", "accepted" if accepted else "declined")
		return accepted

	def show_splash(self, version: str) -> None:
		self.stdout.write(f"{APP_NAME} {version} starting...\n")
		self.stdout.flush()

	def ask_yes_no(self, question: str) -> bool:
		self.stdout.write(f"{question} [y/N] ")
		self.stdout.flush()
		return self._read_key() in ("y", "Y")
