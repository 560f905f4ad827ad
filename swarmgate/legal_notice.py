"""First-run legal notice acceptance."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from swarmgate.consts import LEGAL_NOTICE, UiMode
from swarmgate.user_interface import UserInterface

log = logging.getLogger(__name__)


class LegalNoticePreferences(Protocol):
	"""Preference storage keeping the acceptance of the legal notice."""

	def has_accepted_legal_notice(self) -> bool: ...

	def set_accepted_legal_notice(self) -> None: ...


def _is_tty(stream: TextIO | None) -> bool:
	if stream is None:
		return False
	try:
		return stream.isatty()
	except (AttributeError, ValueError):
		return False


class LegalNoticeGate:
	"""Ask the user to accept the legal notice once.

	Once accepted, the decision is persisted in the preferences and the notice is never shown again.
	"""

	def __init__(
		self,
		preferences: LegalNoticePreferences,
		ui: UserInterface,
		text: str = LEGAL_NOTICE,
	):
		"""Initialize the gate.

		Args:
			preferences: Preference storage holding the acceptance.
			ui: Interface used to display the notice.
			text: The legal notice.
		"""
		self.preferences = preferences
		self.ui = ui
		self.text = text

	def has_accepted(self) -> bool:
		return self.preferences.has_accepted_legal_notice()

	def record_accepted(self) -> None:
		self.preferences.set_accepted_legal_notice()
		log.info("Legal notice accepted")

	def should_prompt(
		self,
		ui_mode: UiMode,
		daemon: bool,
		stdin: TextIO | None = None,
		stdout: TextIO | None = None,
	) -> bool:
		"""Tell whether the user can be asked to accept the notice.

		The headless variant cannot ask anything when it is about to become a daemon or when it is not attached to a terminal.

		Args:
			ui_mode: The executable variant.
			daemon: Whether the process is going to daemonize.
			stdin: Input stream (default: sys.stdin).
			stdout: Output stream (default: sys.stdout).

		Returns:
			True if the prompt has to be displayed.
		"""
		if ui_mode == UiMode.INTERACTIVE:
			return True
		if daemon:
			return False
		stdin = sys.stdin if stdin is None else stdin
		stdout = sys.stdout if stdout is None else stdout
		return _is_tty(stdin) and _is_tty(stdout)

	def user_agrees(self) -> bool:
		"""Display the notice and persist the acceptance.

		Returns:
			True if the user accepted the notice.
		"""
		if not self.ui.confirm_legal_notice(self.text):
			log.info("Legal notice declined")
			return False
		self.record_accepted()
		return True
