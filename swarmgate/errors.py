"""Exceptions raised by the startup supervisor."""


class SwarmgateError(Exception):
	"""Base class for all swarmgate errors."""


class CommandLineParameterError(SwarmgateError):
	"""The invocation arguments are malformed or conflicting."""

	def __init__(self, message: str):
		"""Initialize the error.

		Args:
			message: Short explanation shown to the user.
		"""
		super().__init__(message)
		self.message = message

	def message_for_user(self) -> str:
		"""Return the message to display to the user."""
		return self.message


class ConfigurationQuotingError(CommandLineParameterError):
	"""A --configuration value has unbalanced double quotes."""


class ProcessScanError(SwarmgateError):
	"""The process table could not be enumerated."""


class DaemonizeError(SwarmgateError):
	"""Detaching from the controlling terminal failed."""


class UpgradeError(SwarmgateError):
	"""Migrating the preferences to the current schema failed."""
