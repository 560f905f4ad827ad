"""Lock ensuring only one process owns an application id at a time.

The process that reaches the running state holds the lock keyed by its application id, so a later launch for the same configuration, or a daemonized child that lost a start-up race, can tell that the slot is taken.
"""

import atexit
from abc import ABC, abstractmethod


class AbstractInstanceGuard(ABC):
	"""Interface of the platform-specific instance locks."""

	def __init__(self, name: str):
		"""Initialize the guard.

		Args:
			name: Lock name derived from the application id.
		"""
		self.name = name

	@abstractmethod
	def acquire(self) -> bool:
		"""Acquire the lock.

		Returns:
			True if the lock was acquired, False otherwise.
		"""
		pass

	@abstractmethod
	def release(self):
		"""Release the lock."""
		pass

	def register_release_on_exit(self):
		"""Register the release method to be called on program exit."""
		atexit.register(self.release)

	@abstractmethod
	def get_existing_pid(self) -> int | None:
		"""Get the PID of the lock owner if it exists.

		Returns:
			The PID of the owner, -1 if an owner exists but its PID is unknown, or None if the lock is free.
		"""
		pass
