"""Instance lock for Windows.

Uses a pywin32 named mutex in the session namespace.
"""

import logging
import os
from typing import Optional

import pywintypes
import win32api
import win32event
import winerror

from .abstract_instance_guard import AbstractInstanceGuard

log = logging.getLogger(__name__)


class WindowsInstanceGuard(AbstractInstanceGuard):
	"""Instance lock based on a named mutex.

	- The mutex lives in the Local\\ namespace of the user session
	- The mutex is released automatically on program exit
	- The PID of the owner cannot be determined
	"""

	def __init__(self, name: str):
		"""Initialize the guard.

		Args:
			name: Lock name derived from the application id.
		"""
		super().__init__(name)
		self.mutex_handle = None
		self.mutex_name = f"Local\\{name}"

	def acquire(self) -> bool:
		"""Acquire the mutex.

		Returns:
			True if the mutex was acquired, False if another instance owns it.
		"""
		if self.mutex_handle:
			return True
		try:
			self.mutex_handle = win32event.CreateMutex(
				None, True, self.mutex_name
			)
		except pywintypes.error as e:
			log.error("Unable to create mutex %s: %s", self.mutex_name, e)
			return False
		if win32api.GetLastError() == winerror.ERROR_ALREADY_EXISTS:
			win32api.CloseHandle(self.mutex_handle)
			self.mutex_handle = None
			return False
		self.register_release_on_exit()
		return True

	def release(self):
		"""Release the mutex."""
		if not self.mutex_handle:
			return
		try:
			win32event.ReleaseMutex(self.mutex_handle)
		except pywintypes.error as e:
			log.warning("Unable to release mutex %s: %s", self.mutex_name, e)
		finally:
			win32api.CloseHandle(self.mutex_handle)
			self.mutex_handle = None

	def get_existing_pid(self) -> Optional[int]:
		"""Check whether another process owns the mutex.

		Returns:
			The PID of this process if it owns the mutex, -1 if another process owns it, None otherwise.
		"""
		if self.mutex_handle:
			return os.getpid()
		try:
			test_mutex = win32event.OpenMutex(
				win32event.SYNCHRONIZE, False, self.mutex_name
			)
		except pywintypes.error:
			return None
		win32api.CloseHandle(test_mutex)
		return -1
