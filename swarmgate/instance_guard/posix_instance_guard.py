"""Instance lock for POSIX systems.

The lock is an flock held on <tmp dir>/<name>.lock for the lifetime of the owner. The kernel drops it when the owner dies, so a file left behind never blocks a new owner. The file is never removed: every contender must lock the same inode. Its content is the owner's PID.
"""

import fcntl
import logging
import os
from typing import IO

from swarmgate.consts import TMP_DIR

from .abstract_instance_guard import AbstractInstanceGuard

log = logging.getLogger(__name__)

LOCK_FLAGS = fcntl.LOCK_EX | fcntl.LOCK_NB


def _try_flock(stream: IO) -> bool:
	try:
		fcntl.flock(stream.fileno(), LOCK_FLAGS)
	except BlockingIOError:
		return False
	return True


class PosixInstanceGuard(AbstractInstanceGuard):
	"""Instance lock based on fcntl.flock."""

	def __init__(self, name: str):
		super().__init__(name)
		self.lock_file_path = os.path.join(TMP_DIR, f"{name}.lock")
		self.owned: IO | None = None

	def acquire(self) -> bool:
		"""Take the lock without blocking.

		Returns:
			True if this guard owns the lock, False if another owner holds it or the lock file cannot be opened.
		"""
		if self.owned is not None:
			return True
		try:
			os.makedirs(TMP_DIR, exist_ok=True)
			# append mode keeps the current owner's PID readable on failure
			stream = open(self.lock_file_path, "a+")
		except OSError as e:
			log.error("Unable to open lock file %s: %s", self.lock_file_path, e)
			return False
		if not _try_flock(stream):
			stream.close()
			log.debug("Lock %s is already held", self.name)
			return False
		stream.seek(0)
		stream.truncate()
		stream.write(str(os.getpid()))
		stream.flush()
		self.owned = stream
		self.register_release_on_exit()
		log.debug("Lock %s acquired", self.name)
		return True

	def release(self) -> None:
		"""Drop the lock. Does nothing if not owned."""
		stream, self.owned = self.owned, None
		if stream is None:
			return
		fcntl.flock(stream.fileno(), fcntl.LOCK_UN)
		stream.close()
		log.debug("Lock %s released", self.name)

	def get_existing_pid(self) -> int | None:
		"""Return the PID of the lock owner.

		Returns:
			The owner's PID, -1 if the lock is held but the file does not name a PID, or None if nobody holds the lock.
		"""
		if self.owned is not None:
			return os.getpid()
		try:
			with open(self.lock_file_path, "r") as lock_file:
				if _try_flock(lock_file):
					fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
					return None
				content = lock_file.read().strip()
		except FileNotFoundError:
			return None
		except OSError as e:
			log.warning("Unable to read lock file %s: %s", self.lock_file_path, e)
			return None
		return int(content) if content.isdigit() else -1
