"""Named pipe channel used on Windows.

The listening side always keeps one unconnected pipe instance open, so a sender never finds the pipe missing between two connections.
"""

import logging
import time

import pywintypes
import win32file
import win32pipe
import winerror

from .abstract_ipc import AbstractIpc

logger = logging.getLogger(__name__)


class WindowsIpc(AbstractIpc):
	"""Channel over the named pipe \\\\.\\pipe\\<channel name>.

	Each connection carries a single message written by the sender before it closes the pipe.
	"""

	PIPE_BUFFER_SIZE = 65536
	# timeout for connecting and sending a signal
	SEND_TIMEOUT_SECONDS = 5.0
	# pause between two connection attempts while the pipe is busy or missing
	RETRY_DELAY_SECONDS = 0.05

	def __init__(self, pipe_name: str, send_timeout: float | None = None):
		r"""Initialize the named pipe channel.

		Args:
			pipe_name: Channel name, without the \\.\pipe\ prefix.
			send_timeout: Timeout in seconds for reaching a busy or missing pipe.
		"""
		super().__init__(pipe_name)
		self.pipe_path = rf"\\.\pipe\{pipe_name}"
		self.send_timeout = send_timeout or self.SEND_TIMEOUT_SECONDS
		self.pending_handle = None

	def _create_instance(self):
		"""Create one server instance of the pipe.

		Returns:
			The handle of the unconnected instance.

		Raises:
			pywintypes.error: If the instance cannot be created.
		"""
		return win32pipe.CreateNamedPipe(
			self.pipe_path,
			win32pipe.PIPE_ACCESS_DUPLEX,
			win32pipe.PIPE_TYPE_MESSAGE
			| win32pipe.PIPE_READMODE_MESSAGE
			| win32pipe.PIPE_WAIT,
			win32pipe.PIPE_UNLIMITED_INSTANCES,
			self.PIPE_BUFFER_SIZE,
			self.PIPE_BUFFER_SIZE,
			0,
			None,
		)

	def _prepare_server(self):
		"""Open the first pipe instance.

		Raises:
			OSError: If the pipe cannot be created.
		"""
		try:
			self.pending_handle = self._create_instance()
		except pywintypes.error as e:
			raise OSError(e.winerror, e.strerror) from e
		logger.debug("Named pipe server listening on %s", self.pipe_path)

	def _run_server(self):
		"""Wait for clients and serve them until the receiver is stopped.

		A new instance is opened before serving a client so that the next sender finds the pipe.
		"""
		while self.running and self.pending_handle is not None:
			handle = self.pending_handle
			try:
				win32pipe.ConnectNamedPipe(handle, None)
			except pywintypes.error as e:
				# a client connecting before the call is already usable
				if e.winerror != winerror.ERROR_PIPE_CONNECTED:
					logger.error("Error waiting for a client on %s: %s", self.pipe_path, e)
					win32file.CloseHandle(handle)
					handle = None
			try:
				self.pending_handle = self._create_instance()
			except pywintypes.error as e:
				logger.error("Unable to open a new instance of %s: %s", self.pipe_path, e)
				self.pending_handle = None
			if handle is not None:
				self._serve(handle)

	def _serve(self, handle):
		"""Read the message of a connected client and dispatch it.

		Args:
			handle: Handle of the connected pipe instance.
		"""
		chunks = []
		try:
			while True:
				result, data = win32file.ReadFile(handle, self.PIPE_BUFFER_SIZE)
				chunks.append(data)
				if result != winerror.ERROR_MORE_DATA:
					break
		except pywintypes.error as e:
			if e.winerror != winerror.ERROR_BROKEN_PIPE:
				logger.error("Error reading from %s: %s", self.pipe_path, e)
		finally:
			win32pipe.DisconnectNamedPipe(handle)
			win32file.CloseHandle(handle)
		if chunks:
			self._process_message(b"".join(chunks).decode("utf-8", errors="replace"))

	def _open_client(self):
		"""Connect to the pipe, waiting while it is busy or not created yet.

		Returns:
			The client handle.

		Raises:
			pywintypes.error: If no connection could be made before the send timeout.
		"""
		deadline = time.monotonic() + self.send_timeout
		while True:
			try:
				return win32file.CreateFile(
					self.pipe_path,
					win32file.GENERIC_WRITE,
					0,
					None,
					win32file.OPEN_EXISTING,
					0,
					None,
				)
			except pywintypes.error as e:
				if e.winerror not in (
					winerror.ERROR_PIPE_BUSY,
					winerror.ERROR_FILE_NOT_FOUND,
				):
					raise
				remaining = deadline - time.monotonic()
				if remaining <= 0:
					raise
				if e.winerror == winerror.ERROR_PIPE_BUSY:
					try:
						win32pipe.WaitNamedPipe(
							self.pipe_path, max(1, int(remaining * 1000))
						)
					except pywintypes.error as wait_error:
						logger.debug("Still waiting for %s: %s", self.pipe_path, wait_error)
				else:
					time.sleep(min(self.RETRY_DELAY_SECONDS, remaining))

	def send_signal(self, data: str) -> bool:
		"""Send a message through the named pipe.

		Args:
			data: The JSON message.

		Returns:
			True if the message was written, False if the pipe could not be reached before the send timeout or the write failed.
		"""
		try:
			handle = self._open_client()
		except pywintypes.error as e:
			logger.error("Unable to connect to %s: %s", self.pipe_path, e)
			return False
		try:
			win32file.WriteFile(handle, data.encode("utf-8"))
		except pywintypes.error as e:
			logger.error("Error sending signal %s: %s", data, e)
			return False
		finally:
			win32file.CloseHandle(handle)
		logger.debug("Signal sent to %s", self.pipe_path)
		return True

	def _cleanup_resources(self):
		"""Close the spare pipe instance."""
		handle, self.pending_handle = self.pending_handle, None
		if handle is not None:
			try:
				win32file.CloseHandle(handle)
			except pywintypes.error as e:
				logger.debug("Unable to close %s: %s", self.pipe_path, e)
