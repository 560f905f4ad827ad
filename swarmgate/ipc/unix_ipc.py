"""Unix domain socket channel used on Linux, macOS and the BSDs."""

import contextlib
import logging
import os
import socket

from swarmgate.consts import TMP_DIR

from .abstract_ipc import AbstractIpc

logger = logging.getLogger(__name__)


class UnixIpc(AbstractIpc):
	"""Channel over the socket <tmp dir>/<channel name>.sock.

	A message is everything a client writes before shutting down its side of the connection. Connections are served one at a time by the listening thread.
	"""

	# timeout for connecting and sending a signal
	SEND_TIMEOUT_SECONDS = 5.0
	# maximal size of a received message
	MAX_MESSAGE_SIZE = 1024 * 1024
	# interval at which the listening thread checks whether it must stop
	ACCEPT_POLL_SECONDS = 1.0

	def __init__(self, pipe_name: str, send_timeout: float | None = None):
		"""Initialize the Unix IPC channel.

		Args:
			pipe_name: Channel name, the socket is <tmp dir>/<pipe_name>.sock.
			send_timeout: Timeout in seconds for connecting, sending and reading a message.
		"""
		super().__init__(pipe_name)
		self.socket_path = os.path.join(TMP_DIR, f"{pipe_name}.sock")
		self.send_timeout = send_timeout or self.SEND_TIMEOUT_SECONDS
		self.listener: socket.socket | None = None

	def _prepare_server(self):
		"""Bind the socket, replacing a file left by an instance that died.

		Raises:
			OSError: If the socket cannot be bound.
		"""
		os.makedirs(TMP_DIR, exist_ok=True)
		with contextlib.suppress(FileNotFoundError):
			os.unlink(self.socket_path)
		listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
		try:
			listener.bind(self.socket_path)
			listener.listen()
		except OSError:
			listener.close()
			raise
		listener.settimeout(self.ACCEPT_POLL_SECONDS)
		self.listener = listener
		logger.debug("Listening on socket %s", self.socket_path)

	def _run_server(self):
		"""Accept and serve connections until the receiver is stopped."""
		listener = self.listener
		with listener:
			while self.running:
				try:
					connection, _ = listener.accept()
				except TimeoutError:
					continue
				except OSError as e:
					if self.running:
						logger.error("Unable to accept on %s: %s", self.socket_path, e)
					return
				message = self._receive(connection)
				if message:
					self._process_message(message)

	def _receive(self, connection: socket.socket) -> str | None:
		"""Read one message from a client.

		Args:
			connection: The accepted connection, closed on return.

		Returns:
			The decoded message, or None if nothing usable was read.
		"""
		buffer = bytearray()
		with connection:
			connection.settimeout(self.send_timeout)
			try:
				while len(buffer) < self.MAX_MESSAGE_SIZE:
					chunk = connection.recv(65536)
					if not chunk:
						break
					buffer += chunk
			except OSError as e:
				logger.error("Unable to read a message on %s: %s", self.socket_path, e)
				return None
		return buffer.decode("utf-8", errors="replace") or None

	def send_signal(self, data: str) -> bool:
		"""Send a message through the Unix domain socket.

		Args:
			data: The JSON message.

		Returns:
			True if the message was written before the timeout, False otherwise.
		"""
		try:
			with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
				client.settimeout(self.send_timeout)
				client.connect(self.socket_path)
				client.sendall(data.encode("utf-8"))
				client.shutdown(socket.SHUT_WR)
		except OSError as e:
			logger.error("Unable to send to %s: %s", self.socket_path, e)
			return False
		logger.debug("Signal sent to %s", self.socket_path)
		return True

	def _cleanup_resources(self):
		"""Close the listening socket and remove the socket file."""
		listener, self.listener = self.listener, None
		if listener is not None:
			listener.close()
		with contextlib.suppress(FileNotFoundError):
			os.unlink(self.socket_path)
