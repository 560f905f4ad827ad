"""Channel between a new invocation and the instance owning its application id.

The running instance listens on the channel from a background thread. A later invocation connects, writes one JSON message and disconnects. Messages are validated with the models of ipc_model before any handler sees them.
"""

import abc
import logging
import threading
from typing import Callable, Mapping

from pydantic import BaseModel, ValidationError

from .ipc_model import IPCModels, ShutdownSignal

logger = logging.getLogger(__name__)

SignalHandler = Callable[[BaseModel], None]


class AbstractIpc(abc.ABC):
	"""Platform-independent part of the channel.

	Subclasses provide the transport: _run_server accepts connections and hands each complete message to _process_message, send_signal delivers one message.
	"""

	# time given to the server thread to exit on stop
	STOP_TIMEOUT_SECONDS = 5.0

	def __init__(self, pipe_name: str):
		"""Initialize the channel.

		Args:
			pipe_name: Channel name derived from the application id.
		"""
		self.pipe_name = pipe_name
		self.handlers: dict[str, SignalHandler] = {}
		self.running = False
		self.thread = None

	def start_receiver(self, callbacks: Mapping[str, SignalHandler]) -> bool:
		"""Listen for messages sent by later invocations.

		The channel is set up before this method returns, so a sender started right after can connect.

		Args:
			callbacks: Handler per signal type, for example {"params": handler}.

		Returns:
			True if the channel is listening, False if it could not be set up.
		"""
		if self.running:
			return True
		self.handlers = dict(callbacks)
		try:
			self._prepare_server()
		except (OSError, RuntimeError) as e:
			logger.error("Unable to listen on %s: %s", self.pipe_name, e)
			return False
		self.running = True
		self.thread = threading.Thread(
			target=self._run_server, name=f"ipc-{self.pipe_name}", daemon=True
		)
		self.thread.start()
		logger.debug("Listening on %s", self.pipe_name)
		return True

	def stop_receiver(self) -> None:
		"""Stop listening and release the channel."""
		if not self.running:
			return
		self.running = False
		# the server thread may be blocked waiting for a client
		self.send(ShutdownSignal())
		if self.thread and self.thread.is_alive():
			self.thread.join(timeout=self.STOP_TIMEOUT_SECONDS)
		self._cleanup_resources()
		logger.debug("Stopped listening on %s", self.pipe_name)

	def is_running(self) -> bool:
		"""Check whether the receiver is listening."""
		return self.running

	def send(self, signal: BaseModel) -> bool:
		"""Serialize and deliver a signal.

		Args:
			signal: One of the models of ipc_model.

		Returns:
			True if the message was delivered to the channel.
		"""
		return self.send_signal(signal.model_dump_json())

	def _process_message(self, message: str):
		"""Validate a received message and call the handler of its type.

		A failing handler is logged and does not stop the server.

		Args:
			message: The JSON message as received.
		"""
		try:
			signal = IPCModels.validate_json(message)
		except ValidationError as e:
			logger.error("Discarding invalid message on %s: %s", self.pipe_name, e)
			return
		if isinstance(signal, ShutdownSignal):
			return
		handler = self.handlers.get(signal.signal_type)
		if handler is None:
			logger.warning("No handler for %s messages", signal.signal_type)
			return
		try:
			handler(signal)
		except Exception:
			logger.exception("Handler for %s messages failed", signal.signal_type)

	def _prepare_server(self):
		"""Create the platform resources before the server thread starts.

		Raises:
			OSError: If the channel cannot be created.
		"""

	@abc.abstractmethod
	def _run_server(self):
		"""Accept connections until running becomes False."""

	@abc.abstractmethod
	def send_signal(self, data: str) -> bool:
		"""Deliver one JSON message to the listening instance.

		Args:
			data: The JSON message.

		Returns:
			True if the message was delivered, False otherwise.
		"""

	@abc.abstractmethod
	def _cleanup_resources(self):
		"""Release the platform resources of the listening side."""
