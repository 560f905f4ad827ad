"""Engine entry point invoked once the supervisor reaches the running state."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from swarmgate.identity import channel_name
from swarmgate.ipc import ParamsSignal, SwarmgateIpc
from swarmgate.signal_bridge import ShutdownRequest

log = logging.getLogger(__name__)


class AbstractEngine(ABC):
	"""Interface of the engine started by the supervisor."""

	def __init__(self, application_id: str):
		"""Initialize the engine.

		Args:
			application_id: Application id owned by this process.
		"""
		self.application_id = application_id

	@abstractmethod
	def exec(self, params: list[str], shutdown: ShutdownRequest) -> int:
		"""Run the engine until a shutdown is requested.

		Args:
			params: Parameters of the invocation that started the engine.
			shutdown: Flag raised by the signal bridge.

		Returns:
			The exit status of the process.
		"""


class ConsoleEngine(AbstractEngine):
	"""Headless engine keeping the parameters it is given.

	It listens on the IPC channel of its application id, so parameters forwarded by later invocations are received while it runs.
	"""

	def __init__(
		self,
		application_id: str,
		ipc: Optional[SwarmgateIpc] = None,
		poll_interval: float = 0.5,
	):
		"""Initialize the console engine.

		Args:
			application_id: Application id owned by this process.
			ipc: IPC channel to listen on (default: the channel of the application id).
			poll_interval: Time between two checks of the shutdown request.
		"""
		super().__init__(application_id)
		self.ipc = ipc or SwarmgateIpc(channel_name(application_id))
		self.poll_interval = poll_interval
		self.received: list[list[str]] = []

	def on_params(self, signal: ParamsSignal) -> None:
		log.info("Received parameters from another instance: %s", signal.params)
		self.received.append(list(signal.params))

	def exec(self, params: list[str], shutdown: ShutdownRequest) -> int:
		log.info("Engine started for %s", self.application_id)
		if params:
			log.info("Startup parameters: %s", params)
			self.received.append(list(params))
		if not self.ipc.start_receiver({"params": self.on_params}):
			log.warning("Forwarded parameters will not be received")
		try:
			while not shutdown.wait(self.poll_interval):
				pass
		finally:
			self.ipc.stop_receiver()
		log.info("Engine stopped")
		return 0
