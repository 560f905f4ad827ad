"""Module for forwarding the parameters of a new invocation to the running instance.

This module uses the platform-specific IPC channel (named pipes on Windows, Unix domain sockets on Unix-like systems) keyed by the application id.
"""

import logging

from swarmgate.identity import channel_name
from swarmgate.ipc import ParamsSignal, SwarmgateIpc

logger = logging.getLogger(__name__)


def forward_params(
	application_id: str, params: list[str], timeout: float | None = None
) -> bool:
	"""Send the parameters to the instance owning the application id.

	A single attempt is made. Whether the running instance consumes the parameters is not reported back.

	Args:
		application_id: Application id of the running instance.
		params: Parameters of the current invocation.
		timeout: Timeout in seconds for the delivery.

	Returns:
		True if the parameters were delivered to the channel, False otherwise.
	"""
	ipc = SwarmgateIpc(channel_name(application_id), send_timeout=timeout)
	delivered = ipc.send(ParamsSignal(params=params))
	if delivered:
		logger.info("Forwarded %d parameter(s) to the running instance", len(params))
	else:
		logger.warning("Unable to forward parameters to the running instance")
	return delivered
