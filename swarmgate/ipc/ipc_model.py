"""IPC signal models for swarmgate inter-process communication.

This module defines the Pydantic models exchanged between a newly launched process and the running instance.
"""

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class ParamsSignal(BaseModel):
	"""Signal carrying the parameters of a new invocation."""

	signal_type: Literal["params"] = "params"
	params: list[str] = Field(default_factory=list)
	timestamp: datetime = Field(default_factory=datetime.now)


class ShutdownSignal(BaseModel):
	"""Signal used to unblock the receiver when it stops."""

	signal_type: Literal["shutdown"] = "shutdown"


IPCModels = TypeAdapter(Union[ParamsSignal, ShutdownSignal])
