"""Decide whether a scanned process already serves a configuration."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from swarmgate.cmdline import CONFIGURATION_OPTION, unquote_value
from swarmgate.errors import ConfigurationQuotingError
from swarmgate.process_scanner import ProcessDescriptor

log = logging.getLogger(__name__)

_CONFIGURATION_PREFIX = f"{CONFIGURATION_OPTION}="


def extract_configuration(arguments: Sequence[str]) -> Optional[str]:
	"""Extract the configuration name from a process's arguments.

	Both "--configuration=<name>" and "--configuration <name>" are recognized, the value may be wrapped in double quotes.

	Args:
		arguments: Arguments following the program.

	Returns:
		The configuration name, or None if no configuration argument is present.

	Raises:
		ConfigurationQuotingError: If the value has an opening quote but no closing one.
	"""
	for index, argument in enumerate(arguments):
		if argument.startswith(_CONFIGURATION_PREFIX):
			return unquote_value(argument[len(_CONFIGURATION_PREFIX) :])
		if argument == CONFIGURATION_OPTION and index + 1 < len(arguments):
			return unquote_value(arguments[index + 1])
	return None


def candidate_configuration(candidate: ProcessDescriptor) -> Optional[str]:
	"""Get the configuration served by a candidate process.

	Args:
		candidate: The scanned process.

	Returns:
		The configuration name ("" for the default configuration), or None when the candidate cannot be attributed to any configuration.
	"""
	try:
		configuration = extract_configuration(candidate.arguments)
	except ConfigurationQuotingError as e:
		log.warning(
			"Ignoring process %d with a malformed configuration: %s",
			candidate.pid,
			e,
		)
		return None
	if configuration is None:
		return ""
	return configuration


def find_match(candidates: Iterable[ProcessDescriptor], desired: str) -> bool:
	"""Check whether one of the candidates serves the desired configuration.

	A candidate without any configuration argument serves the default configuration. A candidate whose arguments could not be read is an ambiguous default-configuration candidate: it only matches when the default configuration is desired, so two unnamed instances are never started.

	Args:
		candidates: Processes returned by the scanner, in any order.
		desired: The configuration name of the current invocation.

	Returns:
		True as soon as one candidate matches.
	"""
	for candidate in candidates:
		if candidate_configuration(candidate) == desired:
			log.debug(
				"Process %d serves configuration %r", candidate.pid, desired
			)
			return True
	return False
