"""Logging utilities for swarmgate."""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Type

from platformdirs import user_log_path

import swarmgate.global_vars as global_vars
from swarmgate.consts import APP_AUTHOR, APP_NAME, CRASH_REPORT_HINT


def get_log_file_path() -> Path:
	"""Get log file path for swarmgate.

	The path is determined by:
	- the --profile directory if given
	- user_data_path if configured
	- platformdirs.user_log_path() otherwise

	A named configuration logs to its own file.

	Returns:
		The path to the log file depending on the configuration
	"""
	if global_vars.configuration_name:
		log_file_path = Path(f"{APP_NAME}_{global_vars.configuration_name}.log")
	else:
		log_file_path = Path(f"{APP_NAME}.log")
	if global_vars.profile_path:
		log_dir = Path(global_vars.profile_path) / "logs"
		log_dir.mkdir(parents=True, exist_ok=True)
	elif global_vars.user_data_path:
		log_dir = global_vars.user_data_path
	else:
		log_dir = user_log_path(APP_NAME, APP_AUTHOR, ensure_exists=True)
	return log_dir / log_file_path


def setup_logging(level: str) -> None:
	"""Setup logging configuration for swarmgate.

	Configures logging to write to a file and, when running from a console, to the standard error stream as well.

	Args:
		level: logging level to set. 'OFF' is converted to 'NOTSET'.
	"""
	level = level.upper()
	if level == "OFF":
		level = "NOTSET"
	handlers = [logging.FileHandler(get_log_file_path(), mode='a')]
	if not getattr(sys, "frozen", False):
		handlers.append(logging.StreamHandler())
	logging.basicConfig(
		level=level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
		handlers=handlers,
		force=True,
	)


def logging_uncaught_exceptions(
	exc_type: Type[BaseException],
	exc_value: BaseException,
	exc_traceback: TracebackType,
) -> None:
	"""Log uncaught exceptions to the appropriate logger.

	The crash report hint is printed on the standard error stream so the user knows where to report the failure.

	Args:
		exc_type: exception type is an exception class
		exc_value: exception value is an exception instance
		exc_traceback: exception traceback is a traceback object
	"""
	if issubclass(exc_type, KeyboardInterrupt):
		logging.info("Keyboard interrupt")
		return
	logging.getLogger(exc_type.__module__).error(
		"Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
	)
	print(CRASH_REPORT_HINT, file=sys.stderr)
