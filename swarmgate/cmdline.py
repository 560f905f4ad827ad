"""Command line parsing for the swarmgate executables.

The parser is built on argparse but never exits the process by itself: every malformed or conflicting invocation is reported with CommandLineParameterError so the supervisor decides how to show it. Options that are not given on the command line may be supplied through SWARMGATE_* environment variables.
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from swarmgate.config.config_enums import LogLevelEnum
from swarmgate.consts import (
	APP_NAME,
	APP_VERSION,
	ENV_PREFIX,
	HEADLESS_PROGRAM_NAME,
	PROGRAM_NAME,
	UiMode,
)
from swarmgate.errors import CommandLineParameterError, ConfigurationQuotingError

log = logging.getLogger(__name__)

CONFIGURATION_OPTION = "--configuration"

_TRUE_VALUES = frozenset(("1", "true", "yes", "on"))
_FALSE_VALUES = frozenset(("0", "false", "no", "off"))


class CommandLineParameters(BaseModel):
	"""Parsed invocation of the current process.

	Instances are immutable. The torrent related options are not used by the supervisor itself: they are forwarded to a running instance or handed to the engine through param_list().
	"""

	model_config = ConfigDict(frozen=True)

	show_help: bool = False
	show_version: bool = False
	should_daemonize: bool = False
	no_splash: bool = False
	configuration_name: str = ""
	profile_dir: Optional[str] = None
	webui_port: Optional[int] = None
	log_level: Optional[str] = None
	save_path: Optional[str] = None
	add_paused: Optional[bool] = None
	skip_checking: bool = False
	category: Optional[str] = None
	sequential: bool = False
	first_last_piece_priority: bool = False
	skip_dialog: Optional[bool] = None
	torrents: tuple[str, ...] = ()

	def param_list(self) -> list[str]:
		"""Get the parameters meant for the engine.

		Returns:
			The torrent options in their --option=value form followed by the torrent files or URLs.
		"""
		params = []
		if self.save_path is not None:
			params.append(f"--save-path={self.save_path}")
		if self.add_paused is not None:
			params.append(f"--add-paused={format_bool(self.add_paused)}")
		if self.skip_checking:
			params.append("--skip-hash-check")
		if self.category is not None:
			params.append(f"--category={self.category}")
		if self.sequential:
			params.append("--sequential")
		if self.first_last_piece_priority:
			params.append("--first-and-last")
		if self.skip_dialog is not None:
			params.append(f"--skip-dialog={format_bool(self.skip_dialog)}")
		params.extend(self.torrents)
		return params


class CommandLineParser(argparse.ArgumentParser):
	"""Argument parser raising CommandLineParameterError instead of exiting."""

	def error(self, message: str):
		"""Report a parsing error.

		Args:
			message: The argparse error message.

		Raises:
			CommandLineParameterError: Always.
		"""
		raise CommandLineParameterError(message)


def parse_bool(value: str) -> bool:
	"""Convert a command line or environment string to a boolean.

	Args:
		value: The string to convert, for example "true" or "0".

	Returns:
		The boolean value.

	Raises:
		argparse.ArgumentTypeError: If the value is not a recognized boolean.
	"""
	lowered = value.strip().lower()
	if lowered in _TRUE_VALUES:
		return True
	if lowered in _FALSE_VALUES:
		return False
	raise argparse.ArgumentTypeError(f"'{value}' is not a valid boolean")


def format_bool(value: bool) -> str:
	"""Format a boolean the way parse_bool reads it back."""
	return "true" if value else "false"


def unquote_value(raw: str) -> str:
	"""Remove the double quotes around a configuration value.

	A quoted value may contain spaces or any other delimiter. A value that is not quoted is returned unchanged.

	Args:
		raw: The value following --configuration=.

	Returns:
		The configuration name.

	Raises:
		ConfigurationQuotingError: If the opening quote is never closed or is not closed at the end of the value.
	"""
	if not raw.startswith('"'):
		return raw
	closing = raw.find('"', 1)
	if closing != len(raw) - 1:
		raise ConfigurationQuotingError(
			f'configuration name must be included with "": {raw}'
		)
	return raw[1:closing]


def _env_value(environ: Mapping[str, str], name: str) -> Optional[str]:
	return environ.get(f"{ENV_PREFIX}{name}") or None


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
	value = _env_value(environ, name)
	if value is None:
		return False
	try:
		return parse_bool(value)
	except argparse.ArgumentTypeError:
		log.warning("Ignoring invalid value for %s%s: %s", ENV_PREFIX, name, value)
		return False


def default_program_name(ui_mode: UiMode) -> str:
	"""Get the executable name of a variant.

	Args:
		ui_mode: The executable variant.

	Returns:
		The name shown in the usage and the messages.
	"""
	if ui_mode == UiMode.HEADLESS:
		return HEADLESS_PROGRAM_NAME
	return PROGRAM_NAME


def build_parser(
	ui_mode: UiMode,
	prog: Optional[str] = None,
	environ: Optional[Mapping[str, str]] = None,
) -> CommandLineParser:
	"""Build the argument parser for an executable variant.

	The interactive variant accepts --no-splash, the headless one accepts --daemon. Each is an unknown parameter for the other variant.

	Args:
		ui_mode: The executable variant.
		prog: Program name displayed in the usage.
		environ: Environment used for option fallbacks (default: os.environ).

	Returns:
		The configured parser.
	"""
	environ = os.environ if environ is None else environ
	parser = CommandLineParser(
		prog=prog or default_program_name(ui_mode),
		description=f"Run the {APP_NAME} BitTorrent client",
		add_help=False,
		allow_abbrev=False,
	)
	parser.add_argument(
		"-h",
		"--help",
		action="store_true",
		dest="show_help",
		help="Display this help message and exit",
	)
	parser.add_argument(
		"-v",
		"--version",
		action="store_true",
		dest="show_version",
		help="Display program version and exit",
	)
	if ui_mode == UiMode.INTERACTIVE:
		parser.add_argument(
			"--no-splash",
			action="store_true",
			dest="no_splash",
			default=_env_flag(environ, "NO_SPLASH"),
			help="Disable splash screen",
		)
	else:
		parser.add_argument(
			"-d",
			"--daemon",
			action="store_true",
			dest="should_daemonize",
			default=_env_flag(environ, "DAEMON"),
			help="Run in daemon-mode (background)",
		)
	parser.add_argument(
		"--webui-port",
		type=int,
		metavar="port",
		dest="webui_port",
		default=_env_value(environ, "WEBUI_PORT"),
		help="Change the Web UI port",
	)
	parser.add_argument(
		"--profile",
		metavar="dir",
		dest="profile_dir",
		default=_env_value(environ, "PROFILE"),
		help="Store configuration files in <dir>",
	)
	parser.add_argument(
		CONFIGURATION_OPTION,
		metavar="name",
		dest="configuration",
		default=_env_value(environ, "CONFIGURATION") or "",
		help="Store configuration files in directories swarmgate_<name>",
	)
	parser.add_argument(
		"--log-level",
		type=str.upper,
		choices=[level.name for level in LogLevelEnum],
		dest="log_level",
		default=None,
		help="Set the log level",
	)
	parser.add_argument(
		"--save-path",
		metavar="path",
		dest="save_path",
		help="Torrent save path",
	)
	parser.add_argument(
		"--add-paused",
		type=parse_bool,
		metavar="true|false",
		dest="add_paused",
		help="Add torrents as started or paused",
	)
	parser.add_argument(
		"--skip-hash-check",
		action="store_true",
		dest="skip_checking",
		help="Skip hash check",
	)
	parser.add_argument(
		"--category",
		metavar="name",
		dest="category",
		help="Assign torrents to category",
	)
	parser.add_argument(
		"--sequential",
		action="store_true",
		dest="sequential",
		help="Download files in sequential order",
	)
	parser.add_argument(
		"--first-and-last",
		action="store_true",
		dest="first_last_piece_priority",
		help="Download first and last pieces first",
	)
	parser.add_argument(
		"--skip-dialog",
		type=parse_bool,
		metavar="true|false",
		dest="skip_dialog",
		help="Specify whether the \"Add New Torrent\" dialog opens when adding a torrent",
	)
	parser.add_argument(
		"torrents",
		nargs="*",
		metavar="files or URLs",
		help="Downloads the torrents passed by the user",
	)
	return parser


def parse_command_line(
	argv: list[str],
	ui_mode: UiMode,
	prog: Optional[str] = None,
	environ: Optional[Mapping[str, str]] = None,
) -> CommandLineParameters:
	"""Parse the invocation arguments of the current process.

	Args:
		argv: Arguments without the program name.
		ui_mode: The executable variant.
		prog: Program name displayed in messages.
		environ: Environment used for option fallbacks (default: os.environ).

	Returns:
		The parsed parameters.

	Raises:
		CommandLineParameterError: On an unknown parameter, a malformed value, or -v / -h combined with other arguments.
	"""
	parser = build_parser(ui_mode, prog, environ)
	namespace, unknown = parser.parse_known_intermixed_args(argv)
	if unknown:
		raise CommandLineParameterError(
			f"{unknown[0]} is an unknown command line parameter."
		)
	# bundled short flags such as -vh are a single element but more than one option
	if namespace.show_version and list(argv) not in (["-v"], ["--version"]):
		raise CommandLineParameterError(
			"-v (or --version) must be the single command line parameter."
		)
	if namespace.show_help and list(argv) not in (["-h"], ["--help"]):
		raise CommandLineParameterError(
			"-h (or --help) must be the single command line parameter."
		)
	values = vars(namespace)
	values["configuration_name"] = unquote_value(values.pop("configuration"))
	values["torrents"] = tuple(values["torrents"])
	return CommandLineParameters(**values)


def format_version() -> str:
	"""Get the line printed by -v."""
	return f"{APP_NAME} {APP_VERSION}"


def format_usage(ui_mode: UiMode, prog: Optional[str] = None) -> str:
	"""Get the usage text of an executable variant."""
	return build_parser(ui_mode, prog).format_help()
