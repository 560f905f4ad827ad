"""Startup supervisor of the swarmgate executables.

The startup is split in two phases around the optional fork of the daemon mode:

- PreDaemonPhase looks for another process serving the same configuration and forwards the parameters to it. It owns no engine state, so nothing has to be rebuilt in the daemonized child.
- PostDaemonPhase takes the instance lock, installs the signal handlers and runs the engine.

LifecycleSupervisor drives both phases and the steps between them: command line checks, the legal notice, the preferences upgrade and the daemonization.
"""

from __future__ import annotations

import enum
import logging
import os
import sys
import time
from typing import Callable, MutableMapping, Optional, TextIO

import swarmgate.global_vars as global_vars
from swarmgate import daemonize as daemon_mode
from swarmgate.cmdline import (
	CommandLineParameters,
	default_program_name,
	format_usage,
	format_version,
	parse_command_line,
)
from swarmgate.config import conf
from swarmgate.consts import APP_VERSION, VERSION_ENV_VAR, UiMode
from swarmgate.engine import AbstractEngine, ConsoleEngine
from swarmgate.errors import (
	CommandLineParameterError,
	DaemonizeError,
	ProcessScanError,
)
from swarmgate.forwarder import forward_params
from swarmgate.identity import (
	channel_name,
	derive_application_id,
	get_user_id_string,
)
from swarmgate.instance_guard import InstanceGuard
from swarmgate.instance_matcher import find_match
from swarmgate.legal_notice import LegalNoticeGate
from swarmgate.logger import setup_logging
from swarmgate.process_scanner import ProcessDescriptor, scan
from swarmgate.signal_bridge import ShutdownRequest, SignalBridge
from swarmgate.upgrade import upgrade
from swarmgate.user_interface import ConsoleInterface, UserInterface

log = logging.getLogger(__name__)

BAD_ARG_TITLE = "Bad command line"
BAD_ARG_HINT = "Run application with -h option to read about command line parameters."


class LifecycleState(enum.StrEnum):
	"""States of the startup lifecycle."""

	STARTING = enum.auto()
	DETECTING = enum.auto()
	FORWARDING = enum.auto()
	PROCEEDING = enum.auto()
	DAEMONIZING = enum.auto()
	RUNNING = enum.auto()
	SHUTTING_DOWN = enum.auto()
	TERMINATED = enum.auto()


Scanner = Callable[[int], list[ProcessDescriptor]]
Forwarder = Callable[..., bool]


class PreDaemonPhase:
	"""Detect another instance serving the configuration and forward to it."""

	def __init__(
		self,
		supervisor: LifecycleSupervisor,
		application_id: str,
		params: CommandLineParameters,
		settle_delay_ms: int,
		forward_timeout: Optional[float] = None,
	):
		"""Initialize the phase.

		Args:
			supervisor: The supervisor owning the lifecycle state.
			application_id: Application id of the current invocation.
			params: Parsed command line of the current invocation.
			settle_delay_ms: Wait before the second scan when peers are found.
			forward_timeout: Timeout of the parameter delivery in seconds.
		"""
		self.supervisor = supervisor
		self.application_id = application_id
		self.params = params
		self.settle_delay_ms = settle_delay_ms
		self.forward_timeout = forward_timeout

	def _scan(self) -> Optional[list[ProcessDescriptor]]:
		try:
			return self.supervisor.scanner(os.getpid())
		except ProcessScanError as e:
			log.warning("Instance detection failed, proceeding: %s", e)
			return None

	def is_configuration_running(self) -> bool:
		"""Check whether another process serves the configuration.

		When the first scan finds peers, a peer may still be starting: the scan is done again once after the settling delay and only the second result is matched.

		Returns:
			True if a process serving the same configuration was found.
		"""
		peers = self._scan()
		if not peers:
			return False
		log.debug(
			"%s is already running for this user, checking its configuration",
			self.supervisor.program_name,
		)
		self.supervisor.sleep(self.settle_delay_ms / 1000)
		peers = self._scan()
		if not peers:
			return False
		return find_match(peers, self.params.configuration_name)

	def run(self) -> Optional[int]:
		"""Run the detection.

		Returns:
			The exit status when the process must stop here, None to proceed with the startup.
		"""
		self.supervisor.transition(LifecycleState.DETECTING)
		if not self.is_configuration_running():
			self.supervisor.transition(LifecycleState.PROCEEDING)
			return None
		if self.params.configuration_name:
			log.info(
				"Configuration %r is already running, exiting",
				self.params.configuration_name,
			)
		else:
			self.supervisor.transition(LifecycleState.FORWARDING)
			self.supervisor.forwarder(
				self.application_id,
				self.params.param_list(),
				timeout=self.forward_timeout,
			)
		self.supervisor.transition(LifecycleState.TERMINATED)
		return 0


class PostDaemonPhase:
	"""Take the instance slot and run the engine until shutdown."""

	def __init__(
		self,
		supervisor: LifecycleSupervisor,
		application_id: str,
		crash_reporting: bool = True,
	):
		"""Initialize the phase.

		Args:
			supervisor: The supervisor owning the lifecycle state.
			application_id: Application id of the current invocation.
			crash_reporting: Enable the crash diagnostics for fault signals.
		"""
		self.supervisor = supervisor
		self.application_id = application_id
		self.crash_reporting = crash_reporting

	def run(self, params: list[str]) -> int:
		"""Run the engine.

		Args:
			params: Parameters handed to the engine.

		Returns:
			The exit status of the engine, 1 if another instance took the slot first.
		"""
		guard = self.supervisor.guard_factory(channel_name(self.application_id))
		if not guard.acquire():
			owner = guard.get_existing_pid()
			log.error(
				"Another instance (pid %s) started for %s in the meantime, exiting",
				"unknown" if owner in (None, -1) else owner,
				self.application_id,
			)
			self.supervisor.transition(LifecycleState.TERMINATED)
			return 1
		shutdown = ShutdownRequest()
		bridge = self.supervisor.bridge_factory(shutdown)
		try:
			bridge.install_termination_handlers()
			if self.crash_reporting:
				bridge.install_fault_handlers()
			engine = self.supervisor.engine_factory(self.application_id)
			self.supervisor.transition(LifecycleState.RUNNING)
			exit_code = engine.exec(params, shutdown)
		finally:
			self.supervisor.transition(LifecycleState.SHUTTING_DOWN)
			bridge.uninstall()
			guard.release()
		self.supervisor.transition(LifecycleState.TERMINATED)
		return exit_code


class LifecycleSupervisor:
	"""Drive the startup of an executable variant.

	Every collaborator touching the OS can be replaced through the constructor.
	"""

	def __init__(
		self,
		ui_mode: UiMode,
		ui: Optional[UserInterface] = None,
		scanner: Scanner = scan,
		forwarder: Forwarder = forward_params,
		sleep: Callable[[float], None] = time.sleep,
		engine_factory: Callable[[str], AbstractEngine] = ConsoleEngine,
		guard_factory: Callable = InstanceGuard,
		bridge_factory: Callable[[ShutdownRequest], SignalBridge] = SignalBridge,
		daemonize: Callable[[], None] = daemon_mode.daemonize,
		daemon_supported: Optional[bool] = None,
		log_setup: Optional[Callable[[str], None]] = setup_logging,
		environ: Optional[MutableMapping[str, str]] = None,
		user_id: Optional[str] = None,
		prog: Optional[str] = None,
		stdin: Optional[TextIO] = None,
		stdout: Optional[TextIO] = None,
		stderr: Optional[TextIO] = None,
	):
		"""Initialize the supervisor.

		Args:
			ui_mode: The executable variant.
			ui: Interface used for errors, notices and the splash screen.
			scanner: Returns the other processes running the program.
			forwarder: Sends parameters to a running instance.
			sleep: Used for the settling delay.
			engine_factory: Builds the engine from the application id.
			guard_factory: Builds the instance lock from its name.
			bridge_factory: Builds the signal bridge from the shutdown request.
			daemonize: Detaches the process, only returns in the child.
			daemon_supported: Whether daemonize can be used (default: detected).
			log_setup: Configures logging from a level name, None to leave logging untouched.
			environ: Environment of the process (default: os.environ).
			user_id: Identifier of the OS user (default: detected).
			prog: Program name used in messages.
			stdin: Standard input (default: sys.stdin).
			stdout: Standard output (default: sys.stdout).
			stderr: Standard error (default: sys.stderr).
		"""
		self.ui_mode = ui_mode
		self.stdin = stdin or sys.stdin
		self.stdout = stdout or sys.stdout
		self.stderr = stderr or sys.stderr
		self.ui = ui or ConsoleInterface(self.stdin, self.stdout, self.stderr)
		self.scanner = scanner
		self.forwarder = forwarder
		self.sleep = sleep
		self.engine_factory = engine_factory
		self.guard_factory = guard_factory
		self.bridge_factory = bridge_factory
		self.daemonize = daemonize
		self.daemon_supported = (
			daemon_mode.is_supported()
			if daemon_supported is None
			else daemon_supported
		)
		self.log_setup = log_setup
		self.environ = os.environ if environ is None else environ
		self.user_id = user_id
		self.prog = prog
		self.state = LifecycleState.STARTING
		self.history = [LifecycleState.STARTING]

	@property
	def program_name(self) -> str:
		return self.prog or default_program_name(self.ui_mode)

	def transition(self, state: LifecycleState) -> None:
		log.debug("Lifecycle: %s -> %s", self.state, state)
		self.state = state
		self.history.append(state)

	def display_bad_arg_message(self, message: str) -> None:
		"""Report a command line error to the user.

		Args:
			message: Explanation of the error.
		"""
		if self.ui_mode == UiMode.INTERACTIVE:
			self.ui.show_error(BAD_ARG_TITLE, f"{message}\n{BAD_ARG_HINT}")
		else:
			self.stderr.write(f"{BAD_ARG_TITLE}:\n{message}\n{BAD_ARG_HINT}\n")
			self.stderr.flush()

	def _apply_command_line(self, params: CommandLineParameters) -> None:
		global_vars.profile_path = params.profile_dir
		global_vars.configuration_name = params.configuration_name
		# preferences depend on the profile and configuration just selected
		conf.cache_clear()

	def run(self, argv: list[str]) -> int:
		"""Run the whole startup.

		Args:
			argv: Arguments without the program name.

		Returns:
			The exit status of the process.
		"""
		try:
			params = parse_command_line(
				argv, self.ui_mode, self.prog, self.environ
			)
		except CommandLineParameterError as e:
			self.display_bad_arg_message(e.message_for_user())
			self.transition(LifecycleState.TERMINATED)
			return 1
		if params.show_version:
			self.stdout.write(f"{format_version()}\n")
			self.transition(LifecycleState.TERMINATED)
			return 0
		if params.show_help:
			self.stdout.write(format_usage(self.ui_mode, self.program_name))
			self.transition(LifecycleState.TERMINATED)
			return 0

		self.environ[VERSION_ENV_VAR] = APP_VERSION
		self._apply_command_line(params)
		config = conf()
		if self.log_setup:
			self.log_setup(params.log_level or config.general.log_level.name)
		log.info("Starting %s %s", self.program_name, APP_VERSION)

		gate = LegalNoticeGate(config, self.ui)
		attended = gate.should_prompt(
			self.ui_mode, params.should_daemonize, self.stdin, self.stdout
		)
		if not gate.has_accepted():
			if attended:
				if not gate.user_agrees():
					self.transition(LifecycleState.TERMINATED)
					return 0
			else:
				log.warning("Legal notice not accepted, no terminal to ask it")

		application_id = derive_application_id(
			self.user_id or get_user_id_string(), params.configuration_name
		)
		exit_code = PreDaemonPhase(
			self,
			application_id,
			params,
			config.instance.settle_delay_ms,
			config.instance.forward_timeout,
		).run()
		if exit_code is not None:
			return exit_code

		if not upgrade(attended, self.ui.ask_yes_no):
			self.transition(LifecycleState.TERMINATED)
			return 1
		config = conf()

		if self.ui_mode == UiMode.HEADLESS and params.should_daemonize:
			if not self.daemon_supported:
				log.warning(
					"Daemon mode is not supported on %s, running in the foreground",
					sys.platform,
				)
			else:
				self.transition(LifecycleState.DAEMONIZING)
				try:
					self.daemonize()
				except DaemonizeError as e:
					log.critical(
						"Something went wrong while daemonizing, exiting: %s", e
					)
					self.transition(LifecycleState.TERMINATED)
					return 1
		elif self.ui_mode == UiMode.INTERACTIVE and not (
			params.no_splash or config.general.splash_screen_disabled
		):
			self.ui.show_splash(APP_VERSION)

		return PostDaemonPhase(
			self, application_id, config.general.crash_reporting
		).run(params.param_list())
