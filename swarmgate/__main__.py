"""Entry points of the swarmgate executables.

swarmgate is the interactive variant, it shows the splash screen and reports command line errors through its user interface. swarmgate-nox is the headless variant, it can run as a daemon.

Both start by checking whether another process already serves the requested configuration. If one does, the parameters of the invocation are forwarded to it and the process exits.
"""

import multiprocessing
import sys

from swarmgate.consts import UiMode
from swarmgate.logger import logging_uncaught_exceptions
from swarmgate.supervisor import LifecycleSupervisor


def run(ui_mode: UiMode) -> int:
	"""Run the startup supervisor for an executable variant.

	Args:
		ui_mode: The executable variant.

	Returns:
		The exit status of the process.
	"""
	sys.excepthook = logging_uncaught_exceptions
	supervisor = LifecycleSupervisor(ui_mode)
	return supervisor.run(sys.argv[1:])


def main():
	# Enable multiprocessing support for frozen executables
	multiprocessing.freeze_support()
	sys.exit(run(UiMode.INTERACTIVE))


def main_nox():
	multiprocessing.freeze_support()
	sys.exit(run(UiMode.HEADLESS))


if __name__ == '__main__':
	main()
