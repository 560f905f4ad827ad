"""Constant values used in the application."""

import enum
import getpass
import os
import tempfile

# application name, also the name of the executable scanned for
APP_NAME = "swarmgate"

# application author
APP_AUTHOR = "swarmgate"

# application version
APP_VERSION = "1.0.0"

# application repository
APP_REPO = f"{APP_AUTHOR}/{APP_NAME}"

# application source URL
APP_SOURCE_URL = f"https://github.com/{APP_REPO}"

# where crash reports should be filed
BUG_TRACKER_URL = f"{APP_SOURCE_URL}/issues"

# executable name of the interactive variant
PROGRAM_NAME = APP_NAME

# executable name of the headless variant
HEADLESS_PROGRAM_NAME = f"{APP_NAME}-nox"

# environment variable set to the running version for child processes
VERSION_ENV_VAR = "SWARMGATE"

# prefix of the environment variables used as command line fallbacks
ENV_PREFIX = "SWARMGATE_"

# per-user temporary directory holding the instance locks and IPC sockets
TMP_DIR = os.path.join(
	tempfile.gettempdir(), f"{APP_NAME}-{getpass.getuser()}"
)

# wait before scanning when another instance may still be registering
DEFAULT_SETTLE_DELAY_MS = 300

# current schema version of the preferences file
CURRENT_CONFIG_VERSION = 2

LEGAL_NOTICE = (
	f"{APP_NAME} is a file sharing program. When you run a torrent, its data "
	"will be made available to others by means of upload. Any content you "
	"share is your sole responsibility."
)

CRASH_REPORT_HINT = (
	f"Please file a bug report at {BUG_TRACKER_URL} and provide the "
	f"following information:\n\n{APP_NAME} version: {APP_VERSION}\n"
)


class UiMode(enum.StrEnum):
	"""Flavor of the running executable."""

	# graphical front-end: splash screen, modal notices
	INTERACTIVE = enum.auto()
	# no graphical front-end: console prompts, daemon support
	HEADLESS = enum.auto()
