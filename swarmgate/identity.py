"""Identity used to scope single-instance detection to a user and a configuration.

The application id is built from the OS user identity and the optional configuration name. Its digest names the instance lock and the IPC channel, so instances of the same user with different configurations never share them.
"""

import getpass
import hashlib
import os
import sys

from swarmgate.consts import APP_NAME


def get_user_id_string() -> str:
	"""Get a string identifying the current OS user.

	Returns:
		The numeric user id on POSIX systems, the login name on Windows.
	"""
	if sys.platform == "win32":
		return getpass.getuser()
	return str(os.getuid())


def derive_application_id(user_id: str, configuration_name: str = "") -> str:
	"""Derive the application id for a user and a configuration.

	Args:
		user_id: Stable identifier of the OS user, see get_user_id_string.
		configuration_name: Name of the configuration, empty for the default one.

	Returns:
		The application id, for example "swarmgate-1000" or "swarmgate-1000@work".

	Raises:
		ValueError: If user_id is empty.
	"""
	if not user_id:
		raise ValueError("user_id must not be empty")
	app_id = f"{APP_NAME}-{user_id}"
	if configuration_name:
		app_id += f"@{configuration_name}"
	return app_id


def channel_name(application_id: str) -> str:
	"""Get a short filesystem-safe name for an application id.

	The name is used for the instance lock file, the Unix socket and the Windows named pipe.

	Args:
		application_id: The application id.

	Returns:
		A name made of the application name and a digest of the id.
	"""
	digest = hashlib.sha1(application_id.encode("utf-8")).hexdigest()
	return f"{APP_NAME}_{digest[:20]}"
