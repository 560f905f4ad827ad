"""Upgrade step of the startup: rewrite the preferences file in the current schema."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import yaml
from pydantic import ValidationError

from swarmgate.config import (
	GeneralSettings,
	InstanceSettings,
	conf,
	config_file_name,
)
from swarmgate.config.config_helper import load_config_file, save_config_file
from swarmgate.config.migration import get_config_version, migrate
from swarmgate.consts import APP_NAME, CURRENT_CONFIG_VERSION
from swarmgate.errors import UpgradeError

log = logging.getLogger(__name__)


def upgrade_config(file_name: str = config_file_name) -> bool:
	"""Migrate the preferences file to CURRENT_CONFIG_VERSION.

	Args:
		file_name: Name of the preferences file.

	Returns:
		True if the file was rewritten.

	Raises:
		UpgradeError: If the file cannot be read, migrated or written.
	"""
	try:
		conf_dict = load_config_file(file_name)
	except (OSError, yaml.YAMLError) as e:
		raise UpgradeError(f"unable to read {file_name}: {e}") from e
	if not conf_dict:
		return False
	if not isinstance(conf_dict, dict):
		raise UpgradeError(f"{file_name} does not contain a mapping")
	version = get_config_version(conf_dict)
	if version > CURRENT_CONFIG_VERSION:
		raise UpgradeError(
			f"{file_name} was written by a newer version of {APP_NAME} (config_version {version})"
		)
	if version == CURRENT_CONFIG_VERSION:
		return False
	log.info("Upgrading %s from config_version %d", file_name, version)
	conf_dict = migrate(conf_dict)
	try:
		GeneralSettings.model_validate(conf_dict.get("general", {}))
		InstanceSettings.model_validate(conf_dict.get("instance", {}))
	except ValidationError as e:
		raise UpgradeError(f"migrated preferences are invalid: {e}") from e
	try:
		save_config_file(conf_dict, file_name)
	except OSError as e:
		raise UpgradeError(f"unable to write {file_name}: {e}") from e
	return True


def upgrade(
	ask: bool = False, confirm: Optional[Callable[[str], bool]] = None
) -> bool:
	"""Run the upgrade step of the startup.

	Args:
		ask: Whether the user can be asked to continue after a failure.
		confirm: Yes/no question callback used when ask is True.

	Returns:
		True if the startup can continue.
	"""
	try:
		if upgrade_config():
			conf.cache_clear()
		return True
	except UpgradeError as e:
		log.error("Preferences upgrade failed: %s", e)
		if not ask or confirm is None:
			return False
		return confirm(
			f"Upgrading the preferences failed: {e}\n"
			"Continue with the default preferences?"
		)
